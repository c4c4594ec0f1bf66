"""
Device Reporter - Runner Package

Scheduling of report cycles and cooperative shutdown.
"""

from .cancellation import CancellationToken
from .scheduler import CycleResult, CycleStage, Scheduler, SchedulerState
from .shutdown import ShutdownController

__all__ = [
    "CancellationToken",
    "CycleResult",
    "CycleStage",
    "Scheduler",
    "SchedulerState",
    "ShutdownController",
]
