"""
Device Reporter - Telemetry Package

Captures system snapshots and wraps them into report envelopes.
"""

from .builder import ReportBuilder
from .models import CPUReport, DiskReport, MemoryReport, ReportEnvelope, SystemReport
from .provider import MetricsProvider, PsutilMetricsProvider

__all__ = [
    "ReportBuilder",
    "MetricsProvider",
    "PsutilMetricsProvider",
    "SystemReport",
    "DiskReport",
    "CPUReport",
    "MemoryReport",
    "ReportEnvelope",
]
