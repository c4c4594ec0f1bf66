"""
Device Reporter - Cancellation Token

Cooperative stop request shared between the caller, the signal handler
and the scheduler worker.
"""

import threading
from typing import Optional


class CancellationToken:
    """One-shot, thread-safe cancellation flag with an interruptible wait."""

    def __init__(self):
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Calling it again has no further effect."""
        self._event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or the timeout elapses. True if cancelled."""
        return self._event.wait(timeout)
