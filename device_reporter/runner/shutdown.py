"""
Device Reporter - Shutdown Controller

Turns SIGINT/SIGTERM into a cancellation request.
"""

import signal
from typing import Dict, Tuple

import structlog

from ..errors import SignalHandlerError
from .cancellation import CancellationToken

logger = structlog.get_logger(__name__)

SHUTDOWN_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class ShutdownController:
    """Installs interrupt handlers that cancel the given token."""

    def __init__(self, token: CancellationToken, signals: Tuple[signal.Signals, ...] = SHUTDOWN_SIGNALS):
        self._token = token
        self._signals = signals
        self._previous: Dict[signal.Signals, object] = {}

    @property
    def is_installed(self) -> bool:
        return bool(self._previous)

    def install(self) -> None:
        """Arm the handlers. Raises SignalHandlerError if that is not possible."""
        if self.is_installed:
            return

        try:
            for signum in self._signals:
                self._previous[signum] = signal.signal(signum, self.handle_signal)
        except (ValueError, OSError) as e:
            self.uninstall()
            raise SignalHandlerError(f"Cannot install signal handler: {e}") from e

        logger.debug("Signal handlers installed", signals=[s.name for s in self._signals])

    def uninstall(self) -> None:
        """Restore the handlers that were active before install()."""
        for signum, previous in self._previous.items():
            signal.signal(signum, previous)
        self._previous.clear()

    def handle_signal(self, signum, frame) -> None:
        """Handle shutdown signals."""
        if self._token.is_cancelled:
            return
        logger.info("Received signal, stopping after current cycle", signal=signal.Signals(signum).name)
        self._token.cancel()

    def __enter__(self) -> "ShutdownController":
        self.install()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.uninstall()
