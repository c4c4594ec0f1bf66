"""
Device Reporter - Errors

Closed error taxonomy. Every error carries a kind tag so callers can branch
on it without isinstance chains, and a fatal flag telling whether the run
can continue.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Error classification."""
    CONFIGURATION = "configuration"
    SETUP = "setup"
    SIGNAL_HANDLER = "signal_handler"
    SNAPSHOT = "snapshot"
    ENCODING = "encoding"
    TRANSPORT = "transport"


class ReporterError(Exception):
    """Base class for all reporter errors."""
    kind: ErrorKind
    fatal: bool = True


class ConfigurationError(ReporterError):
    """Malformed or out-of-range configuration."""
    kind = ErrorKind.CONFIGURATION


class SetupError(ReporterError):
    """Publisher could not be constructed."""
    kind = ErrorKind.SETUP


class SignalHandlerError(ReporterError):
    """Interrupt handler could not be installed."""
    kind = ErrorKind.SIGNAL_HANDLER


class CycleError(ReporterError):
    """Failure confined to a single cycle."""
    fatal = False


class SnapshotError(CycleError):
    """Metrics provider failed to produce a report."""
    kind = ErrorKind.SNAPSHOT


class EncodingError(CycleError):
    """Serialization, compression or decoding failed."""
    kind = ErrorKind.ENCODING


class TransportError(CycleError):
    """Connect, publish or disconnect failed."""
    kind = ErrorKind.TRANSPORT
