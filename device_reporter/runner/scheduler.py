"""
Device Reporter - Scheduler

Drives report cycles: once in Single mode, or on a fixed cadence in a
background worker in Continuous mode until cancelled.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import structlog

from .. import codec
from ..config import MINUTES_MULTIPLIER, RunnerConfig, RuntimeMode
from ..errors import CycleError, ErrorKind
from ..mqtt.publisher import Publisher, transmit
from ..telemetry.builder import ReportBuilder
from ..telemetry.models import ReportEnvelope
from .cancellation import CancellationToken

logger = structlog.get_logger(__name__)


class SchedulerState(str, Enum):
    """Scheduler lifecycle state."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class CycleStage(str, Enum):
    """Step of a cycle, used to report where it failed."""
    SNAPSHOT = "snapshot"
    ENCODE = "encode"
    TRANSMIT = "transmit"


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one cycle."""
    success: bool
    message_id: Optional[str] = None
    stage: Optional[CycleStage] = None
    error: Optional[Exception] = None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return getattr(self.error, "kind", None)

    @classmethod
    def ok(cls, message_id: str) -> "CycleResult":
        return cls(success=True, message_id=message_id)

    @classmethod
    def failed(cls, stage: CycleStage, error: Exception) -> "CycleResult":
        return cls(success=False, stage=stage, error=error)


class Scheduler:
    """
    Runs report cycles according to the configured mode.

    At most one cycle runs at a time. In Continuous mode a single worker
    thread alternates between a cycle and an interruptible wait; the token
    is checked before every cycle and during the wait, and a cycle that
    has started always runs to completion.
    """

    def __init__(
        self,
        config: RunnerConfig,
        builder: ReportBuilder,
        publisher: Publisher,
        token: Optional[CancellationToken] = None,
        encode: Callable[[ReportEnvelope], bytes] = codec.encode,
        interval_unit_seconds: float = MINUTES_MULTIPLIER,
    ):
        self._config = config
        self._builder = builder
        self._publisher = publisher
        self._encode = encode
        self._token = token or CancellationToken()
        self._interval = config.check_interval_minutes * interval_unit_seconds

        self._state = SchedulerState.IDLE
        self._start_lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self._completed = 0
        self._failed = 0

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def state(self) -> SchedulerState:
        if self._state == SchedulerState.RUNNING and self._token.is_cancelled:
            return SchedulerState.STOPPING
        return self._state

    @property
    def completed_cycles(self) -> int:
        return self._completed

    @property
    def failed_cycles(self) -> int:
        return self._failed

    def start(self) -> Optional[CycleResult]:
        """
        Start the run.

        Single mode runs one cycle on the calling thread and returns its
        result. Continuous mode starts the worker and returns None; use
        join() to wait for it.
        """
        with self._start_lock:
            if self._state != SchedulerState.IDLE:
                raise RuntimeError(f"Scheduler already started (state={self._state.value})")
            self._state = SchedulerState.RUNNING

        if self._config.mode == RuntimeMode.SINGLE:
            logger.info("Running single cycle", device_id=self._config.device_id)
            try:
                return self.run_cycle()
            finally:
                self._state = SchedulerState.STOPPED

        logger.info(
            "Starting continuous reporting",
            device_id=self._config.device_id,
            interval_seconds=self._interval,
        )
        self._worker = threading.Thread(target=self._worker_loop, name="report-worker")
        self._worker.start()
        return None

    def stop(self) -> None:
        """Request cancellation; the worker exits after any in-flight cycle."""
        self._token.cancel()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker to stop. True once the scheduler is stopped."""
        if self._worker is not None:
            self._worker.join(timeout)
            return not self._worker.is_alive()
        return self._state == SchedulerState.STOPPED

    def run_cycle(self) -> CycleResult:
        """Snapshot, encode and transmit one report. Never raises."""
        stage = CycleStage.SNAPSHOT
        try:
            envelope = self._builder.build_envelope(self._config.device_id)
            stage = CycleStage.ENCODE
            payload = self._encode(envelope)
            stage = CycleStage.TRANSMIT
            transmit(self._publisher, self._config.topic, payload)
        except CycleError as e:
            self._failed += 1
            logger.error("Cycle failed", stage=stage.value, kind=e.kind.value, error=str(e))
            return CycleResult.failed(stage, e)
        except Exception as e:
            self._failed += 1
            logger.exception("Unexpected cycle error", stage=stage.value, error=str(e))
            return CycleResult.failed(stage, e)

        self._completed += 1
        logger.info(
            "Report transmitted",
            message_id=envelope.message_id,
            topic=self._config.topic,
            size=len(payload),
        )
        return CycleResult.ok(envelope.message_id)

    def _worker_loop(self) -> None:
        try:
            while not self._token.is_cancelled:
                self.run_cycle()
                if self._token.wait(self._interval):
                    break
        finally:
            self._state = SchedulerState.STOPPED
            logger.info(
                "Scheduler stopped",
                completed=self._completed,
                failed=self._failed,
            )
