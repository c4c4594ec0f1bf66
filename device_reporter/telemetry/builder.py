"""
Device Reporter - Report Builder

Wraps a fresh snapshot into a ReportEnvelope.
"""

import time
import uuid
from typing import Callable

import structlog

from .models import ReportEnvelope
from .provider import MetricsProvider

logger = structlog.get_logger(__name__)


class ReportBuilder:
    """Builds one envelope per cycle."""

    def __init__(
        self,
        provider: MetricsProvider,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._provider = provider
        self._clock = clock
        self._id_factory = id_factory

    def build_envelope(self, device_id: str) -> ReportEnvelope:
        """
        Capture a snapshot and stamp it.

        SnapshotError from the provider propagates unchanged; no retry here.
        The message id and timestamp are taken after the snapshot, when the
        envelope is finalized.
        """
        report = self._provider.capture()

        envelope = ReportEnvelope(
            device_id=device_id,
            message_id=self._id_factory(),
            timestamp=int(self._clock()),
            report=report,
        )
        logger.debug("Envelope built", message_id=envelope.message_id, timestamp=envelope.timestamp)
        return envelope
