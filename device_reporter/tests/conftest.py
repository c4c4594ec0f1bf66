"""
Device Reporter - Test Fixtures

Test doubles for the metrics provider and the publisher.
"""

from typing import List, Optional

import pytest

from device_reporter.errors import TransportError
from device_reporter.telemetry.models import CPUReport, DiskReport, MemoryReport, SystemReport


def make_report() -> SystemReport:
    return SystemReport(
        disks=(
            DiskReport(name="/dev/sda1", used=50, capacity=100),
            DiskReport(name="/dev/sdb1", used=0, capacity=2048),
        ),
        cpus=(
            CPUReport(name="cpu0", brand="ARM Cortex-A72", vendor_id="ARM", frequency=1_500_000_000, usage=12.5),
            CPUReport(name="cpu1", brand="ARM Cortex-A72", vendor_id="ARM", frequency=1_500_000_000, usage=100.25),
        ),
        memory=MemoryReport(used=1024, capacity=4096),
    )


class FakeProvider:
    """Returns a fixed report, or raises the queued errors first."""

    def __init__(self, errors: Optional[List[Exception]] = None):
        self.errors = list(errors or [])
        self.calls = 0

    def capture(self) -> SystemReport:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return make_report()


class RecordingPublisher:
    """Records every transport step; each step can be told to fail."""

    def __init__(self, fail_connect=False, fail_publish=False, fail_disconnect=False):
        self.fail_connect = fail_connect
        self.fail_publish = fail_publish
        self.fail_disconnect = fail_disconnect
        self.calls: List[str] = []
        self.payloads: List[bytes] = []
        self.topics: List[str] = []

    def connect(self) -> None:
        self.calls.append("connect")
        if self.fail_connect:
            raise TransportError("connection refused")

    def publish(self, topic: str, payload: bytes) -> None:
        self.calls.append("publish")
        if self.fail_publish:
            raise TransportError("publish rejected")
        self.topics.append(topic)
        self.payloads.append(payload)

    def disconnect(self) -> None:
        self.calls.append("disconnect")
        if self.fail_disconnect:
            raise TransportError("socket closed")


@pytest.fixture
def report() -> SystemReport:
    return make_report()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
