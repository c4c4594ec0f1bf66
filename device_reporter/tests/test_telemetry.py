"""
Device Reporter - Telemetry Tests

Pytest tests for report models, the report builder and the psutil provider.
"""

from collections import namedtuple
from itertools import count
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from conftest import FakeProvider
from device_reporter.errors import ErrorKind, SnapshotError
from device_reporter.telemetry.builder import ReportBuilder
from device_reporter.telemetry.models import CPUReport, DiskReport, MemoryReport, SystemReport
from device_reporter.telemetry.provider import PsutilMetricsProvider, _read_cpuinfo


Partition = namedtuple("Partition", "device mountpoint fstype opts")
DiskUsage = namedtuple("DiskUsage", "total used free percent")
CpuFreq = namedtuple("CpuFreq", "current min max")
VirtualMemory = namedtuple("VirtualMemory", "total available percent used free")


class TestDiskReport:
    """Test DiskReport validation."""

    def test_used_within_capacity(self):
        """Test a disk with used <= capacity is valid."""
        disk = DiskReport(name="/dev/sda1", used=50, capacity=100)

        assert disk.used == 50
        assert disk.capacity == 100

    def test_used_exceeds_capacity(self):
        """Test a disk with used > capacity is rejected."""
        with pytest.raises(ValidationError, match="exceeds capacity"):
            DiskReport(name="/dev/sda1", used=150, capacity=100)

    def test_full_disk(self):
        """Test used == capacity is valid."""
        assert DiskReport(name="sda", used=100, capacity=100).used == 100

    def test_name_is_trimmed(self):
        """Test names are stripped of surrounding whitespace."""
        assert DiskReport(name="  /dev/sda1 \n", used=0, capacity=1).name == "/dev/sda1"

    def test_negative_rejected(self):
        """Test negative byte counts are rejected."""
        with pytest.raises(ValidationError):
            DiskReport(name="sda", used=-1, capacity=100)

    def test_wire_names(self):
        """Test aliases match the wire format."""
        data = DiskReport(name="sda", used=1, capacity=2).model_dump(by_alias=True)

        assert data == {"name": "sda", "diskUsed": 1, "diskCapacity": 2}


class TestCPUAndMemoryReport:
    """Test CPUReport and MemoryReport."""

    def test_usage_not_clamped(self):
        """Test usage above 100 percent is kept as sampled."""
        cpu = CPUReport(name="cpu0", brand="x", vendor_id="y", frequency=1, usage=101.5)

        assert cpu.usage == 101.5

    def test_strings_trimmed(self):
        """Test name, brand and vendor are trimmed."""
        cpu = CPUReport(name=" cpu0 ", brand=" Cortex ", vendor_id=" ARM ", frequency=0, usage=0.0)

        assert (cpu.name, cpu.brand, cpu.vendor_id) == ("cpu0", "Cortex", "ARM")

    def test_memory_invariant(self):
        """Test memory used must not exceed capacity."""
        assert MemoryReport(used=10, capacity=10).used == 10
        with pytest.raises(ValidationError):
            MemoryReport(used=11, capacity=10)

    def test_report_is_frozen(self, report):
        """Test reports cannot be mutated after construction."""
        with pytest.raises(ValidationError):
            report.memory = MemoryReport(used=0, capacity=0)


class TestReportBuilder:
    """Test envelope building."""

    def test_envelope_fields(self, provider):
        """Test the envelope carries device id, message id and time."""
        builder = ReportBuilder(provider, clock=lambda: 1700000000.9, id_factory=lambda: "msg-1")

        envelope = builder.build_envelope("device-1")

        assert envelope.device_id == "device-1"
        assert envelope.message_id == "msg-1"
        assert envelope.timestamp == 1700000000
        assert len(envelope.report.disks) == 2

    def test_message_ids_distinct_within_same_second(self, provider):
        """Test two envelopes built in the same second get distinct ids."""
        builder = ReportBuilder(provider, clock=lambda: 1700000000.0)

        first = builder.build_envelope("device-1")
        second = builder.build_envelope("device-1")

        assert first.timestamp == second.timestamp
        assert first.message_id != second.message_id

    def test_stamped_after_snapshot(self):
        """Test the timestamp is taken when the envelope is finalized."""
        ticks = count(100)
        events = []

        class OrderedProvider(FakeProvider):
            def capture(self):
                events.append("capture")
                return super().capture()

        def clock():
            events.append("clock")
            return next(ticks)

        ReportBuilder(OrderedProvider(), clock=clock).build_envelope("device-1")

        assert events == ["capture", "clock"]

    def test_snapshot_error_propagates(self):
        """Test provider failures propagate without retry."""
        provider = FakeProvider(errors=[SnapshotError("no metrics")])
        builder = ReportBuilder(provider)

        with pytest.raises(SnapshotError) as exc:
            builder.build_envelope("device-1")

        assert exc.value.kind == ErrorKind.SNAPSHOT
        assert not exc.value.fatal
        assert provider.calls == 1


class TestPsutilProvider:
    """Test the psutil-backed provider with psutil patched out."""

    @pytest.fixture
    def patched_psutil(self):
        with patch("device_reporter.telemetry.provider.psutil.disk_partitions") as partitions, \
                patch("device_reporter.telemetry.provider.psutil.disk_usage") as disk_usage, \
                patch("device_reporter.telemetry.provider.psutil.cpu_percent") as cpu_percent, \
                patch("device_reporter.telemetry.provider.psutil.cpu_freq") as cpu_freq, \
                patch("device_reporter.telemetry.provider.psutil.virtual_memory") as virtual_memory:
            partitions.return_value = [
                Partition("/dev/sda1", "/", "ext4", "rw"),
                Partition("/dev/sdb1", "/secret", "ext4", "rw"),
            ]

            def usage(mountpoint):
                if mountpoint == "/secret":
                    raise PermissionError("denied")
                return DiskUsage(total=1000, used=400, free=550, percent=40.0)

            disk_usage.side_effect = usage
            cpu_percent.return_value = [10.0, 102.0]
            cpu_freq.return_value = [CpuFreq(1500.0, 600.0, 1500.0)]
            virtual_memory.return_value = VirtualMemory(
                total=4096, available=1024, percent=75.0, used=2900, free=500
            )
            yield {
                "disk_usage": disk_usage,
                "cpu_freq": cpu_freq,
                "virtual_memory": virtual_memory,
            }

    @pytest.fixture
    def cpuinfo(self, tmp_path):
        path = tmp_path / "cpuinfo"
        path.write_text(
            "processor\t: 0\n"
            "vendor_id\t: GenuineIntel\n"
            "model name\t: Intel(R) Core(TM) i5-8250U CPU @ 1.60GHz\n"
            "\n"
            "processor\t: 1\n"
            "vendor_id\t: Other\n"
            "model name\t: Other CPU\n"
        )
        return str(path)

    def test_capture(self, patched_psutil, cpuinfo):
        """Test a full snapshot from psutil values."""
        report = PsutilMetricsProvider(cpuinfo_path=cpuinfo).capture()

        assert isinstance(report, SystemReport)
        assert [d.name for d in report.disks] == ["/dev/sda1"]
        assert report.disks[0].used == 450
        assert report.disks[0].capacity == 1000

        assert [c.name for c in report.cpus] == ["cpu0", "cpu1"]
        assert report.cpus[0].brand == "Intel(R) Core(TM) i5-8250U CPU @ 1.60GHz"
        assert report.cpus[0].vendor_id == "GenuineIntel"
        assert report.cpus[1].frequency == 1_500_000_000
        assert report.cpus[1].usage == 102.0

        assert report.memory.used == 3072
        assert report.memory.capacity == 4096

    def test_no_frequency(self, patched_psutil, cpuinfo):
        """Test platforms without cpu_freq report 0 Hz."""
        patched_psutil["cpu_freq"].return_value = None

        report = PsutilMetricsProvider(cpuinfo_path=cpuinfo).capture()

        assert all(c.frequency == 0 for c in report.cpus)

    def test_unreadable_mount_skipped(self, patched_psutil, cpuinfo):
        """Test any OS error on a single mount only drops that disk."""
        patched_psutil["disk_usage"].side_effect = OSError("stale file handle")

        report = PsutilMetricsProvider(cpuinfo_path=cpuinfo).capture()

        assert report.disks == ()
        assert len(report.cpus) == 2

    def test_os_error_becomes_snapshot_error(self, patched_psutil, cpuinfo):
        """Test OS failures are reported as SnapshotError."""
        patched_psutil["virtual_memory"].side_effect = OSError("boom")

        with pytest.raises(SnapshotError, match="boom"):
            PsutilMetricsProvider(cpuinfo_path=cpuinfo).capture()

    def test_invalid_values_become_snapshot_error(self, patched_psutil, cpuinfo):
        """Test values violating the model invariants are reported as SnapshotError."""
        patched_psutil["virtual_memory"].return_value = VirtualMemory(
            total=100, available=-50, percent=0.0, used=0, free=0
        )

        with pytest.raises(SnapshotError, match="Invalid"):
            PsutilMetricsProvider(cpuinfo_path=cpuinfo).capture()

    def test_read_cpuinfo_missing(self, tmp_path):
        """Test a missing cpuinfo file yields no data."""
        assert _read_cpuinfo(str(tmp_path / "missing")) == {}

    def test_read_cpuinfo_first_block(self, cpuinfo):
        """Test only the first processor block is read."""
        info = _read_cpuinfo(cpuinfo)

        assert info["vendor_id"] == "GenuineIntel"
        assert info["model name"].startswith("Intel")
