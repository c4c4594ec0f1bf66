"""
Device Reporter - Metrics Provider

Captures disk, CPU and memory state from the local host with psutil.
"""

import platform
from typing import Dict, List, Optional, Protocol

import psutil
import structlog
from pydantic import ValidationError

from ..errors import SnapshotError
from .models import CPUReport, DiskReport, MemoryReport, SystemReport

logger = structlog.get_logger(__name__)

CPUINFO_PATH = "/proc/cpuinfo"
MHZ = 1_000_000


class MetricsProvider(Protocol):
    """Source of system snapshots."""

    def capture(self) -> SystemReport:
        """Capture disk/CPU/memory state. Raises SnapshotError on failure."""
        ...


def _read_cpuinfo(path: str = CPUINFO_PATH) -> Dict[str, str]:
    """Read brand and vendor of the first processor from /proc/cpuinfo."""
    info: Dict[str, str] = {}
    try:
        with open(path, "r") as f:
            for line in f:
                if not line.strip():
                    # End of the first processor block
                    if info:
                        break
                    continue
                key, _, value = line.partition(":")
                key = key.strip()
                if key in ("model name", "vendor_id") and key not in info:
                    info[key] = value.strip()
    except OSError:
        logger.debug("cpuinfo not readable", path=path)
    return info


class PsutilMetricsProvider:
    """MetricsProvider backed by psutil."""

    def __init__(self, cpuinfo_path: str = CPUINFO_PATH):
        cpuinfo = _read_cpuinfo(cpuinfo_path)
        self._brand = cpuinfo.get("model name") or platform.processor()
        self._vendor_id = cpuinfo.get("vendor_id") or platform.machine()

        # Later calls report usage since the previous one; this sets the start point
        psutil.cpu_percent(interval=None, percpu=True)

    def capture(self) -> SystemReport:
        try:
            report = SystemReport(
                disks=tuple(self._collect_disks()),
                cpus=tuple(self._collect_cpus()),
                memory=self._collect_memory(),
            )
        except (psutil.Error, OSError) as e:
            raise SnapshotError(f"Failed to read system metrics: {e}") from e
        except ValidationError as e:
            raise SnapshotError(f"Invalid system metrics: {e}") from e

        logger.debug(
            "Snapshot captured",
            disks=len(report.disks),
            cpus=len(report.cpus),
        )
        return report

    def _collect_disks(self) -> List[DiskReport]:
        disks = []
        for partition in psutil.disk_partitions():
            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except OSError:
                continue
            disks.append(DiskReport(
                name=partition.device,
                used=usage.total - usage.free,
                capacity=usage.total,
            ))
        return disks

    def _collect_cpus(self) -> List[CPUReport]:
        usages = psutil.cpu_percent(interval=None, percpu=True)
        frequencies = self._frequencies(len(usages))

        return [
            CPUReport(
                name=f"cpu{i}",
                brand=self._brand,
                vendor_id=self._vendor_id,
                frequency=frequencies[i],
                usage=usage,
            )
            for i, usage in enumerate(usages)
        ]

    @staticmethod
    def _frequencies(count: int) -> List[int]:
        """Per-CPU clock in Hz; 0 where the platform does not report one."""
        try:
            freqs: Optional[list] = psutil.cpu_freq(percpu=True)
        except (AttributeError, NotImplementedError, OSError):
            freqs = None
        if not freqs:
            return [0] * count

        # Some platforms only expose a single, system-wide value
        if len(freqs) < count:
            freqs = list(freqs) + [freqs[-1]] * (count - len(freqs))
        return [int(f.current * MHZ) for f in freqs[:count]]

    def _collect_memory(self) -> MemoryReport:
        mem = psutil.virtual_memory()
        return MemoryReport(used=mem.total - mem.available, capacity=mem.total)
