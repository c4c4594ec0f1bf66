"""
Device Reporter - Report Models

Immutable snapshot models. Field aliases are the wire names of the
transmitted JSON document.
"""

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _ReportModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class DiskReport(_ReportModel):
    """Usage of one mounted disk, in bytes."""
    name: str
    used: int = Field(alias="diskUsed", ge=0)
    capacity: int = Field(alias="diskCapacity", ge=0)

    @field_validator("name")
    @classmethod
    def _trim(cls, value: str) -> str:
        return value.strip()

    @model_validator(mode="after")
    def _used_within_capacity(self) -> "DiskReport":
        if self.used > self.capacity:
            raise ValueError(f"disk '{self.name}' used {self.used} exceeds capacity {self.capacity}")
        return self


class CPUReport(_ReportModel):
    """One logical CPU. Usage is a percentage and is not clamped."""
    name: str
    brand: str
    vendor_id: str = Field(alias="vendorId")
    frequency: int = Field(ge=0)  # Hz
    usage: float

    @field_validator("name", "brand", "vendor_id")
    @classmethod
    def _trim(cls, value: str) -> str:
        return value.strip()


class MemoryReport(_ReportModel):
    """Physical memory usage, in bytes."""
    used: int = Field(alias="memoryUsed", ge=0)
    capacity: int = Field(alias="memoryCapacity", ge=0)

    @model_validator(mode="after")
    def _used_within_capacity(self) -> "MemoryReport":
        if self.used > self.capacity:
            raise ValueError(f"memory used {self.used} exceeds capacity {self.capacity}")
        return self


class SystemReport(_ReportModel):
    """Point-in-time snapshot of disks, CPUs and memory."""
    disks: Tuple[DiskReport, ...] = ()
    cpus: Tuple[CPUReport, ...] = ()
    memory: MemoryReport


class ReportEnvelope(_ReportModel):
    """A report stamped with device identity, message identity and time."""
    device_id: str = Field(alias="deviceId", min_length=1)
    message_id: str = Field(alias="messageId", min_length=1)
    timestamp: int  # Unix seconds
    report: SystemReport
