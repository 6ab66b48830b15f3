"""Typed telemetry models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class CpuCore:
    id: int
    frequency: float = 0.0
    usage: float = 0.0
    temperature: float = 0.0

    @property
    def is_zero(self) -> bool:
        return self.frequency == 0.0 and self.usage == 0.0 and self.temperature == 0.0


@dataclass(frozen=True)
class GpuUnit:
    id: int = 0
    power: float = 0.0
    frequency: float = 0.0
    usage: float = 0.0


@dataclass(frozen=True)
class SystemSnapshot:
    """One complete measurement. Field names are the serialized contract."""

    timestamp: int
    cpu_cores: tuple[CpuCore, ...] = field(default_factory=tuple)
    total_cpu_power: float = 0.0
    total_gpu_power: float = 0.0
    total_gpu_usage: float = 0.0
    gpus: tuple[GpuUnit, ...] = field(default_factory=tuple)
    memory_total: int = 0
    memory_used: int = 0
    carbon_intensity: float = 0.0

    def active_cores(self) -> tuple[CpuCore, ...]:
        return tuple(core for core in self.cpu_cores if not core.is_zero)

    def to_dict(self, active_only: bool = False) -> dict[str, Any]:
        data = asdict(self)
        if active_only:
            data["cpu_cores"] = [asdict(core) for core in self.active_cores()]
        else:
            data["cpu_cores"] = list(data["cpu_cores"])
        data["gpus"] = list(data["gpus"])
        return data
