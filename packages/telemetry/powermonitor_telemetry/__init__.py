"""powermetrics acquisition and parsing for PowerMonitor."""

from .errors import (
    ClockError,
    EmptyOutputError,
    MeasurementError,
    SamplerFailedError,
    SamplerLaunchError,
    SamplerPermissionError,
)
from .memory import APPLE_SILICON, INTEL, MemoryInspector, MemoryProfile, resolve_profile
from .models import CpuCore, GpuUnit, SystemSnapshot
from .runner import CommandLaunchError, CommandResult, CommandTimeoutError, ProcessRunner
from .sampler import MetricsSampler, SamplerSettings, measure_metrics, parse_transcript

__all__ = [
    "APPLE_SILICON",
    "INTEL",
    "ClockError",
    "CommandLaunchError",
    "CommandResult",
    "CommandTimeoutError",
    "CpuCore",
    "EmptyOutputError",
    "GpuUnit",
    "MeasurementError",
    "MemoryInspector",
    "MemoryProfile",
    "MetricsSampler",
    "ProcessRunner",
    "SamplerFailedError",
    "SamplerLaunchError",
    "SamplerPermissionError",
    "SamplerSettings",
    "SystemSnapshot",
    "measure_metrics",
    "parse_transcript",
    "resolve_profile",
]
