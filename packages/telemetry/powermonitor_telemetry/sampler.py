"""One-shot powermetrics measurement assembled into a SystemSnapshot."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from .errors import ClockError, EmptyOutputError, SamplerLaunchError, classify_sampler_failure
from .memory import APPLE_SILICON, MemoryInspector, MemoryProfile
from .models import SystemSnapshot
from .parsers import DEFAULT_MAX_CORE_ID, parse_cpu_cores, parse_cpu_power, parse_gpu_metrics
from .runner import CommandLaunchError, ProcessRunner


logger = logging.getLogger(__name__)

# Placeholder until a grid carbon-intensity source is wired in (gCO2/kWh).
CARBON_INTENSITY_PLACEHOLDER = 100.0


@dataclass(frozen=True)
class SamplerSettings:
    command: str = "powermetrics"
    use_sudo: bool = True
    samplers: tuple[str, ...] = ("cpu_power", "gpu_power")
    interval_ms: int = 1000
    sample_count: int = 1
    timeout_s: float | None = None
    max_core_id: int = DEFAULT_MAX_CORE_ID
    memory_profile: MemoryProfile = field(default=APPLE_SILICON)

    def argv(self) -> tuple[str, list[str]]:
        args = [
            "--samplers",
            ",".join(self.samplers),
            "-i",
            str(self.interval_ms),
            "-n",
            str(self.sample_count),
        ]
        if self.use_sudo:
            return "sudo", [self.command, *args]
        return self.command, args


def _epoch_seconds() -> int:
    return int(time.time())


class MetricsSampler:
    """Idle -> Sampling -> Success | Failure, once per ``measure`` call."""

    def __init__(
        self,
        settings: SamplerSettings | None = None,
        runner: ProcessRunner | None = None,
        memory: MemoryInspector | None = None,
        clock: Callable[[], int] = _epoch_seconds,
    ) -> None:
        self.settings = settings or SamplerSettings()
        self.runner = runner or ProcessRunner()
        self.memory = memory or MemoryInspector(
            self.runner, profile=self.settings.memory_profile, timeout_s=self.settings.timeout_s
        )
        self.clock = clock

    def capture(self) -> str:
        """Run the sampler and return its raw text, or raise a MeasurementError."""
        command, args = self.settings.argv()
        try:
            result = self.runner.run(command, args, timeout_s=self.settings.timeout_s)
        except CommandLaunchError as exc:
            msg = f"Failed to execute powermetrics: {exc.reason}"
            logger.info(msg)
            raise SamplerLaunchError(msg) from exc

        if not result.ok:
            error = classify_sampler_failure(result.stderr_text, result.stdout_text)
            logger.info(error.message)
            raise error

        text = result.stdout_text
        if not text.strip():
            error = EmptyOutputError()
            logger.info(error.message)
            raise error
        logger.info("Got powermetrics output")
        return text

    def _timestamp(self) -> int:
        try:
            ts = int(self.clock())
        except (OSError, OverflowError, ValueError) as exc:
            raise ClockError(f"Failed to get timestamp: {exc}") from exc
        if ts < 0:
            raise ClockError("Failed to get timestamp: clock is before the Unix epoch")
        return ts

    def assemble(self, text: str, memory_total: int = 0, memory_used: int = 0) -> SystemSnapshot:
        gpu = parse_gpu_metrics(text)
        return SystemSnapshot(
            timestamp=self._timestamp(),
            cpu_cores=parse_cpu_cores(text, self.settings.max_core_id),
            total_cpu_power=parse_cpu_power(text) or 0.0,
            total_gpu_power=gpu.total_power,
            total_gpu_usage=gpu.total_usage,
            gpus=gpu.gpus,
            memory_total=memory_total,
            memory_used=memory_used,
            carbon_intensity=CARBON_INTENSITY_PLACEHOLDER,
        )

    def measure(self) -> SystemSnapshot:
        logger.info("Measuring system metrics")
        text = self.capture()
        # Memory needs no elevated privilege and never fails the measurement.
        memory_total, memory_used = self.memory.read()
        snapshot = self.assemble(text, memory_total, memory_used)
        logger.info("System metrics measurement complete")
        return snapshot


def measure_metrics(settings: SamplerSettings | None = None, runner: ProcessRunner | None = None) -> SystemSnapshot:
    """Take one measurement; raises MeasurementError with a displayable message."""
    return MetricsSampler(settings=settings, runner=runner).measure()


def parse_transcript(text: str, settings: SamplerSettings | None = None) -> SystemSnapshot:
    """Build a snapshot from previously captured powermetrics text."""
    if not text.strip():
        raise EmptyOutputError()
    return MetricsSampler(settings=settings).assemble(text)
