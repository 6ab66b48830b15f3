"""Line-oriented extraction from powermetrics text.

The report has no schema guarantee, so every extractor returns ``None`` when
its line is missing or malformed and the caller decides the fallback. Lines
are matched by fixed prefix, which keeps parsing independent of section
ordering and of unrelated lines in between.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from .models import CpuCore, GpuUnit


logger = logging.getLogger(__name__)

DEFAULT_MAX_CORE_ID = 28

CPU_POWER_PREFIX = "CPU Power:"
GPU_POWER_PREFIX = "GPU Power:"
GPU_FREQUENCY_PREFIX = "GPU HW active frequency:"
GPU_ACTIVE_RESIDENCY_MARKER = "GPU HW active residency:"
GPU_IDLE_RESIDENCY_MARKER = "GPU idle residency:"

# Buckets appear as "(1398 MHz: 12.3%)" or inside one group "(389 MHz: 0% 486 MHz: 1.2% ...)".
_HISTOGRAM_BUCKET = re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*MHz:\s*([0-9]+(?:\.[0-9]+)?)%")


def _to_float(token: str | None) -> float | None:
    if token is None:
        return None
    try:
        return float(token.strip())
    except ValueError:
        return None


def _after_colon(line: str) -> str | None:
    _, sep, rest = line.partition(":")
    return rest if sep else None


def first_token_value(line: str) -> float | None:
    """First whitespace-delimited number after the first colon."""
    rest = _after_colon(line)
    if rest is None:
        return None
    tokens = rest.split()
    return _to_float(tokens[0]) if tokens else None


def percent_value(fragment: str | None) -> float | None:
    """Number preceding the first ``%`` in ``fragment``."""
    if fragment is None:
        return None
    head, sep, _ = fragment.partition("%")
    if not sep:
        return None
    return _to_float(head)


def _last_match(lines: Iterable[str], prefix: str) -> str | None:
    found = None
    for line in lines:
        if line.startswith(prefix):
            found = line
    return found


def milliwatts_to_watts(value: float | None) -> float | None:
    return None if value is None else value / 1000.0


# CPU


def cpu_core_frequency(text: str, core_id: int) -> float | None:
    line = _last_match(text.splitlines(), f"CPU {core_id} frequency:")
    return first_token_value(line) if line is not None else None


def cpu_core_residency(text: str, core_id: int) -> float | None:
    line = _last_match(text.splitlines(), f"CPU {core_id} active residency:")
    return percent_value(_after_colon(line)) if line is not None else None


def parse_cpu_core(text: str, core_id: int) -> CpuCore:
    """Always returns a record; missing lines leave the fields at zero.

    powermetrics does not report per-core temperature.
    """
    return CpuCore(
        id=core_id,
        frequency=cpu_core_frequency(text, core_id) or 0.0,
        usage=cpu_core_residency(text, core_id) or 0.0,
        temperature=0.0,
    )


def parse_cpu_cores(text: str, max_core_id: int = DEFAULT_MAX_CORE_ID) -> tuple[CpuCore, ...]:
    return tuple(parse_cpu_core(text, core_id) for core_id in range(max(0, max_core_id)))


def parse_cpu_power(text: str) -> float | None:
    line = _last_match(text.splitlines(), CPU_POWER_PREFIX)
    return milliwatts_to_watts(first_token_value(line)) if line is not None else None


# GPU


@dataclass(frozen=True)
class GpuReading:
    gpus: tuple[GpuUnit, ...]
    total_power: float
    total_usage: float
    form: str | None = None


def _histogram_max_frequency(line: str) -> float | None:
    rest = line.split(GPU_ACTIVE_RESIDENCY_MARKER, 1)[1]
    freqs = [float(freq) for freq, _pct in _HISTOGRAM_BUCKET.findall(rest)]
    return max(freqs) if freqs else None


def _idle_residency(line: str) -> float | None:
    if GPU_IDLE_RESIDENCY_MARKER not in line:
        return None
    return percent_value(line.split(GPU_IDLE_RESIDENCY_MARKER, 1)[1])


def _detailed_usage(lines: list[str], frequency: float) -> float | None:
    """Clock ratio times active residency, clamped to 100.

    Returns ``None`` when no residency line carries a frequency histogram.
    """
    for line in lines:
        if GPU_ACTIVE_RESIDENCY_MARKER not in line:
            continue
        max_frequency = _histogram_max_frequency(line)
        if max_frequency is None:
            continue

        idle = _idle_residency(line)
        if idle is None:
            idle = next((v for v in map(_idle_residency, lines) if v is not None), None)
        active = 100.0 - (idle or 0.0)

        if max_frequency <= 0.0:
            return 0.0
        frequency_ratio = frequency / max_frequency * 100.0
        return min(100.0, frequency_ratio * active / 100.0)
    return None


def _simple_usage(lines: list[str]) -> float | None:
    for line in lines:
        idle = _idle_residency(line)
        if idle is not None:
            # Not clamped: odd idle values pass straight through.
            return 100.0 - idle
    return None


def parse_gpu_metrics(text: str) -> GpuReading:
    lines = text.splitlines()

    power_line = _last_match(lines, GPU_POWER_PREFIX)
    power = milliwatts_to_watts(first_token_value(power_line)) if power_line is not None else None

    freq_line = _last_match(lines, GPU_FREQUENCY_PREFIX)
    frequency = (first_token_value(freq_line) if freq_line is not None else None) or 0.0

    form = "detailed"
    usage = _detailed_usage(lines, frequency)
    if usage is None:
        form = "simple"
        usage = _simple_usage(lines)
    if usage is None:
        form = None
    logger.debug("gpu usage form=%s", form)

    gpu = GpuUnit(id=0, power=power or 0.0, frequency=frequency, usage=usage or 0.0)
    return GpuReading(gpus=(gpu,), total_power=gpu.power, total_usage=gpu.usage, form=form)
