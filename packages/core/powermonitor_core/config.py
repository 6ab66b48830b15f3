"""Persistent app settings schema and load/save helpers."""

from __future__ import annotations

import json
import logging
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from powermonitor_telemetry import SamplerSettings, resolve_profile
from powermonitor_telemetry.memory import PROFILES


CONFIG_VERSION = 1

logger = logging.getLogger(__name__)


@dataclass
class SamplerConfig:
    command: str = "powermetrics"
    use_sudo: bool = True
    samplers: list[str] = field(default_factory=lambda: ["cpu_power", "gpu_power"])
    interval_ms: int = 1000
    sample_count: int = 1
    timeout_s: float | None = None


@dataclass
class CpuConfig:
    max_core_id: int = 28


@dataclass
class MemoryConfig:
    profile: str = "apple_silicon"
    page_size: int | None = None
    used_categories: list[str] | None = None


@dataclass
class PollConfig:
    interval_ms: int = 1000


@dataclass
class DiagnosticsConfig:
    keep_log_files: int = 7


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    cpu: CpuConfig = field(default_factory=CpuConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def config_root() -> Path:
    system = platform.system()
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "PowerMonitor"
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "powermonitor"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: Any):
    defaults = dataclass_type()  # type: ignore[misc]
    if not isinstance(raw, dict):
        return defaults
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _clamp_int(value: Any, low: int, high: int, default: int) -> int:
    try:
        return max(low, min(high, int(value)))
    except (TypeError, ValueError):
        return default


def _normalize_sampler(cfg: AppConfig) -> None:
    s = cfg.sampler
    s.command = str(s.command or "powermetrics")
    s.use_sudo = bool(s.use_sudo)
    if not isinstance(s.samplers, list) or not s.samplers:
        s.samplers = ["cpu_power", "gpu_power"]
    s.samplers = [str(x) for x in s.samplers]
    s.interval_ms = _clamp_int(s.interval_ms, 100, 60000, 1000)
    s.sample_count = _clamp_int(s.sample_count, 1, 100, 1)
    if s.timeout_s is not None:
        try:
            timeout = float(s.timeout_s)
        except (TypeError, ValueError):
            timeout = 0.0
        s.timeout_s = timeout if timeout > 0 else None


def _normalize_cpu(cfg: AppConfig) -> None:
    cfg.cpu.max_core_id = _clamp_int(cfg.cpu.max_core_id, 1, 256, 28)


def _normalize_memory(cfg: AppConfig) -> None:
    m = cfg.memory
    if m.profile not in PROFILES:
        logger.warning("unknown memory profile %r, using apple_silicon", m.profile)
        m.profile = "apple_silicon"
    if m.page_size is not None:
        m.page_size = _clamp_int(m.page_size, 0, 1 << 20, 0)
    if m.used_categories is not None and not isinstance(m.used_categories, list):
        m.used_categories = None


def _normalize_poll(cfg: AppConfig) -> None:
    cfg.poll.interval_ms = _clamp_int(cfg.poll.interval_ms, 100, 60000, 1000)
    cfg.diagnostics.keep_log_files = _clamp_int(cfg.diagnostics.keep_log_files, 2, 90, 7)


def _migrate(raw: dict[str, Any]) -> dict[str, Any]:
    data = dict(raw)
    data.setdefault("config_version", CONFIG_VERSION)
    return data


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("config at %s is unreadable, using defaults", path)
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()

    data = _migrate(raw)
    cfg = AppConfig(
        config_version=_clamp_int(data.get("config_version"), 1, CONFIG_VERSION, CONFIG_VERSION),
        sampler=_merge(SamplerConfig, data.get("sampler", {})),
        cpu=_merge(CpuConfig, data.get("cpu", {})),
        memory=_merge(MemoryConfig, data.get("memory", {})),
        poll=_merge(PollConfig, data.get("poll", {})),
        diagnostics=_merge(DiagnosticsConfig, data.get("diagnostics", {})),
    )

    _normalize_sampler(cfg)
    _normalize_cpu(cfg)
    _normalize_memory(cfg)
    _normalize_poll(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path


def to_sampler_settings(cfg: AppConfig) -> SamplerSettings:
    return SamplerSettings(
        command=cfg.sampler.command,
        use_sudo=cfg.sampler.use_sudo,
        samplers=tuple(cfg.sampler.samplers),
        interval_ms=cfg.sampler.interval_ms,
        sample_count=cfg.sampler.sample_count,
        timeout_s=cfg.sampler.timeout_s,
        max_core_id=cfg.cpu.max_core_id,
        memory_profile=resolve_profile(cfg.memory.profile, cfg.memory.page_size, cfg.memory.used_categories),
    )
