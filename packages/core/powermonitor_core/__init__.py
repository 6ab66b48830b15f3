"""Core app services for settings, logging, and diagnostics."""

from .config import AppConfig, load_config, save_config, to_sampler_settings
from .diagnostics import DiagnosticsExporter, build_doctor_payload

__all__ = [
    "AppConfig",
    "DiagnosticsExporter",
    "build_doctor_payload",
    "load_config",
    "save_config",
    "to_sampler_settings",
]
