"""Environment report and diagnostics export for support bundles."""

from __future__ import annotations

import json
import platform
import re
import shutil
import tempfile
import zipfile
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

try:
    import psutil
except Exception:  # pragma: no cover
    psutil = None

from .config import AppConfig, config_path, to_sampler_settings
from .logging_setup import log_dir


_SECRET_RE = re.compile(r"(token|secret|password|apikey|api_key|auth)", re.IGNORECASE)

REQUIRED_TOOLS = ("powermetrics", "sysctl", "vm_stat", "sudo")


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Path):
        return str(value)
    return value


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if _SECRET_RE.search(k):
                out[k] = "***REDACTED***"
            else:
                out[k] = redact(v)
        return out
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def _host_resources() -> dict[str, Any]:
    if psutil is None:
        return {"logical_cpus": None, "physical_cpus": None, "memory_total": None}
    return {
        "logical_cpus": psutil.cpu_count(logical=True),
        "physical_cpus": psutil.cpu_count(logical=False),
        "memory_total": int(psutil.virtual_memory().total),
    }


def build_doctor_payload(cfg: AppConfig) -> dict[str, Any]:
    settings = to_sampler_settings(cfg)
    command, args = settings.argv()
    resources = _host_resources()
    warnings: list[str] = []

    tools = {name: shutil.which(name) for name in REQUIRED_TOOLS}
    if platform.system() != "Darwin":
        warnings.append("powermetrics output is only available on macOS")
    if tools["powermetrics"] is None:
        warnings.append("powermetrics not found on PATH")
    logical = resources.get("logical_cpus")
    if logical and logical > settings.max_core_id:
        warnings.append(f"max_core_id={settings.max_core_id} is below the {logical} logical CPUs on this host")

    return {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "machine": platform.machine(),
        "python": platform.python_version(),
        "tools": tools,
        "host": resources,
        "sampler_command": [command, *args],
        "memory_profile": asdict(settings.memory_profile),
        "config": redact(asdict(cfg)),
        "warnings": warnings,
    }


class DiagnosticsExporter:
    def __init__(self, app_name: str = "PowerMonitor") -> None:
        self.app_name = app_name

    def bundle(
        self,
        cfg: AppConfig,
        doctor_payload: dict[str, Any],
        transcript: str | None = None,
        output_dir: Path | None = None,
    ) -> Path:
        output_base = output_dir or Path(tempfile.gettempdir())
        output_base.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        zip_path = output_base / f"powermonitor-diagnostics-{stamp}.zip"

        logs = sorted(log_dir().glob("*.log*"))

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            manifest = {
                "app": self.app_name,
                "created_utc": datetime.now(timezone.utc).isoformat(),
                "host": platform.platform(),
                "python": platform.python_version(),
                "config_path": str(config_path()),
                "log_dir": str(log_dir()),
            }
            zf.writestr("manifest.json", json.dumps(manifest, indent=2, sort_keys=True))
            zf.writestr("doctor.json", json.dumps(redact(doctor_payload), indent=2, sort_keys=True, default=_jsonable))
            zf.writestr("config.redacted.json", json.dumps(redact(asdict(cfg)), indent=2, sort_keys=True))
            if transcript:
                zf.writestr("powermetrics.txt", transcript)

            for item in logs:
                zf.write(item, arcname=f"logs/{item.name}")

        return zip_path
