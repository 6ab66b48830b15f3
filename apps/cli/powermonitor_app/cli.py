"""CLI entrypoints for PowerMonitor measurement, offline parsing, and diagnostics."""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

from powermonitor_core import DiagnosticsExporter, build_doctor_payload, load_config, to_sampler_settings
from powermonitor_core.config import AppConfig
from powermonitor_core.logging_setup import configure_logging, get_logger, install_crash_hooks
from powermonitor_telemetry import MeasurementError, MetricsSampler, parse_transcript


def _print_json(data: object, indent: int | None = 2) -> None:
    print(json.dumps(data, indent=indent, sort_keys=True, default=str), flush=True)


def _error_payload(exc: MeasurementError) -> dict[str, str]:
    return {"error": exc.code, "message": exc.message}


def _load(args: argparse.Namespace) -> AppConfig:
    return load_config(Path(args.config).expanduser() if getattr(args, "config", None) else None)


def _sampler(cfg: AppConfig) -> MetricsSampler:
    return MetricsSampler(settings=to_sampler_settings(cfg))


def cmd_measure(args: argparse.Namespace) -> int:
    sampler = _sampler(_load(args))
    try:
        if args.save_transcript:
            text = sampler.capture()
            Path(args.save_transcript).expanduser().write_text(text, encoding="utf-8")
            total, used = sampler.memory.read()
            snapshot = sampler.assemble(text, total, used)
        else:
            snapshot = sampler.measure()
    except MeasurementError as exc:
        _print_json(_error_payload(exc))
        return 2

    _print_json(snapshot.to_dict(active_only=args.active_only))
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    cfg = _load(args)
    sampler = _sampler(cfg)
    interval_ms = args.interval_ms if args.interval_ms is not None else cfg.poll.interval_ms
    interval_s = max(interval_ms, 100) / 1000
    logger = get_logger()

    taken = 0
    try:
        while args.count <= 0 or taken < args.count:
            started = time.monotonic()
            try:
                snapshot = sampler.measure()
            except MeasurementError as exc:
                logger.warning("measurement failed: %s", exc.message)
                _print_json(_error_payload(exc), indent=None)
            else:
                _print_json(snapshot.to_dict(active_only=args.active_only), indent=None)
            taken += 1
            if args.count > 0 and taken >= args.count:
                break
            time.sleep(max(0.0, interval_s - (time.monotonic() - started)))
    except KeyboardInterrupt:
        logger.info("watch stopped after %d measurements", taken)
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    cfg = _load(args)
    text = Path(args.transcript).expanduser().read_text(encoding="utf-8", errors="replace")
    try:
        snapshot = parse_transcript(text, to_sampler_settings(cfg))
    except MeasurementError as exc:
        _print_json(_error_payload(exc))
        return 2
    _print_json(snapshot.to_dict(active_only=args.active_only))
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = _load(args)
    payload = build_doctor_payload(cfg)

    if args.export:
        transcript = None
        if args.transcript:
            transcript = Path(args.transcript).expanduser().read_text(encoding="utf-8", errors="replace")
        exporter = DiagnosticsExporter()
        out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
        bundle = exporter.bundle(cfg=cfg, doctor_payload=payload, transcript=transcript, output_dir=out_dir)
        payload["diagnostics_bundle"] = str(bundle)

    _print_json(payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="powermonitor", description="CPU/GPU power and memory sampling for macOS")
    parser.add_argument("--config", default=None, help="Path to config.json (defaults to the per-user location)")
    parser.add_argument("--verbose", action="store_true", help="Log debug details")
    sub = parser.add_subparsers(dest="command", required=True)

    measure_cmd = sub.add_parser("measure", help="Take one measurement and print it as JSON")
    measure_cmd.add_argument("--active-only", action="store_true", help="Omit cores with no reported activity")
    measure_cmd.add_argument("--save-transcript", default=None, help="Also write raw powermetrics output here")
    measure_cmd.set_defaults(func=cmd_measure)

    watch_cmd = sub.add_parser("watch", help="Measure repeatedly, one JSON line per sample")
    watch_cmd.add_argument("--interval-ms", type=int, default=None)
    watch_cmd.add_argument("--count", type=int, default=0, help="Stop after N measurements (0 runs until interrupted)")
    watch_cmd.add_argument("--active-only", action="store_true")
    watch_cmd.set_defaults(func=cmd_watch)

    parse_cmd = sub.add_parser("parse", help="Parse a saved powermetrics transcript")
    parse_cmd.add_argument("--transcript", required=True, help="Path to captured powermetrics text")
    parse_cmd.add_argument("--active-only", action="store_true")
    parse_cmd.set_defaults(func=cmd_parse)

    doctor_cmd = sub.add_parser("doctor", help="Print environment diagnostics")
    doctor_cmd.add_argument("--export", action="store_true", help="Export offline diagnostics bundle")
    doctor_cmd.add_argument("--out-dir", default=None, help="Optional output directory for diagnostics bundle")
    doctor_cmd.add_argument("--transcript", default=None, help="Saved powermetrics text to include in the bundle")
    doctor_cmd.set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = _load(args)
    configure_logging(keep_files=cfg.diagnostics.keep_log_files, console=False, verbose=args.verbose)
    install_crash_hooks()
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
