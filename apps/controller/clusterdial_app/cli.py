"""CLI entrypoints for the cluster dial controller, one-shot fetches, and diagnostics."""

from __future__ import annotations

import argparse
import json
import signal
import sys
from dataclasses import asdict
from importlib import metadata
from pathlib import Path

from clusterdial_actuators import ActuatorDriver, DryRunTransport, GpioTransport
from clusterdial_core import (
    AppConfig,
    ControlLoop,
    DiagnosticsExporter,
    build_doctor_payload,
    is_critical,
    load_config,
    pointer_angle,
    read_loop_events,
    save_config,
    worst,
)
from clusterdial_core.config import config_path
from clusterdial_core.logging_setup import configure_logging, get_logger, install_crash_hooks
from clusterdial_metrics import FetchFailure, InsightsSource, LocalSource


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _installed_version() -> str:
    try:
        return metadata.version("clusterdial")
    except metadata.PackageNotFoundError:
        return "0.1.0"


def _load(args: argparse.Namespace) -> AppConfig:
    path = Path(args.config).expanduser() if getattr(args, "config", None) else None
    return load_config(path)


def build_source(cfg: AppConfig):
    if cfg.source.kind == "local":
        if LocalSource is None:
            raise RuntimeError("psutil is required for the local metrics source")
        return LocalSource(disk_path=cfg.source.disk_path)
    return InsightsSource(
        account_id=cfg.source.account_id,
        query=cfg.source.query,
        query_key=cfg.source.query_key,
        timeout_s=cfg.source.timeout_s,
    )


def build_driver(cfg: AppConfig) -> ActuatorDriver:
    transport = DryRunTransport() if cfg.device.dry_run else GpioTransport()
    return ActuatorDriver(
        transport,
        pins=cfg.device.pin_table(),
        settle_s=cfg.pointer.settle_s,
        pwm_hz=cfg.pointer.pwm_hz,
        numbering=cfg.device.numbering,
    )


def _raise_exit(signum, _frame) -> None:
    get_logger().info("received signal %s, stopping", signum, extra={"event": "signal"})
    raise SystemExit(0)


def cmd_run(args: argparse.Namespace) -> int:
    cfg = _load(args)
    if args.debug:
        cfg.loop.debug = True
    if args.sleep_seconds is not None:
        cfg.loop.sleep_seconds = max(1, args.sleep_seconds)
    if args.dry_run:
        cfg.device.dry_run = True

    install_crash_hooks()
    signal.signal(signal.SIGTERM, _raise_exit)
    signal.signal(signal.SIGINT, _raise_exit)

    loop = ControlLoop(
        source=build_source(cfg),
        driver=build_driver(cfg),
        pins=cfg.device.pin_table(),
        sleep_seconds=cfg.loop.sleep_seconds,
        debug_pause_s=cfg.loop.debug_pause_s,
    )
    get_logger().info(
        "starting control loop version=%s debug=%s dry_run=%s",
        _installed_version(),
        cfg.loop.debug,
        cfg.device.dry_run,
        extra={"event": "run_start"},
    )
    loop.run(debug=cfg.loop.debug, max_cycles=(1 if args.once else None))
    get_logger().info("done.", extra={"event": "run_done"})
    return 0


def cmd_fetch(args: argparse.Namespace) -> int:
    cfg = _load(args)
    result = build_source(cfg).fetch()
    if isinstance(result, FetchFailure):
        _print_json({"success": False, "reason": result.reason})
        return 2

    metric = worst(result.snapshot)
    _print_json(
        {
            "success": True,
            "snapshot": {m.name: m.percent for m in result.snapshot.metrics()},
            "worst": metric.name,
            "percent": metric.percent,
            "angle": pointer_angle(metric.percent),
            "alarm": is_critical(metric.percent),
        }
    )
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = _load(args)
    payload = build_doctor_payload(cfg)

    if args.export:
        exporter = DiagnosticsExporter()
        out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
        bundle = exporter.bundle(
            cfg=cfg,
            doctor_payload=payload,
            recent_loop_events=read_loop_events(),
            output_dir=out_dir,
        )
        payload["diagnostics_bundle"] = str(bundle)

    _print_json(payload)
    return 0


def cmd_config_init(args: argparse.Namespace) -> int:
    path = Path(args.config).expanduser() if args.config else config_path()
    if path.exists() and not args.force:
        print(f"config already exists at {path} (use --force to overwrite)", file=sys.stderr)
        return 1
    written = save_config(AppConfig(), path)
    _print_json({"config_path": str(written), "config": asdict(AppConfig())})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clusterdial", description="Cluster health dial controller and tools")
    parser.add_argument("--config", default=None, help="Path to config.json (default: ~/.config/clusterdial)")
    parser.add_argument("--verbose", action="store_true", help="Log pin-level writes")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", help="Run the dashboard control loop")
    run_cmd.add_argument("--debug", action="store_true", help="Exercise every light and the pointer first")
    run_cmd.add_argument("--sleep-seconds", type=int, default=None, help="Seconds between cycles")
    run_cmd.add_argument("--dry-run", action="store_true", help="Log pin writes instead of driving GPIO")
    run_cmd.add_argument("--once", action="store_true", help="Run a single cycle then tear down")
    run_cmd.set_defaults(func=cmd_run)

    fetch_cmd = sub.add_parser("fetch", help="Fetch metrics once and print what would be displayed")
    fetch_cmd.set_defaults(func=cmd_fetch)

    doctor_cmd = sub.add_parser("doctor", help="Print diagnostics and GPIO availability")
    doctor_cmd.add_argument("--export", action="store_true", help="Export offline diagnostics bundle")
    doctor_cmd.add_argument("--out-dir", default=None, help="Optional output directory for diagnostics bundle")
    doctor_cmd.set_defaults(func=cmd_doctor)

    config_cmd = sub.add_parser("config", help="Manage the config file")
    config_sub = config_cmd.add_subparsers(dest="config_cmd", required=True)
    init_cmd = config_sub.add_parser("init", help="Write the default config file")
    init_cmd.add_argument("--force", action="store_true")
    init_cmd.set_defaults(func=cmd_config_init)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = _load(args)
    configure_logging(
        keep_files=cfg.diagnostics.keep_log_files,
        console=(args.command == "run"),
        verbose=args.verbose,
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
