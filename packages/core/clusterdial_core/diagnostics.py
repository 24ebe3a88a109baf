"""Diagnostics export helpers for unattended controllers."""

from __future__ import annotations

import json
import platform
import re
import tempfile
import zipfile
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import psutil

from clusterdial_actuators import GpioTransport

from .config import AppConfig, config_path
from .logging_setup import log_dir


_SECRET_RE = re.compile(r"(token|secret|password|api_?key|query_key|auth)", re.IGNORECASE)


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if _SECRET_RE.search(k) and v:
                out[k] = "***REDACTED***"
            else:
                out[k] = redact(v)
        return out
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def _host_payload() -> dict[str, Any]:
    vm = psutil.virtual_memory()
    return {
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory_percent": vm.percent,
        "boot_time_utc": datetime.fromtimestamp(psutil.boot_time(), timezone.utc).isoformat(),
    }


def build_doctor_payload(cfg: AppConfig) -> dict[str, Any]:
    return {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "machine": platform.machine(),
        "python": platform.python_version(),
        "gpio_available": GpioTransport.available(),
        "dry_run": cfg.device.dry_run,
        "pins": cfg.device.pin_table().as_dict(),
        "source": {
            "kind": cfg.source.kind,
            "configured": bool(cfg.source.account_id and cfg.source.query and cfg.source.query_key),
        },
        "host": _host_payload(),
        "config": redact(asdict(cfg)),
    }


def read_loop_events(limit: int = 200) -> list[dict[str, Any]]:
    """Rebuild recent control-loop events from the JSON log files, oldest first."""
    events: list[dict[str, Any]] = []
    for item in sorted(log_dir().glob("clusterdial.log*"), key=lambda p: p.stat().st_mtime):
        for line in item.read_text(encoding="utf-8", errors="replace").splitlines():
            try:
                record = json.loads(line)
            except ValueError:
                continue
            if not isinstance(record, dict) or "state" not in record:
                continue
            row = {"ts_utc": record.get("ts_utc"), "event": record.get("event"), "state": record["state"]}
            fields = record.get("fields")
            if isinstance(fields, dict):
                row.update(fields)
            events.append(row)
    return events[-limit:]


class DiagnosticsExporter:
    def __init__(self, app_name: str = "clusterdial") -> None:
        self.app_name = app_name

    def bundle(
        self,
        cfg: AppConfig,
        doctor_payload: dict[str, Any],
        recent_loop_events: list[dict[str, Any]] | None = None,
        output_dir: Path | None = None,
    ) -> Path:
        output_base = output_dir or Path(tempfile.gettempdir())
        output_base.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        zip_path = output_base / f"{self.app_name}-diagnostics-{stamp}.zip"
        logs = sorted(log_dir().glob("*.log*"))

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            manifest = {
                "app": self.app_name,
                "created_utc": datetime.now(timezone.utc).isoformat(),
                "host": platform.platform(),
                "config_path": str(config_path()),
                "log_dir": str(log_dir()),
            }
            zf.writestr("manifest.json", json.dumps(manifest, indent=2, sort_keys=True))
            zf.writestr("doctor.json", json.dumps(redact(doctor_payload), indent=2, sort_keys=True, default=str))
            zf.writestr("config.redacted.json", json.dumps(redact(asdict(cfg)), indent=2, sort_keys=True))
            zf.writestr(
                "loop_events.json",
                json.dumps(recent_loop_events or [], indent=2, sort_keys=True, default=str),
            )
            for item in logs:
                zf.write(item, arcname=f"logs/{item.name}")

        return zip_path
