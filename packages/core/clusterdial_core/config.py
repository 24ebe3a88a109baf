"""Persistent controller settings schema, environment overrides, and load/save helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Mapping

from clusterdial_actuators import PinTable


CONFIG_VERSION = 1
DEFAULT_SLEEP_SECONDS = 43200

_LOGGER = logging.getLogger("clusterdial.config")


@dataclass
class SourceConfig:
    kind: str = "insights"
    account_id: str | None = None
    query: str | None = None
    query_key: str | None = None
    timeout_s: float = 30.0
    disk_path: str = "/"


@dataclass
class DeviceConfig:
    dry_run: bool = False
    numbering: str = "board"
    servo: int = 3
    cpu: int = 5
    memory: int = 7
    disk: int = 11
    alarm: int = 13

    def pin_table(self) -> PinTable:
        return PinTable(servo=self.servo, cpu=self.cpu, memory=self.memory, disk=self.disk, alarm=self.alarm)


@dataclass
class PointerConfig:
    pwm_hz: int = 50
    settle_s: float = 1.0


@dataclass
class LoopConfig:
    sleep_seconds: int = DEFAULT_SLEEP_SECONDS
    debug: bool = False
    debug_pause_s: float = 5.0


@dataclass
class DiagnosticsConfig:
    keep_log_files: int = 7


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    source: SourceConfig = field(default_factory=SourceConfig)
    device: DeviceConfig = field(default_factory=DeviceConfig)
    pointer: PointerConfig = field(default_factory=PointerConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def config_root() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    return (Path(base) if base else Path.home() / ".config") / "clusterdial"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in (raw or {}).items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_source(cfg: AppConfig) -> None:
    if cfg.source.kind not in ("insights", "local"):
        cfg.source.kind = "insights"
    cfg.source.timeout_s = float(max(1.0, min(300.0, float(cfg.source.timeout_s))))


def _normalize_device(cfg: AppConfig) -> None:
    if cfg.device.numbering not in ("board", "bcm"):
        cfg.device.numbering = "board"


def _normalize_pointer(cfg: AppConfig) -> None:
    cfg.pointer.pwm_hz = max(1, int(cfg.pointer.pwm_hz))
    cfg.pointer.settle_s = float(max(0.1, min(5.0, float(cfg.pointer.settle_s))))


def _normalize_loop(cfg: AppConfig) -> None:
    cfg.loop.sleep_seconds = max(1, int(cfg.loop.sleep_seconds))
    cfg.loop.debug_pause_s = float(max(0.0, float(cfg.loop.debug_pause_s)))


def normalize(cfg: AppConfig) -> AppConfig:
    _normalize_source(cfg)
    _normalize_device(cfg)
    _normalize_pointer(cfg)
    _normalize_loop(cfg)
    cfg.diagnostics.keep_log_files = max(2, int(cfg.diagnostics.keep_log_files))
    return cfg


def apply_env_overrides(cfg: AppConfig, env: Mapping[str, str]) -> AppConfig:
    """Apply the deployment environment on top of file settings."""
    if env.get("NEW_RELIC_ACCOUNT_ID"):
        cfg.source.account_id = env["NEW_RELIC_ACCOUNT_ID"]
    if env.get("INSIGHTS_QUERY"):
        cfg.source.query = env["INSIGHTS_QUERY"]
    if env.get("NEW_RELIC_INSIGHTS_QUERY_KEY"):
        cfg.source.query_key = env["NEW_RELIC_INSIGHTS_QUERY_KEY"]
    # Only the literal "true" turns debug on; anything else leaves the file setting alone.
    if env.get("DEBUG", "").strip().lower() == "true":
        cfg.loop.debug = True
    if env.get("SLEEP_SECONDS"):
        try:
            cfg.loop.sleep_seconds = int(env["SLEEP_SECONDS"])
        except ValueError:
            _LOGGER.warning(
                "ignoring SLEEP_SECONDS=%r, keeping %s seconds",
                env["SLEEP_SECONDS"],
                cfg.loop.sleep_seconds,
                extra={"event": "config_bad_env"},
            )
    return cfg


def load_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
    path = path or config_path()
    env = os.environ if env is None else env

    data: dict[str, Any] = {}
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            data = {}

    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        source=_merge(SourceConfig, data.get("source", {})),
        device=_merge(DeviceConfig, data.get("device", {})),
        pointer=_merge(PointerConfig, data.get("pointer", {})),
        loop=_merge(LoopConfig, data.get("loop", {})),
        diagnostics=_merge(DiagnosticsConfig, data.get("diagnostics", {})),
    )

    apply_env_overrides(cfg, env)
    return normalize(cfg)


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
