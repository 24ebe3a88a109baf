"""Core controller services: settings, display mapping, control loop, and diagnostics."""

from .config import AppConfig, apply_env_overrides, load_config, save_config
from .control_loop import ControlLoop, LoopState, LoopStatus
from .diagnostics import DiagnosticsExporter, build_doctor_payload, read_loop_events
from .display import CRITICAL_PERCENT, DisplayMapper, is_critical, pointer_angle, worst

__all__ = [
    "AppConfig",
    "CRITICAL_PERCENT",
    "ControlLoop",
    "DiagnosticsExporter",
    "DisplayMapper",
    "LoopState",
    "LoopStatus",
    "apply_env_overrides",
    "build_doctor_payload",
    "is_critical",
    "load_config",
    "pointer_angle",
    "read_loop_events",
    "save_config",
    "worst",
]
