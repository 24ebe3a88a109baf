"""Fetch, select, display, sleep: the dashboard control loop and its error display."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Protocol

from clusterdial_actuators import ActuatorDriver, PinLevel, PinTable
from clusterdial_metrics import FetchFailure, FetchResult, FetchSuccess

from .config import DEFAULT_SLEEP_SECONDS
from .display import DisplayMapper, worst
from .logging_setup import get_logger


_LOGGER = get_logger("loop")


class LoopState(str, Enum):
    INITIALIZING = "Initializing"
    RUNNING = "Running"
    DEBUG_CYCLE = "DebugCycle"
    ERROR_DISPLAY = "ErrorDisplay"
    SHUTTING_DOWN = "ShuttingDown"


@dataclass
class LoopStatus:
    state: LoopState = LoopState.INITIALIZING
    cycles: int = 0
    failures: int = 0
    last_error: str | None = None
    last_metric: str | None = None
    last_percent: int | None = None


class MetricsSource(Protocol):
    def fetch(self) -> FetchResult: ...


class ControlLoop:
    def __init__(
        self,
        source: MetricsSource,
        driver: ActuatorDriver,
        pins: PinTable | None = None,
        sleep_seconds: float = DEFAULT_SLEEP_SECONDS,
        debug_pause_s: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.source = source
        self.driver = driver
        self.pins = pins or driver.pins
        self.mapper = DisplayMapper(driver, self.pins)
        self.sleep_seconds = sleep_seconds
        self.debug_pause_s = debug_pause_s
        self._sleep = sleep
        self._status = LoopStatus()
        self._events: list[dict[str, Any]] = []

    @property
    def status(self) -> LoopStatus:
        return self._status

    def recent_events(self, limit: int = 200) -> list[dict[str, Any]]:
        return self._events[-limit:]

    def _log_event(self, event: str, level: int = logging.INFO, **fields: Any) -> None:
        row = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "state": self._status.state.value,
        }
        row.update(fields)
        self._events.append(row)
        if len(self._events) > 1000:
            self._events = self._events[-1000:]
        _LOGGER.log(
            level,
            "loop %s %s",
            event,
            fields,
            extra={"event": event, "state": row["state"], "fields": fields},
        )

    def show_error(self, reason: str) -> None:
        """Indicators dark, alarm lit; the pointer stays where it was."""
        self._status.state = LoopState.ERROR_DISPLAY
        self._status.failures += 1
        self._status.last_error = reason
        self._log_event("error_display", level=logging.WARNING, reason=reason)
        self.driver.indicators_off()
        self.driver.set_pin(self.pins.alarm, PinLevel.HIGH)

    def run_cycle(self) -> FetchResult:
        self._status.cycles += 1
        _LOGGER.info("updating metrics cycle=%s", self._status.cycles, extra={"event": "cycle_start"})
        result = self.source.fetch()

        if isinstance(result, FetchFailure):
            self.show_error(result.reason)
            return result

        self._status.state = LoopState.RUNNING
        metric = worst(result.snapshot)
        self.mapper.display(metric)
        self._status.last_error = None
        self._status.last_metric = metric.name
        self._status.last_percent = metric.percent
        self._log_event("display_ok", metric=metric.name, percent=metric.percent, angle=self.driver.last_angle)
        return result

    def run_debug(self) -> FetchResult:
        """Light everything, fetch once, then sweep the pointer through each metric."""
        self._status.state = LoopState.DEBUG_CYCLE
        self._log_event("debug_start")
        _LOGGER.info("testing lights", extra={"event": "debug_lights"})
        self.driver.all_on()
        result = self.source.fetch()
        self.driver.all_off()

        if isinstance(result, FetchSuccess):
            _LOGGER.info("testing pointer", extra={"event": "debug_pointer"})
            snapshot = result.snapshot
            for metric in (snapshot.cpu, snapshot.disk, snapshot.mem):
                self.mapper.display(metric)
                self._sleep(self.debug_pause_s)
        else:
            self._log_event("debug_fetch_failed", reason=result.reason)

        self._log_event("debug_done", ok=result.ok)
        return result

    def sleep_until_next_cycle(self) -> None:
        _LOGGER.info("sleeping %s seconds", self.sleep_seconds, extra={"event": "sleep"})
        self._sleep(self.sleep_seconds)

    def run(self, debug: bool = False, max_cycles: int | None = None) -> LoopStatus:
        """Own the driver for the whole run; teardown happens on every exit path.

        ``max_cycles`` bounds the loop for one-shot runs; ``None`` runs until the
        process is terminated.
        """
        with self.driver:
            try:
                if debug:
                    self.run_debug()
                self._status.state = LoopState.RUNNING
                self._log_event("loop_start", sleep_seconds=self.sleep_seconds)
                while max_cycles is None or self._status.cycles < max_cycles:
                    self.run_cycle()
                    if max_cycles is not None and self._status.cycles >= max_cycles:
                        break
                    self.sleep_until_next_cycle()
            finally:
                self._status.state = LoopState.SHUTTING_DOWN
                self._log_event("shutdown")
        return self._status
