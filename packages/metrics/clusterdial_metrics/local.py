"""Host-local metrics source backed by psutil, for bench runs without a cluster."""

from __future__ import annotations

import logging
import math

import psutil

from .models import ClusterSnapshot, FetchFailure, FetchResult, FetchSuccess


_LOGGER = logging.getLogger("clusterdial.metrics")


def _ceil_percent(value: float) -> int:
    return max(0, min(100, math.ceil(round(float(value), 6))))


class LocalSource:
    """Single polling source reading this controller's own cpu, memory and disk usage."""

    def __init__(self, disk_path: str = "/") -> None:
        self.disk_path = disk_path
        # Prime non-blocking CPU measurement.
        psutil.cpu_percent(interval=None)

    def fetch(self) -> FetchResult:
        try:
            cpu = psutil.cpu_percent(interval=None)
            mem = psutil.virtual_memory().percent
            disk = psutil.disk_usage(self.disk_path).percent
        except (OSError, psutil.Error) as exc:
            _LOGGER.warning("local metrics failed: %s", exc, extra={"event": "fetch_failed"})
            return FetchFailure(reason=f"local metrics error: {exc}")

        snapshot = ClusterSnapshot.from_percents(
            cpu=_ceil_percent(cpu),
            mem=_ceil_percent(mem),
            disk=_ceil_percent(disk),
        )
        _LOGGER.info(
            "local metrics cpu=%s mem=%s disk=%s",
            snapshot.cpu.percent,
            snapshot.mem.percent,
            snapshot.disk.percent,
            extra={"event": "fetch_ok"},
        )
        return FetchSuccess(snapshot=snapshot)
