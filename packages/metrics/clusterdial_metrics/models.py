"""Typed cluster metric models and fetch results."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class IndicatorRole(str, Enum):
    CPU = "cpu"
    MEMORY = "memory"
    DISK = "disk"


def ratio_to_percent(ratio: float) -> int:
    """Convert a 0..1 utilization ratio into a whole percent, always rounding up.

    The product is rounded to 6 decimals first so float noise like
    ``0.07 * 100 == 7.000000000000001`` stays at 7.
    """
    value = float(ratio) * 100
    if not math.isfinite(value):
        raise ValueError(f"ratio must be finite, got {ratio!r}")
    percent = math.ceil(round(value, 6))
    return max(0, min(100, percent))


@dataclass(frozen=True)
class Metric:
    name: str
    percent: int
    indicator: IndicatorRole

    def __post_init__(self) -> None:
        if isinstance(self.percent, bool) or not isinstance(self.percent, int):
            raise TypeError(f"percent must be an int, got {type(self.percent).__name__}")
        if not 0 <= self.percent <= 100:
            raise ValueError(f"percent must be within 0..100, got {self.percent}")


@dataclass(frozen=True)
class ClusterSnapshot:
    cpu: Metric
    mem: Metric
    disk: Metric

    @classmethod
    def from_percents(cls, cpu: int, mem: int, disk: int) -> ClusterSnapshot:
        return cls(
            cpu=Metric("cpu", cpu, IndicatorRole.CPU),
            mem=Metric("memory", mem, IndicatorRole.MEMORY),
            disk=Metric("disk", disk, IndicatorRole.DISK),
        )

    def metrics(self) -> tuple[Metric, Metric, Metric]:
        return (self.cpu, self.mem, self.disk)


@dataclass(frozen=True)
class FetchSuccess:
    snapshot: ClusterSnapshot
    ok: bool = True


@dataclass(frozen=True)
class FetchFailure:
    reason: str
    ok: bool = False


FetchResult = FetchSuccess | FetchFailure
