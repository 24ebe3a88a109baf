"""Worst-metric selection and the metric-to-lights/pointer mapping."""

from __future__ import annotations

from clusterdial_actuators import SERVO_RANGE, ActuatorDriver, PinLevel, PinTable
from clusterdial_metrics import ClusterSnapshot, Metric

from .logging_setup import get_logger


CRITICAL_PERCENT = 95

_LOGGER = get_logger("display")


def worst(snapshot: ClusterSnapshot) -> Metric:
    """Highest percent wins; ties go to the earliest of cpu, mem, disk."""
    selected = snapshot.cpu
    for metric in (snapshot.mem, snapshot.disk):
        if metric.percent > selected.percent:
            selected = metric
    return selected


def pointer_angle(percent: int) -> int:
    """0% points at 180 degrees, 100% at 0; the scaled value is rounded up first."""
    scaled = -(-percent * SERVO_RANGE // 100)
    return SERVO_RANGE - scaled


def is_critical(percent: int) -> bool:
    return percent >= CRITICAL_PERCENT


class DisplayMapper:
    def __init__(self, driver: ActuatorDriver, pins: PinTable) -> None:
        self.driver = driver
        self.pins = pins

    def light_indicator(self, metric: Metric) -> None:
        selected = self.pins.pin_for(metric.indicator.value)
        for pin in self.pins.indicator_pins():
            if pin != selected:
                self.driver.set_pin(pin, PinLevel.LOW)
        self.driver.set_pin(selected, PinLevel.HIGH)

    def update_alarm(self, percent: int) -> None:
        if is_critical(percent):
            _LOGGER.info("metric at critical percent %s", percent, extra={"event": "alarm_on"})
            self.driver.set_pin(self.pins.alarm, PinLevel.HIGH)
        else:
            _LOGGER.info("metric not at critical percent: %s", percent, extra={"event": "alarm_off"})
            self.driver.set_pin(self.pins.alarm, PinLevel.LOW)

    def display(self, metric: Metric) -> None:
        _LOGGER.info("displaying %s at %s%%", metric.name, metric.percent, extra={"event": "display"})
        self.light_indicator(metric)
        self.update_alarm(metric.percent)
        self.driver.set_pointer_angle(pointer_angle(metric.percent))
