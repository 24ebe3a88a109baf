"""Typed models for pin roles, levels, and the pin-role table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


SERVO_RANGE = 180
HOME_ANGLE = SERVO_RANGE
PWM_FREQ_HZ = 50
MIN_DUTY_PERCENT = 2.5
DEGREES_PER_DUTY_PERCENT = 18.0


class PinRole(str, Enum):
    CPU = "cpu"
    MEMORY = "memory"
    DISK = "disk"
    ALARM = "alarm"
    SERVO = "servo"


class PinLevel(str, Enum):
    LOW = "low"
    HIGH = "high"


INDICATOR_ROLES = (PinRole.CPU, PinRole.MEMORY, PinRole.DISK)


@dataclass(frozen=True)
class PinTable:
    """Board-numbered pin assignment: blue=cpu, green=memory, yellow=disk, red=alarm."""

    servo: int = 3
    cpu: int = 5
    memory: int = 7
    disk: int = 11
    alarm: int = 13

    def __post_init__(self) -> None:
        pins = [self.servo, self.cpu, self.memory, self.disk, self.alarm]
        if len(set(pins)) != len(pins):
            raise ValueError(f"pin assignments must be unique, got {pins}")

    def pin_for(self, role: PinRole | str) -> int:
        return int(getattr(self, PinRole(role).value))

    def indicator_pins(self) -> tuple[int, int, int]:
        return (self.cpu, self.memory, self.disk)

    def light_pins(self) -> tuple[int, int, int, int]:
        return (self.cpu, self.memory, self.disk, self.alarm)

    def output_pins(self) -> tuple[int, ...]:
        return (self.servo, *self.light_pins())

    def as_dict(self) -> dict[str, int]:
        return {role.value: self.pin_for(role) for role in PinRole}


def angle_to_duty(angle: int) -> float:
    """Duty cycle percent for a 50 Hz hobby servo: 2.5% is 0 degrees, 12.5% is 180."""
    return angle / DEGREES_PER_DUTY_PERCENT + MIN_DUTY_PERCENT
