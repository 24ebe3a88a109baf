"""GPIO actuator package for indicator lights and the pointer servo."""

from .driver import ActuatorDriver
from .models import HOME_ANGLE, INDICATOR_ROLES, SERVO_RANGE, PinLevel, PinRole, PinTable, angle_to_duty
from .transport import DryRunTransport, GpioTransport

__all__ = [
    "ActuatorDriver",
    "DryRunTransport",
    "GpioTransport",
    "HOME_ANGLE",
    "INDICATOR_ROLES",
    "PinLevel",
    "PinRole",
    "PinTable",
    "SERVO_RANGE",
    "angle_to_duty",
]
