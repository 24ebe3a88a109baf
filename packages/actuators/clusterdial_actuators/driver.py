"""Actuator driver: indicator pins, alarm pin, and pointer positioning."""

from __future__ import annotations

import logging
import time
from contextlib import ExitStack
from typing import Callable, Protocol

from .models import HOME_ANGLE, PWM_FREQ_HZ, SERVO_RANGE, PinLevel, PinTable, angle_to_duty


_LOGGER = logging.getLogger("clusterdial.actuators")


class Transport(Protocol):
    @property
    def is_open(self) -> bool: ...

    def open(self, pins: PinTable, pwm_hz: int = PWM_FREQ_HZ, numbering: str = "board") -> None: ...

    def close(self) -> None: ...

    def write(self, pin: int, high: bool) -> None: ...

    def set_duty(self, duty: float) -> None: ...

    def stop_pwm(self) -> None: ...


class ActuatorDriver:
    """Owns the transport for the process lifetime.

    Use as a context manager: entering opens the transport, drops every light and
    homes the pointer; leaving always runs ``teardown``.
    """

    def __init__(
        self,
        transport: Transport,
        pins: PinTable | None = None,
        settle_s: float = 1.0,
        pwm_hz: int = PWM_FREQ_HZ,
        numbering: str = "board",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.pins = pins or PinTable()
        self.settle_s = settle_s
        self.pwm_hz = pwm_hz
        self.numbering = numbering
        self._sleep = sleep
        self.last_angle: int | None = None

    def __enter__(self) -> ActuatorDriver:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.teardown()
        return False

    def open(self) -> None:
        _LOGGER.info("setting up pins", extra={"event": "driver_open"})
        self.transport.open(self.pins, pwm_hz=self.pwm_hz, numbering=self.numbering)
        try:
            self.all_off()
            self.home()
        except BaseException:
            self.teardown()
            raise

    def set_pin(self, pin: int, level: PinLevel) -> None:
        self.transport.write(pin, PinLevel(level) is PinLevel.HIGH)

    def set_pointer_angle(self, angle: int) -> None:
        if not 0 <= angle <= SERVO_RANGE:
            raise ValueError(f"angle must be within 0..{SERVO_RANGE}, got {angle}")
        duty = angle_to_duty(angle)
        _LOGGER.info("setting pointer to %s degrees with duty cycle %.2f", angle, duty, extra={"event": "pointer_move"})
        self.transport.set_duty(duty)
        self._sleep(self.settle_s)
        # Zero duty stops the servo hunting around the target.
        self.transport.set_duty(0)
        self.last_angle = angle

    def stop_pointer(self) -> None:
        self.transport.stop_pwm()

    def home(self) -> None:
        self.set_pointer_angle(HOME_ANGLE)

    def indicators_off(self) -> None:
        for pin in self.pins.indicator_pins():
            self.set_pin(pin, PinLevel.LOW)

    def all_off(self) -> None:
        for pin in self.pins.light_pins():
            self.set_pin(pin, PinLevel.LOW)

    def all_on(self) -> None:
        for pin in self.pins.light_pins():
            self.set_pin(pin, PinLevel.HIGH)

    def teardown(self) -> None:
        if not self.transport.is_open:
            return
        _LOGGER.info("tearing down", extra={"event": "driver_teardown"})
        # Callbacks unwind in reverse: stop the pointer, darken the lights, release the pins.
        with ExitStack() as stack:
            stack.callback(self.transport.close)
            stack.callback(self.all_off)
            stack.callback(self.stop_pointer)
            self.home()
