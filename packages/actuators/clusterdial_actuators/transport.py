"""GPIO transport abstraction for indicator lights and the pointer servo."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from .models import PWM_FREQ_HZ, PinTable

try:
    import RPi.GPIO as GPIO  # type: ignore
except Exception:  # pragma: no cover - not a Raspberry Pi or library missing
    GPIO = None


_LOGGER = logging.getLogger("clusterdial.gpio")


@dataclass
class GpioConfig:
    pins: PinTable
    pwm_hz: int = PWM_FREQ_HZ
    numbering: str = "board"


class GpioTransport:
    """Thin wrapper over RPi.GPIO with the output setup this hardware expects."""

    def __init__(self) -> None:
        self._pwm: Any | None = None
        self.config: GpioConfig | None = None

    @staticmethod
    def available() -> bool:
        return GPIO is not None

    @property
    def is_open(self) -> bool:
        return self.config is not None

    def open(self, pins: PinTable, pwm_hz: int = PWM_FREQ_HZ, numbering: str = "board") -> None:
        if GPIO is None:
            raise RuntimeError("RPi.GPIO is required")
        if self.is_open:
            return
        GPIO.setwarnings(False)
        GPIO.setmode(GPIO.BCM if numbering == "bcm" else GPIO.BOARD)
        for pin in pins.output_pins():
            GPIO.setup(pin, GPIO.OUT, initial=GPIO.LOW)
        self._pwm = GPIO.PWM(pins.servo, pwm_hz)
        self._pwm.start(0)
        self.config = GpioConfig(pins=pins, pwm_hz=pwm_hz, numbering=numbering)
        _LOGGER.info("gpio opened pins=%s pwm_hz=%s", pins.as_dict(), pwm_hz, extra={"event": "gpio_open"})

    def close(self) -> None:
        if self.config is None:
            return
        self.stop_pwm()
        GPIO.cleanup(list(self.config.pins.output_pins()))
        self.config = None
        _LOGGER.info("gpio closed", extra={"event": "gpio_close"})

    def write(self, pin: int, high: bool) -> None:
        if not self.is_open:
            raise RuntimeError("GPIO is not open")
        GPIO.output(pin, GPIO.HIGH if high else GPIO.LOW)

    def set_duty(self, duty: float) -> None:
        if self._pwm is None:
            raise RuntimeError("PWM is not running")
        self._pwm.ChangeDutyCycle(duty)

    def stop_pwm(self) -> None:
        if self._pwm is not None:
            self._pwm.stop()
            self._pwm = None


DUTY_HISTORY = 256


@dataclass
class DryRunTransport:
    """Logs every output instead of driving hardware; keeps the last level per pin."""

    levels: dict[int, bool] = field(default_factory=dict)
    duties: deque[float] = field(default_factory=lambda: deque(maxlen=DUTY_HISTORY))
    pwm_running: bool = False
    config: GpioConfig | None = None

    @property
    def is_open(self) -> bool:
        return self.config is not None

    def open(self, pins: PinTable, pwm_hz: int = PWM_FREQ_HZ, numbering: str = "board") -> None:
        if self.is_open:
            return
        self.config = GpioConfig(pins=pins, pwm_hz=pwm_hz, numbering=numbering)
        for pin in pins.output_pins():
            self.levels[pin] = False
        self.pwm_running = True
        _LOGGER.info("[dry-run] open pins=%s pwm_hz=%s", pins.as_dict(), pwm_hz, extra={"event": "gpio_open"})

    def close(self) -> None:
        if self.config is None:
            return
        self.stop_pwm()
        self.config = None
        _LOGGER.info("[dry-run] close", extra={"event": "gpio_close"})

    def write(self, pin: int, high: bool) -> None:
        if not self.is_open:
            raise RuntimeError("GPIO is not open")
        self.levels[pin] = high
        _LOGGER.debug("[dry-run] pin %s -> %s", pin, "high" if high else "low")

    def set_duty(self, duty: float) -> None:
        if not self.pwm_running:
            raise RuntimeError("PWM is not running")
        self.duties.append(duty)
        _LOGGER.debug("[dry-run] duty -> %.2f", duty)

    def stop_pwm(self) -> None:
        self.pwm_running = False
