# pigg/infrastructure/gpio/rpi_hardware.py
import logging
from pathlib import Path
from typing import Dict

import RPi.GPIO as GPIO

from pigg.domain.gpio.enums import InputPull
from pigg.domain.gpio.header_layout import HEADER_40_PIN
from pigg.domain.gpio.pin_description import HardwareDescription, HardwareDetails
from pigg.domain.gpio.pin_function import Input, NoFunction, Output, PinFunction
from pigg.infrastructure.gpio.driver import GPIODriver, InputCallback

logger = logging.getLogger(__name__)

CPUINFO_PATH = Path("/proc/cpuinfo")

PULL_MAP = {
    None: GPIO.PUD_OFF,
    InputPull.NONE: GPIO.PUD_OFF,
    InputPull.PULL_UP: GPIO.PUD_UP,
    InputPull.PULL_DOWN: GPIO.PUD_DOWN,
}


def read_pi_details(cpuinfo_path: Path = CPUINFO_PATH) -> HardwareDetails:
    fields: Dict[str, str] = {}
    try:
        for line in cpuinfo_path.read_text(encoding="utf-8").splitlines():
            key, sep, value = line.partition(":")
            if sep:
                fields[key.strip()] = value.strip()
    except OSError as exc:
        logger.warning(f"Could not read {cpuinfo_path}: {exc}")

    return HardwareDetails(
        hardware=fields.get("Hardware", "BCM2835"),
        revision=fields.get("Revision", "unknown"),
        serial=fields.get("Serial", "unknown"),
        model=fields.get("Model", "Raspberry Pi"),
    )


class PiHardware(GPIODriver):

    def __init__(self):
        self._details = read_pi_details()
        self._configured: Dict[int, PinFunction] = {}

        try:
            GPIO.setwarnings(False)
            GPIO.setmode(GPIO.BCM)
        except RuntimeError as e:
            logger.error(f"GPIO init problem: {e}")

    def description(self) -> HardwareDescription:
        return HardwareDescription(details=self._details, pins=HEADER_40_PIN)

    def _release(self, bcm_pin_number: int) -> None:
        previous = self._configured.pop(bcm_pin_number, None)
        if isinstance(previous, Input):
            GPIO.remove_event_detect(bcm_pin_number)
        if previous is not None:
            GPIO.cleanup(bcm_pin_number)

    def configure_pin(self, bcm_pin_number: int, function: PinFunction, on_input: InputCallback) -> None:
        self._release(bcm_pin_number)

        if isinstance(function, NoFunction):
            logger.info(f"PiHardware: released pin {bcm_pin_number}")
            return

        if isinstance(function, Input):
            GPIO.setup(bcm_pin_number, GPIO.IN, pull_up_down=PULL_MAP[function.pull])

            def _edge(channel: int) -> None:
                on_input(channel, bool(GPIO.input(channel)))

            GPIO.add_event_detect(bcm_pin_number, GPIO.BOTH, callback=_edge)
        elif isinstance(function, Output):
            if function.level is None:
                GPIO.setup(bcm_pin_number, GPIO.OUT)
            else:
                GPIO.setup(
                    bcm_pin_number,
                    GPIO.OUT,
                    initial=GPIO.HIGH if function.level else GPIO.LOW,
                )

        self._configured[bcm_pin_number] = function
        logger.info(f"PiHardware: pin {bcm_pin_number} configured as {function}")

    def write(self, bcm_pin_number: int, level: bool) -> None:
        GPIO.output(bcm_pin_number, GPIO.HIGH if level else GPIO.LOW)

    def read(self, bcm_pin_number: int) -> bool:
        return bool(GPIO.input(bcm_pin_number))

    def close(self) -> None:
        for bcm_pin_number in list(self._configured):
            self._release(bcm_pin_number)
        logger.info("PiHardware: all pins released")
