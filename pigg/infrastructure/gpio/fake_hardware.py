# pigg/infrastructure/gpio/fake_hardware.py
import logging
from typing import Dict, Optional

from pigg.domain.gpio.header_layout import HEADER_40_PIN
from pigg.domain.gpio.pin_description import HardwareDescription, HardwareDetails
from pigg.domain.gpio.pin_function import Input, NoFunction, Output, PinFunction
from pigg.infrastructure.gpio.driver import GPIODriver, InputCallback

logger = logging.getLogger(__name__)

FAKE_DETAILS = HardwareDetails(
    hardware="fake",
    revision="unknown",
    serial="unknown",
    model="Fake Hardware",
)


class FakeHardware(GPIODriver):
    """A simulated 40-pin board, used off-Pi and in tests."""

    def __init__(self):
        self.functions: Dict[int, PinFunction] = {}
        self.levels: Dict[int, bool] = {}
        self.callbacks: Dict[int, InputCallback] = {}

    def description(self) -> HardwareDescription:
        return HardwareDescription(details=FAKE_DETAILS, pins=HEADER_40_PIN)

    def configure_pin(self, bcm_pin_number: int, function: PinFunction, on_input: InputCallback) -> None:
        self.callbacks.pop(bcm_pin_number, None)

        if isinstance(function, NoFunction):
            self.functions.pop(bcm_pin_number, None)
            self.levels.pop(bcm_pin_number, None)
            logger.debug("Fake pin %s released", bcm_pin_number)
            return

        self.functions[bcm_pin_number] = function

        if isinstance(function, Input):
            self.callbacks[bcm_pin_number] = on_input
            self.levels.setdefault(bcm_pin_number, False)
        elif isinstance(function, Output) and function.level is not None:
            self.levels[bcm_pin_number] = function.level

        logger.debug("Fake pin %s configured as %s", bcm_pin_number, function)

    def write(self, bcm_pin_number: int, level: bool) -> None:
        self.levels[bcm_pin_number] = level

    def read(self, bcm_pin_number: int) -> bool:
        return self.levels.get(bcm_pin_number, False)

    def simulate_input(self, bcm_pin_number: int, level: bool) -> Optional[bool]:
        """Drive an input pin from outside, firing its callback like a real edge would."""
        callback = self.callbacks.get(bcm_pin_number)
        if callback is None:
            return None
        self.levels[bcm_pin_number] = level
        callback(bcm_pin_number, level)
        return level

    def close(self) -> None:
        self.functions.clear()
        self.callbacks.clear()
