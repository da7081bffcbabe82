from abc import ABC, abstractmethod
from typing import Callable

from pigg.domain.gpio.pin_description import HardwareDescription
from pigg.domain.gpio.pin_function import PinFunction

# Called with (bcm_pin_number, level); may be invoked from a driver thread.
InputCallback = Callable[[int, bool], None]


class GPIODriver(ABC):
    """The operations a hardware backend needs from a board."""

    @abstractmethod
    def description(self) -> HardwareDescription:
        ...

    @abstractmethod
    def configure_pin(self, bcm_pin_number: int, function: PinFunction, on_input: InputCallback) -> None:
        """Put a pin into `function`. NoFunction releases it."""

    @abstractmethod
    def write(self, bcm_pin_number: int, level: bool) -> None:
        ...

    @abstractmethod
    def read(self, bcm_pin_number: int) -> bool:
        ...

    @abstractmethod
    def close(self) -> None:
        ...
