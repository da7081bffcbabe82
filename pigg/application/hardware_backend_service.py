# pigg/application/hardware_backend_service.py
import asyncio
import logging
from typing import Callable, List, Optional

from pigg.domain.events.hardware_events import (
    HardwareEventType,
    NewConfigEvent,
    NewPinConfigEvent,
    OutputLevelChangedEvent,
)
from pigg.domain.gpio.pin_description import HardwareDescription
from pigg.domain.gpio.pin_function import NONE, Input, NoFunction, Output, PinFunction
from pigg.domain.gpio.pin_state import LevelChange
from pigg.domain.models.hardware_config import HardwareConfig
from pigg.infrastructure.gpio.driver import GPIODriver

logger = logging.getLogger(__name__)

InputListener = Callable[[int, LevelChange], None]


class HardwareBackendService:
    """Applies surface events to a GPIO driver and reports input level changes.

    Input edges may be reported by the driver from its own thread; they are
    moved onto the event loop before listeners see them.
    """

    def __init__(self, driver: GPIODriver, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.driver = driver
        self.applied = HardwareConfig()
        self._listeners: List[InputListener] = []
        self._loop = loop

    def description(self) -> HardwareDescription:
        return self.driver.description()

    def add_input_listener(self, listener: InputListener) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._listeners.append(listener)

    def remove_input_listener(self, listener: InputListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _on_driver_input(self, bcm_pin_number: int, level: bool) -> None:
        if self._loop is None:
            # Nobody is listening yet
            return
        self._loop.call_soon_threadsafe(self._emit_input, bcm_pin_number, LevelChange(new_level=level))

    def _emit_input(self, bcm_pin_number: int, level_change: LevelChange) -> None:
        if not isinstance(self.applied.get(bcm_pin_number), Input):
            logger.debug("Ignoring input edge on BCM %s, no longer an input", bcm_pin_number)
            return
        for listener in list(self._listeners):
            listener(bcm_pin_number, level_change)

    def _configure(self, bcm_pin_number: int, function: PinFunction) -> None:
        self.driver.configure_pin(bcm_pin_number, function, self._on_driver_input)

        if isinstance(function, NoFunction):
            self.applied.configured_pins = [
                entry for entry in self.applied.configured_pins
                if entry.bcm_pin_number != bcm_pin_number
            ]
        else:
            self.applied.upsert(bcm_pin_number, function)

        if isinstance(function, Input):
            # Report the starting level so the surface has something to show
            self._emit_input(bcm_pin_number, LevelChange(new_level=self.driver.read(bcm_pin_number)))

    def apply_config(self, config: HardwareConfig) -> None:
        new_pins = config.as_dict()

        for entry in list(self.applied.configured_pins):
            if entry.bcm_pin_number not in new_pins:
                self._configure(entry.bcm_pin_number, NONE)

        for entry in config.configured_pins:
            self._configure(entry.bcm_pin_number, entry.function)

        logger.info("HardwareBackend: applied config with %d pins", len(config))

    def apply_pin_config(self, bcm_pin_number: int, function: PinFunction) -> None:
        self._configure(bcm_pin_number, function)
        logger.info("HardwareBackend: BCM %s set to %s", bcm_pin_number, function)

    def set_output_level(self, bcm_pin_number: int, level_change: LevelChange) -> bool:
        if not isinstance(self.applied.get(bcm_pin_number), Output):
            logger.warning(
                "HardwareBackend: BCM %s is not an output, ignoring level %s",
                bcm_pin_number,
                level_change.new_level,
            )
            return False

        self.driver.write(bcm_pin_number, level_change.new_level)
        logger.debug("HardwareBackend: BCM %s driven %s", bcm_pin_number, level_change.new_level)
        return True

    def handle_event(self, event) -> None:
        match event.event_type:
            case HardwareEventType.NEW_CONFIG:
                return self._handle_new_config(event)

            case HardwareEventType.NEW_PIN_CONFIG:
                return self._handle_new_pin_config(event)

            case HardwareEventType.OUTPUT_LEVEL_CHANGED:
                return self._handle_output_level_changed(event)

            case _:
                logger.warning(f"HardwareBackend: unexpected event type: {event.event_type}")
                return None

    def _handle_new_config(self, event: NewConfigEvent) -> None:
        self.apply_config(event.payload.config)

    def _handle_new_pin_config(self, event: NewPinConfigEvent) -> None:
        self.apply_pin_config(event.payload.bcm_pin_number, event.payload.function)

    def _handle_output_level_changed(self, event: OutputLevelChangedEvent) -> None:
        self.set_output_level(event.payload.bcm_pin_number, event.payload.level_change)

    def close(self) -> None:
        self._listeners.clear()
        self.driver.close()
