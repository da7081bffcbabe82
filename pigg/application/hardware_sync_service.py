# pigg/application/hardware_sync_service.py
import logging
from typing import List, Optional

from pigg.core.config import settings
from pigg.domain.events.hardware_events import new_config, new_pin_config, output_level_changed
from pigg.domain.gpio.enums import ConfigSyncState
from pigg.domain.gpio.header_layout import HEADER_40_PIN
from pigg.domain.gpio.pin_description import HardwareDescription, PinDescriptionSet
from pigg.domain.gpio.pin_function import NONE, Input, NoFunction, Output, PinFunction
from pigg.domain.gpio.pin_state import LevelChange, PinState
from pigg.domain.models.hardware_config import HardwareConfig
from pigg.infrastructure.backend.backend_handle import BackendHandle

logger = logging.getLogger(__name__)

NO_HARDWARE = "No Hardware connected"


class HardwareSyncService:
    """Keeps the desired configuration, the live pin view and one backend in step.

    The configuration may be loaded before any backend is ready, and the
    user may keep editing while disconnected. Until a backend reports Ready
    nothing is sent and the configuration is PENDING; on Ready the whole
    configuration goes out as one NewConfig and it becomes APPLIED. After
    that, every change is forwarded as it happens.

    LiveState is an arena of PinState slots indexed by board position - 1.
    """

    def __init__(self, default_pins: PinDescriptionSet = HEADER_40_PIN, chart_samples: Optional[int] = None):
        self._default_pins = default_pins
        self._chart_samples = chart_samples or settings.CHART_SAMPLES

        self.config = HardwareConfig()
        self.hardware_description: Optional[HardwareDescription] = None
        self.handle: Optional[BackendHandle] = None
        self.sync_state = ConfigSyncState.PENDING
        self.pin_states: List[PinState] = self._new_arena(default_pins)

    def _new_arena(self, pins: PinDescriptionSet) -> List[PinState]:
        return [PinState(chart_samples=self._chart_samples) for _ in range(pins.size)]

    @property
    def pins(self) -> PinDescriptionSet:
        if self.hardware_description is not None:
            return self.hardware_description.pins
        return self._default_pins

    @property
    def connected(self) -> bool:
        return self.handle is not None and not self.handle.closed

    def pin_state(self, board_pin_number: int) -> Optional[PinState]:
        if not 1 <= board_pin_number <= len(self.pin_states):
            return None
        return self.pin_states[board_pin_number - 1]

    def pin_state_for_bcm(self, bcm_pin_number: int) -> Optional[PinState]:
        board_pin_number = self.pins.bcm_to_board(bcm_pin_number)
        if board_pin_number is None:
            return None
        return self.pin_state(board_pin_number)

    def _send(self, event) -> bool:
        if not self.connected:
            return False
        return self.handle.send(event)

    def _set_pin_functions_after_load(self) -> None:
        for pin_state in self.pin_states:
            pin_state.function = NONE

        for entry in self.config:
            pin_state = self.pin_state_for_bcm(entry.bcm_pin_number)
            if pin_state is None:
                logger.warning("Config entry for unknown BCM pin %s ignored", entry.bcm_pin_number)
                continue

            pin_state.function = entry.function

            # Seed outputs with their initial level so they show correctly before any edge
            if isinstance(entry.function, Output) and entry.function.level is not None:
                pin_state.set_level(LevelChange(new_level=entry.function.level))

    def apply_loaded_config(self, config: HardwareConfig) -> None:
        self.config = config.model_copy(deep=True)
        self._set_pin_functions_after_load()
        self.sync_state = ConfigSyncState.PENDING
        logger.info("Loaded config with %d pins", len(self.config))

    def new_config(self, config: HardwareConfig) -> bool:
        """Adopt a whole new configuration and forward it if a backend is ready."""
        self.apply_loaded_config(config)
        return self._update_hw_config()

    def _update_hw_config(self) -> bool:
        if self._send(new_config(self.config)):
            self.sync_state = ConfigSyncState.APPLIED
            return True
        return False

    def on_ready(self, description: HardwareDescription, handle: BackendHandle) -> None:
        if self.handle is not None and self.handle is not handle:
            self.handle.close()

        if description.pins.size != len(self.pin_states):
            self.pin_states = self._new_arena(description.pins)

        self.hardware_description = description
        self.handle = handle

        self.apply_loaded_config(self.config)
        self._update_hw_config()

        logger.info("Backend ready: %s", description.details.model)

    def on_disconnected(self) -> None:
        if self.handle is not None:
            self.handle.close()
        self.handle = None
        self.hardware_description = None
        self.sync_state = ConfigSyncState.PENDING

        if len(self.pin_states) != self._default_pins.size:
            self.pin_states = self._new_arena(self._default_pins)
            self._set_pin_functions_after_load()
        logger.info("Backend disconnected; configuration kept pending")

    def select_function(self, board_pin_number: int, bcm_pin_number: int, function: PinFunction) -> bool:
        """Change one pin's function. Returns False when nothing changed."""
        description = self.pins.get_by_board(board_pin_number)
        if description is None or description.bcm_pin_number is None:
            raise ValueError(f"Board pin {board_pin_number} is not a GPIO pin")
        if description.bcm_pin_number != bcm_pin_number:
            raise ValueError(
                f"Board pin {board_pin_number} is not BCM pin {bcm_pin_number}"
            )

        pin_state = self.pin_state(board_pin_number)
        if pin_state is None:
            raise ValueError(f"Board pin {board_pin_number} is outside the live pin view")

        if not isinstance(function, NoFunction) and not any(
            option.kind == function.kind for option in description.options
        ):
            raise ValueError(f"{function} is not available on {description.name}")

        if pin_state.function == function:
            return False

        self.config.upsert(bcm_pin_number, function)
        pin_state.function = function

        if not self._send(new_pin_config(bcm_pin_number, function)):
            self.sync_state = ConfigSyncState.PENDING

        return True

    def set_output_level(self, bcm_pin_number: int, level_change: LevelChange) -> None:
        pin_state = self.pin_state_for_bcm(bcm_pin_number)
        if pin_state is not None:
            pin_state.set_level(level_change)

        self._send(output_level_changed(bcm_pin_number, level_change))

    def on_input_change(self, bcm_pin_number: int, level_change: LevelChange) -> bool:
        pin_state = self.pin_state_for_bcm(bcm_pin_number)
        if pin_state is None or not isinstance(pin_state.function, Input):
            logger.debug("Discarding stale input change for BCM %s", bcm_pin_number)
            return False

        pin_state.set_level(level_change)
        return True

    def refresh_charts(self) -> None:
        for pin_state in self.pin_states:
            if not isinstance(pin_state.function, NoFunction):
                pin_state.refresh_chart()

    def hw_description(self) -> str:
        if self.hardware_description is None:
            return NO_HARDWARE
        return str(self.hardware_description.details)

    def hw_model(self) -> str:
        if self.hardware_description is None:
            return NO_HARDWARE
        return self.hardware_description.details.model
