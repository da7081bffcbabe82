# pigg/application/control_surface.py
import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from pigg.application.connect_dialog import ConnectDialog
from pigg.application.hardware_connection_service import ConnectFn, DriverFactory, HardwareConnectionService
from pigg.application.hardware_sync_service import HardwareSyncService
from pigg.application.status_messages import StatusMessage, StatusMessageQueue
from pigg.core.chart_tick import post_chart_ticks
from pigg.domain.errors import ConfigParseError, ConnectionFailed, MalformedIdentity, MalformedRelayHint
from pigg.domain.events.surface_messages import BackendDisconnected, BackendInputChange, BackendReady, ChartTick
from pigg.domain.gpio.pin_function import PinFunction
from pigg.domain.gpio.pin_state import LevelChange
from pigg.domain.models.hardware_target import HardwareTarget, LocalHardware, NoHardware
from pigg.infrastructure.config.hardware_config_repository import (
    HardwareConfigRepository,
    hardware_config_repository,
)

logger = logging.getLogger(__name__)


class ControlSurface:
    """The application state of one control surface.

    Backend activity arrives as messages posted into `inbox` and is applied
    one at a time by `run()`, on the same loop as the user operations, so the
    sync engine is only ever touched from one place.
    """

    def __init__(
        self,
        *,
        sync: Optional[HardwareSyncService] = None,
        repository: Optional[HardwareConfigRepository] = None,
        connect_fn: Optional[ConnectFn] = None,
        driver_factory: Optional[DriverFactory] = None,
    ):
        self.inbox: asyncio.Queue = asyncio.Queue()
        self.sync = sync or HardwareSyncService()
        self.repository = repository or hardware_config_repository
        self.connections = HardwareConnectionService(
            self.post,
            connect_fn=connect_fn,
            driver_factory=driver_factory,
        )
        self.status = StatusMessageQueue()
        self.connect_dialog = ConnectDialog()
        self.config_filename: Optional[Path] = None
        self.unsaved_changes = False

    @property
    def target(self) -> HardwareTarget:
        return self.connections.target

    def post(self, message: object) -> None:
        self.inbox.put_nowait(message)

    async def run(self, chart_ticks: bool = True) -> None:
        tick_task = asyncio.create_task(post_chart_ticks(self.post)) if chart_ticks else None
        try:
            while True:
                message = await self.inbox.get()
                try:
                    self.update(message)
                except Exception:
                    logger.exception("Error handling %s", type(message).__name__)
        finally:
            if tick_task is not None:
                tick_task.cancel()

    async def drain(self) -> None:
        """Apply everything already posted, without waiting for more."""
        while not self.inbox.empty():
            self.update(self.inbox.get_nowait())

    def update(self, message: object) -> None:
        match message:
            case ChartTick():
                self.sync.refresh_charts()

            case BackendReady() | BackendInputChange() | BackendDisconnected() if (
                message.generation != self.connections.generation
            ):
                logger.debug("Dropping %s from superseded backend", type(message).__name__)

            case BackendReady(description=description, handle=handle):
                self.sync.on_ready(description, handle)
                self.connect_dialog.hide()
                self.status.add_message(StatusMessage.info(f"Connected to {self.sync.hw_model()}"))

            case BackendInputChange(bcm_pin_number=bcm_pin_number, level_change=level_change):
                self.sync.on_input_change(bcm_pin_number, level_change)

            case BackendDisconnected(generation=generation, reason=reason):
                self.sync.on_disconnected()
                self.connections.backend_lost(generation)
                self.status.add_message(StatusMessage.error("Connection to hardware lost", reason))

            case _:
                logger.warning("Unexpected message: %r", message)

    def select_function(self, board_pin_number: int, bcm_pin_number: int, function: PinFunction) -> bool:
        changed = self.sync.select_function(board_pin_number, bcm_pin_number, function)
        if changed:
            self.unsaved_changes = True
        return changed

    def set_output_level(self, bcm_pin_number: int, level: bool) -> None:
        self.sync.set_output_level(bcm_pin_number, LevelChange(new_level=level))

    def load_config(self, filename: Union[str, Path]) -> bool:
        try:
            config = self.repository.load(filename)
        except FileNotFoundError as exc:
            logger.warning("Could not load config: %s", exc)
            self.status.add_message(StatusMessage.error("Config file not found", str(exc)))
            return False
        except (ConfigParseError, OSError) as exc:
            logger.warning("Could not load config: %s", exc)
            self.status.add_message(StatusMessage.error(f"Could not load {filename}", str(exc)))
            return False

        self.sync.new_config(config)
        self.config_filename = Path(filename)
        self.unsaved_changes = False
        self.status.add_message(StatusMessage.info(f"File loaded: {Path(filename).name}"))
        return True

    def save_config(self, filename: Union[str, Path, None] = None) -> bool:
        target = filename or self.config_filename
        if target is None:
            raise ValueError("No filename to save the configuration to")

        try:
            saved_path = self.repository.save(self.sync.config, target)
        except OSError as exc:
            logger.warning("Could not save config: %s", exc)
            self.status.add_message(StatusMessage.error(f"Could not save {target}", str(exc)))
            return False

        self.config_filename = saved_path
        self.unsaved_changes = False
        self.status.add_message(StatusMessage.info(f"File saved: {saved_path.name}"))
        return True

    async def _switch(self, target: HardwareTarget) -> None:
        # Close the old handle first so nothing more goes to the previous backend
        self.sync.on_disconnected()
        await self.connections.switch_target(target)

    async def use_local(self) -> None:
        await self._switch(LocalHardware())

    async def disconnect(self) -> None:
        await self._switch(NoHardware())

    async def connect_remote(self, node_id: Optional[str] = None, relay_url: Optional[str] = None) -> bool:
        """Connect to a piglet. Input and connection errors end up on the connect dialog."""
        if node_id is not None:
            self.connect_dialog.node_id = node_id
        if relay_url is not None:
            self.connect_dialog.relay_url = relay_url

        target = self.connect_dialog.connect_pressed()
        if target is None:
            return False

        try:
            await self._switch(target)
        except (ConnectionFailed, MalformedIdentity, MalformedRelayHint) as exc:
            logger.warning("Connection to %s failed: %s", target.node_id, exc)
            self.connect_dialog.connection_failed(str(exc))
            self.status.add_message(StatusMessage.error("Connection failed", str(exc)))
            return False

        return True

    async def stop(self) -> None:
        self.sync.on_disconnected()
        await self.connections.stop()
