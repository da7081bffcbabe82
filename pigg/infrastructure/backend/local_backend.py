import asyncio
import logging
from typing import Callable

from pigg.application.hardware_backend_service import HardwareBackendService
from pigg.domain.events.surface_messages import BackendDisconnected, BackendInputChange, BackendReady
from pigg.domain.gpio.pin_state import LevelChange
from pigg.infrastructure.backend.backend_handle import LocalBackendHandle
from pigg.infrastructure.gpio.driver import GPIODriver

logger = logging.getLogger(__name__)


class LocalBackend:
    """Runs the hardware backend inside the control surface's process."""

    def __init__(self, driver: GPIODriver, post: Callable[[object], None], generation: int):
        self.backend = HardwareBackendService(driver)
        self.handle = LocalBackendHandle()
        self._post = post
        self._generation = generation
        self._closed = False

    def _on_input(self, bcm_pin_number: int, level_change: LevelChange) -> None:
        self._post(BackendInputChange(self._generation, bcm_pin_number, level_change))

    async def run(self) -> None:
        self.backend.add_input_listener(self._on_input)
        self._post(BackendReady(self._generation, self.backend.description(), self.handle))
        logger.info("Local hardware backend ready")

        try:
            while True:
                event = await self.handle.queue.get()
                self.backend.handle_event(event)
        except asyncio.CancelledError:
            logger.info("Local hardware backend stopping")
            raise
        except Exception as exc:
            logger.exception("Local hardware backend failed")
            self._post(BackendDisconnected(self._generation, f"Local hardware failed: {exc}"))
        finally:
            await self.close()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.handle.close()
        self.backend.close()
