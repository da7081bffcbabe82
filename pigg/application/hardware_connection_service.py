# pigg/application/hardware_connection_service.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from pigg.domain.models.hardware_target import HardwareTarget, LocalHardware, NoHardware, RemoteHardware
from pigg.infrastructure.backend.local_backend import LocalBackend
from pigg.infrastructure.backend.remote_backend import RemoteBackend
from pigg.infrastructure.gpio.driver import GPIODriver
from pigg.infrastructure.gpio.hardware import get_hardware
from pigg.infrastructure.transport.connection import Connection
from pigg.infrastructure.transport.endpoint import connect

logger = logging.getLogger(__name__)

ConnectFn = Callable[[str, str], Awaitable[Connection]]
DriverFactory = Callable[[], GPIODriver]
Backend = Union[LocalBackend, RemoteBackend]


@dataclass
class HardwareSwitchResult:
    previous_target: HardwareTarget
    target: HardwareTarget
    generation: int


class HardwareConnectionService:
    """Owns the one backend relationship a control surface has at a time.

    Every switch tears the previous backend down completely, then bumps the
    generation number that tags everything the new backend posts.
    """

    def __init__(
        self,
        post: Callable[[object], None],
        *,
        connect_fn: Optional[ConnectFn] = None,
        driver_factory: Optional[DriverFactory] = None,
    ):
        self._post = post
        self._connect_fn = connect_fn or connect
        self._driver_factory = driver_factory or get_hardware
        self._backend: Optional[Backend] = None
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

        self.target: HardwareTarget = NoHardware()
        self.generation = 0

    async def _teardown(self) -> None:
        task, backend = self._task, self._backend
        self._task = None
        self._backend = None

        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Backend task for %s failed while stopping", self.target)

        # A task cancelled before its first step never reached its own cleanup
        if backend is not None:
            await backend.close()

        if not isinstance(self.target, NoHardware):
            logger.info("Disconnected from %s", self.target)
        self.target = NoHardware()

    async def switch_target(self, target: HardwareTarget) -> HardwareSwitchResult:
        """Replace the current backend with `target`.

        Connection and input errors propagate; the service is then left with
        no backend.
        """
        async with self._lock:
            previous_target = self.target
            await self._teardown()

            self.generation += 1
            generation = self.generation

            match target:
                case NoHardware():
                    backend = None

                case LocalHardware():
                    backend = LocalBackend(self._driver_factory(), self._post, generation)

                case RemoteHardware(node_id=node_id, relay_url=relay_url):
                    logger.info("Connecting to %s", node_id)
                    connection = await self._connect_fn(node_id, relay_url or "")
                    backend = RemoteBackend(connection, self._post, generation)

                case _:
                    raise ValueError(f"Unknown hardware target: {target!r}")

            if backend is not None:
                self._backend = backend
                self._task = asyncio.create_task(backend.run())

            self.target = target
            logger.info("Hardware target is now %s (generation %d)", target, generation)

            return HardwareSwitchResult(
                previous_target=previous_target,
                target=target,
                generation=generation,
            )

    def backend_lost(self, generation: int) -> None:
        """Forget a backend that ended on its own."""
        if generation != self.generation:
            return
        self._task = None
        self._backend = None
        self.target = NoHardware()

    async def stop(self) -> None:
        async with self._lock:
            await self._teardown()
