# pigg/infrastructure/backend/backend_handle.py
import asyncio
import logging
from typing import Optional, Protocol, runtime_checkable

from pigg.domain.errors import ConnectionClosed
from pigg.domain.events.hardware_events import HardwareEvent, encode_event
from pigg.infrastructure.transport.connection import Connection

logger = logging.getLogger(__name__)


@runtime_checkable
class BackendHandle(Protocol):
    """Where protocol events go. `send` never blocks and never raises."""

    def send(self, event: HardwareEvent) -> bool:
        ...

    @property
    def closed(self) -> bool:
        ...

    def close(self) -> None:
        ...


class LocalBackendHandle:
    """Hands events to an in-process backend through a queue."""

    def __init__(self, queue: Optional[asyncio.Queue] = None):
        self.queue: asyncio.Queue = queue if queue is not None else asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: HardwareEvent) -> bool:
        if self._closed:
            logger.debug("Discarding %s on closed local handle", event.event_type)
            return False
        self.queue.put_nowait(event)
        return True

    def close(self) -> None:
        self._closed = True


class RemoteBackendHandle:
    """Sends events over a Connection, in order, from a single writer task."""

    def __init__(self, connection: Connection):
        self.connection = connection
        self._outgoing: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._writer = asyncio.create_task(self._write_loop())

    @property
    def closed(self) -> bool:
        return self._closed or self.connection.closed

    def send(self, event: HardwareEvent) -> bool:
        if self.closed:
            logger.debug("Discarding %s on superseded remote handle", event.event_type)
            return False
        self._outgoing.put_nowait(event)
        return True

    async def _write_loop(self) -> None:
        while True:
            event = await self._outgoing.get()
            try:
                await self.connection.send(encode_event(event))
            except ConnectionClosed:
                logger.warning(
                    "Connection %s closed, dropping %d unsent events",
                    self.connection.session_id,
                    self._outgoing.qsize() + 1,
                )
                self._closed = True
                return

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.cancel()
