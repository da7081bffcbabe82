import asyncio
import logging
from typing import Callable, Optional

from pigg.domain.errors import ConnectionClosed, EventDecodeError
from pigg.domain.events.hardware_events import HardwareEventType, decode_backend_event
from pigg.domain.events.surface_messages import BackendDisconnected, BackendInputChange, BackendReady
from pigg.infrastructure.backend.backend_handle import RemoteBackendHandle
from pigg.infrastructure.transport.connection import Connection

logger = logging.getLogger(__name__)


class RemoteBackend:
    """Client side of a connection to a piglet: turns its messages into surface messages."""

    def __init__(self, connection: Connection, post: Callable[[object], None], generation: int):
        self.connection = connection
        self.handle: Optional[RemoteBackendHandle] = None
        self._post = post
        self._generation = generation

    async def run(self) -> None:
        reason = "Connection closed"
        cancelled = False
        try:
            while True:
                data = await self.connection.recv()
                try:
                    event = decode_backend_event(data)
                except EventDecodeError as exc:
                    logger.warning("Dropping malformed message from %s: %s", self.connection.remote_node_id, exc)
                    continue
                self._dispatch(event)
        except ConnectionClosed as exc:
            reason = str(exc)
            logger.info("Remote backend gone: %s", reason)
        except asyncio.CancelledError:
            logger.info("Remote backend session %s cancelled", self.connection.session_id)
            cancelled = True
            raise
        finally:
            await self.close()
            if not cancelled:
                self._post(BackendDisconnected(self._generation, reason))

    def _dispatch(self, event) -> None:
        match event.event_type:
            case HardwareEventType.READY:
                if self.handle is not None:
                    logger.warning("Ignoring repeated Ready from %s", self.connection.remote_node_id)
                    return
                self.handle = RemoteBackendHandle(self.connection)
                self._post(BackendReady(self._generation, event.payload.hardware_description, self.handle))

            case HardwareEventType.INPUT_CHANGE:
                if self.handle is None:
                    logger.warning("Ignoring InputChange received before Ready")
                    return
                self._post(
                    BackendInputChange(
                        self._generation,
                        event.payload.bcm_pin_number,
                        event.payload.level_change,
                    )
                )

    async def close(self) -> None:
        if self.handle is not None:
            self.handle.close()
        await self.connection.close()
