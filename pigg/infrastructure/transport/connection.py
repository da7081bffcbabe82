import asyncio
import logging
from typing import Callable, Optional

from pigg.core.config import settings
from pigg.domain.errors import ConnectionClosed
from pigg.infrastructure.transport.identity import NodeId
from pigg.infrastructure.transport.relay_client import RelayClient
from pigg.infrastructure.transport.subjects import TransportHeaders

logger = logging.getLogger(__name__)

_PEER_CLOSED = object()


class Connection:
    """A message-framed, ordered link to one authenticated peer.

    Each `recv()` returns exactly one message as sent by the peer. Both sides
    send header-only heartbeats; a peer silent for IDLE_TIMEOUT is treated as
    gone.
    """

    def __init__(
        self,
        relay: RelayClient,
        *,
        remote_node_id: NodeId,
        session_id: str,
        inbound_subject: str,
        outbound_subject: str,
        owns_relay: bool = False,
        on_close: Optional[Callable[[], None]] = None,
        heartbeat_interval: Optional[float] = None,
        idle_timeout: Optional[float] = None,
    ):
        self.remote_node_id = remote_node_id
        self.session_id = session_id
        self._relay = relay
        self._inbound_subject = inbound_subject
        self._outbound_subject = outbound_subject
        self._owns_relay = owns_relay
        self._on_close = on_close
        self._heartbeat_interval = heartbeat_interval or settings.HEARTBEAT_INTERVAL
        self._idle_timeout = idle_timeout or settings.IDLE_TIMEOUT

        self._inbox: asyncio.Queue = asyncio.Queue()
        self._subscription = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._closed = False
        self._last_seen = 0.0

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        self._last_seen = asyncio.get_running_loop().time()
        self._subscription = await self._relay.subscribe(self._inbound_subject, self._on_message)
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    async def _on_message(self, msg) -> None:
        self._last_seen = asyncio.get_running_loop().time()

        control = (msg.headers or {}).get(TransportHeaders.CONTROL)
        if control == TransportHeaders.HEARTBEAT:
            return
        if control == TransportHeaders.CLOSE:
            logger.info("Peer %s closed session %s", self.remote_node_id, self.session_id)
            self._inbox.put_nowait(_PEER_CLOSED)
            return

        self._inbox.put_nowait(msg.data)

    async def send(self, data: bytes) -> None:
        if self._closed:
            raise ConnectionClosed(f"Session {self.session_id} is closed")
        await self._relay.publish(self._outbound_subject, data)

    async def recv(self) -> bytes:
        loop = asyncio.get_running_loop()

        while True:
            if self._closed and self._inbox.empty():
                raise ConnectionClosed(f"Session {self.session_id} is closed")

            try:
                item = await asyncio.wait_for(self._inbox.get(), timeout=self._idle_timeout)
            except asyncio.TimeoutError:
                if loop.time() - self._last_seen >= self._idle_timeout:
                    logger.warning(
                        "Peer %s silent for %.1fs, dropping session %s",
                        self.remote_node_id,
                        self._idle_timeout,
                        self.session_id,
                    )
                    await self.close(notify=False)
                    raise ConnectionClosed(f"Peer {self.remote_node_id} timed out")
                continue

            if item is _PEER_CLOSED:
                await self.close(notify=False)
                raise ConnectionClosed(f"Peer {self.remote_node_id} closed the connection")

            return item

    async def _heartbeat_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self._heartbeat_interval)
            if self._closed:
                return
            try:
                await self._relay.publish(
                    self._outbound_subject,
                    b"",
                    headers={TransportHeaders.CONTROL: TransportHeaders.HEARTBEAT},
                )
            except ConnectionClosed:
                logger.warning("Heartbeat failed for session %s", self.session_id)

    async def close(self, notify: bool = True) -> None:
        if self._closed:
            return
        self._closed = True

        if notify:
            try:
                await self._relay.publish(
                    self._outbound_subject,
                    b"",
                    headers={TransportHeaders.CONTROL: TransportHeaders.CLOSE},
                )
            except ConnectionClosed:
                logger.debug("Could not notify peer of close for session %s", self.session_id)

        if self._heartbeat_task and self._heartbeat_task is not asyncio.current_task():
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass

        if self._subscription is not None:
            try:
                await self._subscription.unsubscribe()
            except Exception:
                logger.exception("Failed to unsubscribe session %s", self.session_id)
            self._subscription = None

        if self._owns_relay:
            await self._relay.close()

        # Wake any reader blocked in recv()
        self._inbox.put_nowait(_PEER_CLOSED)

        if self._on_close is not None:
            self._on_close()

        logger.info("Session %s with %s closed", self.session_id, self.remote_node_id)
