import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

import nats
from nats.errors import Error as NatsError

from pigg.core.config import settings
from pigg.domain.errors import ConnectionClosed, ConnectionFailed

logger = logging.getLogger(__name__)

MessageHandler = Callable[[object], Awaitable[None]]


class RelayClient:
    """A connection to the relay (a NATS server) that carries pigg traffic."""

    def __init__(self, servers: List[str], nc=None):
        self.servers = servers
        self.nc = nc

    @classmethod
    def for_hint(cls, relay_url: Optional[str]) -> "RelayClient":
        if relay_url:
            return cls([relay_url])
        return cls(list(settings.RELAY_URLS))

    @property
    def is_connected(self) -> bool:
        return self.nc is not None and self.nc.is_connected

    async def connect(self) -> None:
        logger.info(f"Connecting to relay: {self.servers}")
        try:
            self.nc = await nats.connect(
                servers=self.servers,
                name="pigg",
                connect_timeout=settings.CONNECT_TIMEOUT,
                max_reconnect_attempts=3,
            )
        except (NatsError, OSError, asyncio.TimeoutError) as exc:
            raise ConnectionFailed(f"Relay unreachable ({', '.join(self.servers)}): {exc}") from exc

        logger.info("Connected to relay %s", self.nc.connected_url)

    async def ensure_connected(self) -> None:
        if not self.is_connected:
            await self.connect()

    async def publish(self, subject: str, data: bytes, headers: Optional[Dict[str, str]] = None) -> None:
        if not self.is_connected:
            raise ConnectionClosed("Relay connection is closed")
        try:
            await self.nc.publish(subject, data, headers=headers)
        except (NatsError, OSError) as exc:
            raise ConnectionClosed(f"Publish to {subject} failed: {exc}") from exc

    async def request(self, subject: str, data: bytes, timeout: float):
        await self.ensure_connected()
        try:
            return await self.nc.request(subject, data, timeout=timeout)
        except (NatsError, OSError, asyncio.TimeoutError) as exc:
            raise ConnectionFailed(f"No answer on {subject}: {exc!r}") from exc

    async def subscribe(self, subject: str, handler: MessageHandler):
        await self.ensure_connected()

        try:
            sub = await self.nc.subscribe(subject, cb=handler)
        except (NatsError, OSError) as exc:
            raise ConnectionFailed(f"Subscribe to {subject} failed: {exc}") from exc
        logger.debug(f"[RELAY] Subscribed to subject: {subject}")

        return sub

    async def close(self) -> None:
        if self.nc is None:
            return

        try:
            logger.info("Closing relay connection...")
            await self.nc.drain()
        except (NatsError, OSError) as exc:
            logger.debug("Relay drain failed: %s", exc)

        try:
            await self.nc.close()
        except (NatsError, OSError) as exc:
            logger.debug("Relay close failed: %s", exc)

        logger.info("Relay connection closed.")
