"""Identity-addressed connections over a relay.

A backend listens on a subject derived from its node id. A client proves
who it is by signing the protocol tag, the backend's node id, a fresh nonce
and the proposed session id; the backend answers with its own signature over
the same material so the client knows the reply came from the node it asked
for. Only after both signatures check out is a Connection handed out.
"""
import asyncio
import functools
import logging
import re
import secrets
from typing import Optional

from pydantic import BaseModel, ValidationError

from pigg.core.config import settings
from pigg.domain.errors import ConnectionFailed, MalformedIdentity
from pigg.infrastructure.transport.connection import Connection
from pigg.infrastructure.transport.identity import (
    NodeId,
    PeerIdentity,
    generate_identity,
    parse_node_id,
    parse_relay_hint,
)
from pigg.infrastructure.transport.relay_client import RelayClient
from pigg.infrastructure.transport.subjects import TransportChannels, TransportSubjects

logger = logging.getLogger(__name__)

PIGLET_ALPN = b"pigg/piglet/0"

SESSION_ID_PATTERN = re.compile(r"[0-9a-f]{16}")


class HandshakeRequest(BaseModel):
    alpn: str
    client_node_id: str
    session_id: str
    nonce: str
    signature: str


class HandshakeReply(BaseModel):
    accepted: bool
    error: Optional[str] = None
    signature: Optional[str] = None


def _client_proof(alpn: bytes, server: NodeId, nonce: bytes, session_id: str) -> bytes:
    return b"client|" + alpn + b"|" + server.text.encode() + b"|" + nonce + b"|" + session_id.encode()


def _server_proof(alpn: bytes, client: NodeId, nonce: bytes, session_id: str) -> bytes:
    return b"server|" + alpn + b"|" + client.text.encode() + b"|" + nonce + b"|" + session_id.encode()


class Listener:
    """Accepts inbound connections addressed to `identity`.

    Iterate with `async for connection in listener`; iteration ends when the
    listener is closed.
    """

    def __init__(self, relay: RelayClient, identity: PeerIdentity, alpn: bytes = PIGLET_ALPN, owns_relay: bool = False):
        self.identity = identity
        self.alpn = alpn
        self._relay = relay
        self._owns_relay = owns_relay
        self._accepted: asyncio.Queue = asyncio.Queue()
        self._subscription = None
        self._sessions: set[str] = set()
        self._closed = False

    @property
    def node_id(self) -> NodeId:
        return self.identity.node_id

    @property
    def session_ids(self) -> frozenset:
        """Sessions accepted here that are still open."""
        return frozenset(self._sessions)

    async def start(self) -> None:
        subject = TransportSubjects.connect(self.node_id.text)
        self._subscription = await self._relay.subscribe(subject, self._on_connect_request)
        logger.info("Listening for connections on %s", subject)

    async def _reject(self, msg, reason: str) -> None:
        logger.warning("Rejected connection request: %s", reason)
        reply = HandshakeReply(accepted=False, error=reason)
        await msg.respond(reply.model_dump_json().encode("utf-8"))

    async def _on_connect_request(self, msg) -> None:
        try:
            request = HandshakeRequest.model_validate_json(msg.data)
        except ValidationError:
            await self._reject(msg, "malformed handshake")
            return

        if request.alpn.encode("utf-8") != self.alpn:
            await self._reject(msg, f"unsupported protocol {request.alpn!r}")
            return

        try:
            client_id = parse_node_id(request.client_node_id)
            nonce = bytes.fromhex(request.nonce)
            signature = bytes.fromhex(request.signature)
        except (MalformedIdentity, ValueError):
            await self._reject(msg, "malformed handshake")
            return

        if not SESSION_ID_PATTERN.fullmatch(request.session_id):
            await self._reject(msg, "malformed session id")
            return

        proof = _client_proof(self.alpn, self.node_id, nonce, request.session_id)
        if not client_id.verify(signature, proof):
            await self._reject(msg, "bad client signature")
            return

        if request.session_id in self._sessions:
            await self._reject(msg, "session id already in use")
            return
        self._sessions.add(request.session_id)

        connection = Connection(
            self._relay,
            remote_node_id=client_id,
            session_id=request.session_id,
            inbound_subject=TransportSubjects.session(self.node_id.text, request.session_id, TransportChannels.UP),
            outbound_subject=TransportSubjects.session(self.node_id.text, request.session_id, TransportChannels.DOWN),
            on_close=functools.partial(self._sessions.discard, request.session_id),
        )
        await connection.start()

        reply = HandshakeReply(
            accepted=True,
            signature=self.identity.sign(_server_proof(self.alpn, client_id, nonce, request.session_id)).hex(),
        )
        await msg.respond(reply.model_dump_json().encode("utf-8"))

        logger.info(
            "New connection from %s with ALPN %s (session %s)",
            client_id,
            self.alpn.decode("utf-8", errors="replace"),
            request.session_id,
        )
        self._accepted.put_nowait(connection)

    async def accept(self) -> Optional[Connection]:
        if self._closed and self._accepted.empty():
            return None
        return await self._accepted.get()

    def __aiter__(self):
        return self

    async def __anext__(self) -> Connection:
        connection = await self.accept()
        if connection is None:
            raise StopAsyncIteration
        return connection

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._subscription is not None:
            await self._subscription.unsubscribe()
            self._subscription = None

        self._accepted.put_nowait(None)

        if self._owns_relay:
            await self._relay.close()


async def listen(
    identity: PeerIdentity,
    alpn: bytes = PIGLET_ALPN,
    relay_hint: Optional[str] = None,
    relay: Optional[RelayClient] = None,
) -> Listener:
    owns_relay = relay is None
    if relay is None:
        relay = RelayClient.for_hint(parse_relay_hint(relay_hint))
        await relay.connect()

    listener = Listener(relay, identity, alpn, owns_relay=owns_relay)
    try:
        await listener.start()
    except ConnectionFailed:
        await listener.close()
        raise
    return listener


async def connect(
    node_id_text: str,
    relay_hint_text: str = "",
    *,
    alpn: bytes = PIGLET_ALPN,
    relay: Optional[RelayClient] = None,
    identity: Optional[PeerIdentity] = None,
) -> Connection:
    """Open a connection to the backend whose node id is `node_id_text`.

    Raises MalformedIdentity / MalformedRelayHint before touching the
    network, and ConnectionFailed if the handshake does not complete.
    """
    server_id = parse_node_id(node_id_text)
    relay_url = parse_relay_hint(relay_hint_text)

    identity = identity or generate_identity()
    owns_relay = relay is None
    if relay is None:
        relay = RelayClient.for_hint(relay_url)
        await relay.connect()

    session_id = secrets.token_hex(8)
    nonce = secrets.token_bytes(32)

    connection = Connection(
        relay,
        remote_node_id=server_id,
        session_id=session_id,
        inbound_subject=TransportSubjects.session(server_id.text, session_id, TransportChannels.DOWN),
        outbound_subject=TransportSubjects.session(server_id.text, session_id, TransportChannels.UP),
        owns_relay=owns_relay,
    )

    request = HandshakeRequest(
        alpn=alpn.decode("utf-8"),
        client_node_id=identity.node_id.text,
        session_id=session_id,
        nonce=nonce.hex(),
        signature=identity.sign(_client_proof(alpn, server_id, nonce, session_id)).hex(),
    )

    try:
        # Subscribe before asking, so nothing the backend sends after accepting is missed
        await connection.start()
        msg = await relay.request(
            TransportSubjects.connect(server_id.text),
            request.model_dump_json().encode("utf-8"),
            timeout=settings.CONNECT_TIMEOUT,
        )
        reply = HandshakeReply.model_validate_json(msg.data)
    except (ConnectionFailed, ValidationError) as exc:
        await connection.close(notify=False)
        raise ConnectionFailed(f"Could not connect to {server_id}: {exc}") from exc

    if not reply.accepted:
        await connection.close(notify=False)
        raise ConnectionFailed(f"Connection to {server_id} rejected: {reply.error}")

    try:
        signature = bytes.fromhex(reply.signature or "")
    except ValueError:
        signature = b""
    if not server_id.verify(signature, _server_proof(alpn, identity.node_id, nonce, session_id)):
        await connection.close(notify=False)
        raise ConnectionFailed(f"Peer did not prove it is {server_id}")

    logger.info("Connected to %s (session %s)", server_id, session_id)
    return connection
