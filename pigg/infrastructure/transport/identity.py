# pigg/infrastructure/transport/identity.py
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from cryptography.exceptions import InternalError, InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from pigg.domain.errors import IdentityUnavailable, MalformedIdentity, MalformedRelayHint

logger = logging.getLogger(__name__)

NODE_ID_LENGTH = 64  # hex characters of a 32 byte Ed25519 public key

RELAY_SCHEMES = {"nats", "tls", "ws", "wss"}


@dataclass(frozen=True)
class NodeId:
    """The public half of a peer identity; how other peers address it."""

    public_key: Ed25519PublicKey

    @property
    def text(self) -> str:
        raw = self.public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return raw.hex()

    def verify(self, signature: bytes, data: bytes) -> bool:
        try:
            self.public_key.verify(signature, data)
            return True
        except InvalidSignature:
            return False

    def __eq__(self, other) -> bool:
        return isinstance(other, NodeId) and self.text == other.text

    def __hash__(self) -> int:
        return hash(self.text)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class PeerIdentity:
    secret_key: Ed25519PrivateKey

    @property
    def node_id(self) -> NodeId:
        return NodeId(self.secret_key.public_key())

    def sign(self, data: bytes) -> bytes:
        return self.secret_key.sign(data)


def generate_identity() -> PeerIdentity:
    try:
        secret_key = Ed25519PrivateKey.generate()
    except (UnsupportedAlgorithm, InternalError, OSError) as exc:
        raise IdentityUnavailable(f"Could not generate a node identity: {exc}") from exc

    identity = PeerIdentity(secret_key)
    logger.debug("Generated node identity %s", identity.node_id)
    return identity


def parse_node_id(text: str) -> NodeId:
    normalized = (text or "").strip()

    if len(normalized) != NODE_ID_LENGTH:
        raise MalformedIdentity(
            f"Node id must be {NODE_ID_LENGTH} hex characters, got {len(normalized)}"
        )

    try:
        raw = bytes.fromhex(normalized)
    except ValueError as exc:
        raise MalformedIdentity(f"Node id contains invalid characters: {normalized!r}") from exc

    try:
        return NodeId(Ed25519PublicKey.from_public_bytes(raw))
    except ValueError as exc:
        raise MalformedIdentity(f"Node id is not a valid public key: {exc}") from exc


def parse_relay_hint(text: Optional[str]) -> Optional[str]:
    """Return a normalized relay URL, or None when the default relays should be used."""
    normalized = (text or "").strip()
    if not normalized:
        return None

    try:
        url = httpx.URL(normalized)
    except httpx.InvalidURL as exc:
        raise MalformedRelayHint(f"Invalid relay URL {normalized!r}: {exc}") from exc

    if url.scheme not in RELAY_SCHEMES:
        raise MalformedRelayHint(
            f"Relay URL {normalized!r} must use one of: {', '.join(sorted(RELAY_SCHEMES))}"
        )
    if not url.host:
        raise MalformedRelayHint(f"Relay URL {normalized!r} has no host")

    return str(url)
