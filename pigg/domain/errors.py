class PiggError(Exception):
    """Base class for every error raised by pigg."""


class MalformedIdentity(PiggError, ValueError):
    pass


class MalformedRelayHint(PiggError, ValueError):
    pass


class ConfigParseError(PiggError, ValueError):
    pass


class EventDecodeError(PiggError, ValueError):
    pass


class ConnectionFailed(PiggError, ConnectionError):
    """Handshake did not complete: timeout, rejection or relay unreachable."""


class ConnectionClosed(PiggError, ConnectionError):
    """An established connection ended, by the peer or by silence."""


class IdentityUnavailable(PiggError, RuntimeError):
    """No secure random source to generate a node identity."""
