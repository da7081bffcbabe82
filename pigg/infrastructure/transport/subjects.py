from pigg.core.config import settings


class TransportChannels:
    CONNECT = "connect"
    SESSION = "session"
    UP = "up"  # surface -> backend
    DOWN = "down"  # backend -> surface


class TransportHeaders:
    CONTROL = "Pigg-Control"
    HEARTBEAT = "heartbeat"
    CLOSE = "close"


class TransportSubjects:

    @staticmethod
    def connect(node_id: str) -> str:
        return (
            f"{settings.SUBJECT_PREFIX}."
            f"{node_id}."
            f"{TransportChannels.CONNECT}"
        )

    @staticmethod
    def session(node_id: str, session_id: str, direction: str) -> str:
        return (
            f"{settings.SUBJECT_PREFIX}."
            f"{node_id}."
            f"{TransportChannels.SESSION}."
            f"{session_id}."
            f"{direction}"
        )
