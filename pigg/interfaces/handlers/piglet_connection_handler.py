# pigg/interfaces/handlers/piglet_connection_handler.py
import logging

from pigg.application.hardware_backend_service import HardwareBackendService
from pigg.domain.errors import ConnectionClosed, EventDecodeError
from pigg.domain.events.hardware_events import decode_surface_event, input_change, ready
from pigg.domain.gpio.pin_state import LevelChange
from pigg.infrastructure.backend.backend_handle import RemoteBackendHandle
from pigg.infrastructure.transport.connection import Connection

logger = logging.getLogger(__name__)


async def handle_connection(connection: Connection, backend: HardwareBackendService) -> None:
    """Serve one control surface until it goes away.

    Ready goes out first, then every surface event is applied to the
    hardware and every input edge is forwarded. A malformed message is
    dropped; the connection stays up.
    """
    peer = connection.remote_node_id
    handle = RemoteBackendHandle(connection)

    def forward_input(bcm_pin_number: int, level_change: LevelChange) -> None:
        handle.send(input_change(bcm_pin_number, level_change))

    handle.send(ready(backend.description()))
    backend.add_input_listener(forward_input)
    logger.info("Serving control surface %s", peer)

    try:
        while True:
            data = await connection.recv()

            try:
                event = decode_surface_event(data)
            except EventDecodeError as exc:
                logger.warning("Dropping malformed message from %s: %s", peer, exc)
                continue

            logger.debug("Received %s from %s", event.event_type, peer)

            try:
                backend.handle_event(event)
            except Exception:
                logger.exception("Error while applying %s from %s", event.event_type, peer)

    except ConnectionClosed as exc:
        logger.info("Control surface %s disconnected: %s", peer, exc)

    finally:
        backend.remove_input_listener(forward_input)
        handle.close()
        await connection.close()
