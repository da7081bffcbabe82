# pigg/application/connect_dialog.py
import logging
from dataclasses import dataclass
from typing import Optional

from pigg.domain.errors import MalformedIdentity, MalformedRelayHint
from pigg.domain.models.hardware_target import RemoteHardware
from pigg.infrastructure.transport.identity import parse_node_id, parse_relay_hint

logger = logging.getLogger(__name__)

EMPTY_NODE_ID_ERROR = "Please Enter Node Id"


@dataclass
class ConnectDialog:
    """State behind the "connect to remote Pi" form."""

    node_id: str = ""
    relay_url: str = ""
    connection_error: str = ""
    show_modal: bool = False
    show_spinner: bool = False
    disable_widgets: bool = False

    def show(self) -> None:
        self.show_modal = True

    def hide(self) -> None:
        self.show_modal = False
        self.show_spinner = False
        self.disable_widgets = False
        self.connection_error = ""

    def _input_error(self, message: str) -> None:
        self.connection_error = message
        self.show_spinner = False
        self.disable_widgets = False

    def connect_pressed(self) -> Optional[RemoteHardware]:
        """Validate the form. Returns the target to connect to, or None with `connection_error` set."""
        node_id = self.node_id.strip()
        if not node_id:
            self._input_error(EMPTY_NODE_ID_ERROR)
            return None

        try:
            parse_node_id(node_id)
            relay_url = parse_relay_hint(self.relay_url)
        except (MalformedIdentity, MalformedRelayHint) as exc:
            logger.info("Connect dialog input rejected: %s", exc)
            self._input_error(str(exc))
            return None

        self.connection_error = ""
        self.show_spinner = True
        self.disable_widgets = True
        return RemoteHardware(node_id=node_id, relay_url=relay_url)

    def connection_failed(self, error: str) -> None:
        self.connection_error = error
        self.show_spinner = False
        self.disable_widgets = False
