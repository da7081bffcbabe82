from pigg.application.connect_dialog import EMPTY_NODE_ID_ERROR, ConnectDialog
from pigg.domain.models.hardware_target import RemoteHardware
from pigg.infrastructure.transport.identity import generate_identity


def test_empty_node_id_asks_for_one():
    dialog = ConnectDialog(node_id="   ", disable_widgets=True, show_spinner=True)

    assert dialog.connect_pressed() is None

    assert dialog.connection_error == EMPTY_NODE_ID_ERROR
    assert not dialog.disable_widgets
    assert not dialog.show_spinner


def test_malformed_node_id_is_reported():
    dialog = ConnectDialog(node_id="1234")

    assert dialog.connect_pressed() is None
    assert "64 hex characters" in dialog.connection_error
    assert not dialog.disable_widgets


def test_malformed_relay_is_reported():
    dialog = ConnectDialog(node_id=generate_identity().node_id.text, relay_url="ftp://relay")

    assert dialog.connect_pressed() is None
    assert "Relay URL" in dialog.connection_error


def test_valid_input_produces_a_remote_target():
    node_id = generate_identity().node_id.text
    dialog = ConnectDialog(node_id=f" {node_id} ", connection_error="old error")

    target = dialog.connect_pressed()

    assert target == RemoteHardware(node_id=node_id, relay_url=None)
    assert dialog.connection_error == ""
    assert dialog.show_spinner
    assert dialog.disable_widgets


def test_connection_failure_re_enables_the_form():
    dialog = ConnectDialog(show_spinner=True, disable_widgets=True)

    dialog.connection_failed("timed out")

    assert dialog.connection_error == "timed out"
    assert not dialog.show_spinner
    assert not dialog.disable_widgets


def test_hide_resets_the_form_state():
    dialog = ConnectDialog()
    dialog.show()
    dialog.connection_failed("boom")

    dialog.hide()

    assert not dialog.show_modal
    assert dialog.connection_error == ""
