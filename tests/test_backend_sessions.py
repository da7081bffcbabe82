import asyncio

import pytest

from helpers import wait_until
from pigg.domain.errors import ConnectionClosed
from pigg.domain.events.hardware_events import encode_event, input_change, new_pin_config, ready
from pigg.domain.events.surface_messages import BackendDisconnected, BackendInputChange, BackendReady
from pigg.domain.gpio.pin_function import Input
from pigg.domain.gpio.pin_state import LevelChange
from pigg.infrastructure.backend.backend_handle import RemoteBackendHandle
from pigg.infrastructure.backend.local_backend import LocalBackend
from pigg.infrastructure.backend.remote_backend import RemoteBackend
from pigg.infrastructure.gpio.fake_hardware import FakeHardware


class ScriptedConnection:
    """Plays back a fixed list of inbound messages, then reports the peer gone."""

    remote_node_id = "peer"
    session_id = "0123456789abcdef"

    def __init__(self, inbound):
        self.inbound = list(inbound)
        self.sent = []
        self.closed = False

    async def recv(self):
        await asyncio.sleep(0)
        if not self.inbound:
            raise ConnectionClosed("Peer peer closed the connection")
        return self.inbound.pop(0)

    async def send(self, data):
        if self.closed:
            raise ConnectionClosed("closed")
        self.sent.append(data)

    async def close(self, notify=True):
        self.closed = True


@pytest.mark.asyncio
async def test_remote_backend_posts_ready_then_inputs_then_disconnect():
    description = FakeHardware().description()
    connection = ScriptedConnection(
        [
            encode_event(input_change(4, LevelChange(new_level=True))),
            encode_event(ready(description)),
            b"garbage",
            encode_event(ready(description)),
            encode_event(input_change(4, LevelChange(new_level=False))),
        ]
    )
    posted = []

    await RemoteBackend(connection, posted.append, generation=3).run()

    assert [type(message) for message in posted] == [BackendReady, BackendInputChange, BackendDisconnected]
    assert all(message.generation == 3 for message in posted)
    assert posted[1].level_change.new_level is False
    assert "closed the connection" in posted[2].reason
    assert connection.closed
    assert posted[0].handle.closed


@pytest.mark.asyncio
async def test_cancelled_remote_backend_does_not_report_disconnect():
    connection = ScriptedConnection([])
    connection.recv = lambda: asyncio.Event().wait()
    posted = []
    backend = RemoteBackend(connection, posted.append, generation=1)

    task = asyncio.create_task(backend.run())
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert posted == []
    assert connection.closed


@pytest.mark.asyncio
async def test_remote_handle_sends_in_order_and_drops_after_close():
    connection = ScriptedConnection([])
    handle = RemoteBackendHandle(connection)

    assert handle.send(new_pin_config(4, Input()))
    assert handle.send(new_pin_config(5, Input()))
    await wait_until(lambda: len(connection.sent) == 2)
    assert b'"bcm_pin_number":4' in connection.sent[0]

    handle.close()
    assert handle.send(new_pin_config(6, Input())) is False


@pytest.mark.asyncio
async def test_local_backend_applies_events_from_its_handle():
    hardware = FakeHardware()
    posted = []
    backend = LocalBackend(hardware, posted.append, generation=7)
    task = asyncio.create_task(backend.run())

    await wait_until(lambda: posted)
    assert isinstance(posted[0], BackendReady)

    posted[0].handle.send(new_pin_config(4, Input()))
    await wait_until(lambda: len(posted) == 2)

    assert hardware.functions == {4: Input()}
    assert posted[1] == BackendInputChange(7, 4, posted[1].level_change)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert backend.handle.closed
    assert hardware.functions == {}
