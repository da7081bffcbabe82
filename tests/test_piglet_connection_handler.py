import asyncio

import pytest

from helpers import wait_until
from pigg.application.hardware_backend_service import HardwareBackendService
from pigg.domain.events.hardware_events import (
    HardwareEventType,
    decode_backend_event,
    encode_event,
    new_config,
    new_pin_config,
)
from pigg.domain.gpio.pin_function import Input, Output
from pigg.domain.models.hardware_config import HardwareConfig
from pigg.infrastructure.transport.endpoint import PIGLET_ALPN, connect, listen
from pigg.interfaces.handlers.piglet_connection_handler import handle_connection


async def serve(relay, hardware, server_identity, client_identity):
    backend = HardwareBackendService(hardware)
    listener = await listen(server_identity, PIGLET_ALPN, relay=relay)
    client = await connect(server_identity.node_id.text, relay=relay, identity=client_identity)
    server = await listener.accept()
    task = asyncio.create_task(handle_connection(server, backend))
    return backend, listener, client, task


async def next_event(client):
    return decode_backend_event(await asyncio.wait_for(client.recv(), timeout=1))


@pytest.mark.asyncio
async def test_ready_is_sent_first(relay, hardware, server_identity, client_identity):
    backend, listener, client, task = await serve(relay, hardware, server_identity, client_identity)

    event = await next_event(client)

    assert event.event_type == HardwareEventType.READY
    assert event.payload.hardware_description == hardware.description()

    await client.close()
    await asyncio.wait_for(task, timeout=1)
    await listener.close()


@pytest.mark.asyncio
async def test_surface_events_drive_the_hardware(relay, hardware, server_identity, client_identity):
    backend, listener, client, task = await serve(relay, hardware, server_identity, client_identity)
    await next_event(client)

    config = HardwareConfig()
    config.upsert(17, Output(level=True))
    await client.send(encode_event(new_config(config)))

    await wait_until(lambda: hardware.functions == {17: Output(level=True)})
    assert hardware.levels[17] is True

    await client.close()
    await asyncio.wait_for(task, timeout=1)
    await listener.close()


@pytest.mark.asyncio
async def test_input_edges_are_forwarded(relay, hardware, server_identity, client_identity):
    backend, listener, client, task = await serve(relay, hardware, server_identity, client_identity)
    await next_event(client)

    await client.send(encode_event(new_pin_config(4, Input())))
    initial = await next_event(client)
    assert initial.event_type == HardwareEventType.INPUT_CHANGE
    assert initial.payload.level_change.new_level is False

    hardware.simulate_input(4, True)
    edge = await next_event(client)

    assert edge.payload.bcm_pin_number == 4
    assert edge.payload.level_change.new_level is True

    await client.close()
    await asyncio.wait_for(task, timeout=1)
    await listener.close()


@pytest.mark.asyncio
async def test_malformed_message_is_dropped_and_connection_stays_open(
    relay, hardware, server_identity, client_identity
):
    backend, listener, client, task = await serve(relay, hardware, server_identity, client_identity)
    await next_event(client)

    await client.send(b"this is not an event")
    await client.send(encode_event(new_pin_config(22, Output())))

    await wait_until(lambda: 22 in hardware.functions)
    assert not task.done()

    await client.close()
    await asyncio.wait_for(task, timeout=1)
    await listener.close()


@pytest.mark.asyncio
async def test_disconnect_stops_forwarding(relay, hardware, server_identity, client_identity):
    backend, listener, client, task = await serve(relay, hardware, server_identity, client_identity)
    await next_event(client)

    await client.close()
    await asyncio.wait_for(task, timeout=1)

    assert backend._listeners == []
    await listener.close()
