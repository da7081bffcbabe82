import json

import pytest

from pigg.domain.errors import EventDecodeError
from pigg.domain.events.hardware_events import (
    HardwareEventType,
    decode_backend_event,
    decode_event,
    decode_surface_event,
    encode_event,
    input_change,
    new_config,
    new_pin_config,
    output_level_changed,
    ready,
)
from pigg.domain.gpio.pin_function import Input, NoFunction, Output
from pigg.domain.gpio.pin_state import LevelChange
from pigg.domain.models.hardware_config import HardwareConfig
from pigg.infrastructure.gpio.fake_hardware import FakeHardware


def test_new_config_carries_a_snapshot():
    config = HardwareConfig()
    config.upsert(17, Output(level=True))

    event = new_config(config)
    config.upsert(4, Input())

    assert len(event.payload.config) == 1


def test_surface_events_decode_to_their_types():
    level = LevelChange(new_level=True)

    decoded = decode_surface_event(encode_event(output_level_changed(17, level)))
    assert decoded.event_type == HardwareEventType.OUTPUT_LEVEL_CHANGED
    assert decoded.payload.bcm_pin_number == 17
    assert decoded.payload.level_change == level

    decoded = decode_surface_event(encode_event(new_pin_config(4, NoFunction())))
    assert decoded.event_type == HardwareEventType.NEW_PIN_CONFIG
    assert isinstance(decoded.payload.function, NoFunction)


def test_ready_carries_the_pin_table():
    description = FakeHardware().description()

    decoded = decode_backend_event(encode_event(ready(description)))

    assert decoded.event_type == HardwareEventType.READY
    assert decoded.payload.hardware_description.pins.bcm_to_board(17) == 11
    assert decoded.payload.hardware_description.details.model == "Fake Hardware"


def test_wire_format_has_discriminator_and_payload():
    raw = json.loads(encode_event(input_change(4, LevelChange(new_level=False))))

    assert raw["event_type"] == "INPUT_CHANGE"
    assert raw["payload"]["bcm_pin_number"] == 4
    assert raw["payload"]["level_change"]["new_level"] is False


def test_direction_is_enforced():
    data = encode_event(input_change(4, LevelChange(new_level=True)))

    with pytest.raises(EventDecodeError):
        decode_surface_event(data)

    assert decode_event(data).event_type == HardwareEventType.INPUT_CHANGE


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"not json",
        b"\xff\xfe",
        b'{"event_type": "SELF_DESTRUCT", "payload": {}}',
        b'{"event_type": "NEW_PIN_CONFIG", "payload": {"bcm_pin_number": 4}}',
    ],
)
def test_malformed_messages_raise_decode_error(data):
    with pytest.raises(EventDecodeError):
        decode_surface_event(data)
