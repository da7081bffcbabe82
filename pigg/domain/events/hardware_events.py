"""Messages exchanged between a control surface and a hardware backend.

Surface -> backend: NewConfig, NewPinConfig, OutputLevelChanged.
Backend -> surface: Ready (exactly once, first), InputChange.

On the wire every message is one JSON document with an `event_type`
discriminator and a `payload` object.
"""
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from pigg.domain.errors import EventDecodeError
from pigg.domain.gpio.pin_description import HardwareDescription
from pigg.domain.gpio.pin_function import PinFunction
from pigg.domain.gpio.pin_state import LevelChange
from pigg.domain.models.hardware_config import HardwareConfig


class HardwareEventType(str, Enum):
    NEW_CONFIG = "NEW_CONFIG"
    NEW_PIN_CONFIG = "NEW_PIN_CONFIG"
    OUTPUT_LEVEL_CHANGED = "OUTPUT_LEVEL_CHANGED"
    READY = "READY"
    INPUT_CHANGE = "INPUT_CHANGE"


class NewConfigPayload(BaseModel):
    config: HardwareConfig


class NewConfigEvent(BaseModel):
    event_type: Literal["NEW_CONFIG"] = "NEW_CONFIG"
    payload: NewConfigPayload


class NewPinConfigPayload(BaseModel):
    bcm_pin_number: int
    function: PinFunction


class NewPinConfigEvent(BaseModel):
    event_type: Literal["NEW_PIN_CONFIG"] = "NEW_PIN_CONFIG"
    payload: NewPinConfigPayload


class LevelPayload(BaseModel):
    bcm_pin_number: int
    level_change: LevelChange


class OutputLevelChangedEvent(BaseModel):
    event_type: Literal["OUTPUT_LEVEL_CHANGED"] = "OUTPUT_LEVEL_CHANGED"
    payload: LevelPayload


class ReadyPayload(BaseModel):
    hardware_description: HardwareDescription


class ReadyEvent(BaseModel):
    event_type: Literal["READY"] = "READY"
    payload: ReadyPayload


class InputChangeEvent(BaseModel):
    event_type: Literal["INPUT_CHANGE"] = "INPUT_CHANGE"
    payload: LevelPayload


SurfaceEvent = Annotated[
    Union[NewConfigEvent, NewPinConfigEvent, OutputLevelChangedEvent],
    Field(discriminator="event_type"),
]

BackendEvent = Annotated[
    Union[ReadyEvent, InputChangeEvent],
    Field(discriminator="event_type"),
]

HardwareEvent = Annotated[
    Union[
        NewConfigEvent,
        NewPinConfigEvent,
        OutputLevelChangedEvent,
        ReadyEvent,
        InputChangeEvent,
    ],
    Field(discriminator="event_type"),
]

_surface_adapter: TypeAdapter = TypeAdapter(SurfaceEvent)
_backend_adapter: TypeAdapter = TypeAdapter(BackendEvent)
_event_adapter: TypeAdapter = TypeAdapter(HardwareEvent)


def new_config(config: HardwareConfig) -> NewConfigEvent:
    return NewConfigEvent(payload=NewConfigPayload(config=config.model_copy(deep=True)))


def new_pin_config(bcm_pin_number: int, function: PinFunction) -> NewPinConfigEvent:
    return NewPinConfigEvent(
        payload=NewPinConfigPayload(bcm_pin_number=bcm_pin_number, function=function)
    )


def output_level_changed(bcm_pin_number: int, level_change: LevelChange) -> OutputLevelChangedEvent:
    return OutputLevelChangedEvent(
        payload=LevelPayload(bcm_pin_number=bcm_pin_number, level_change=level_change)
    )


def ready(hardware_description: HardwareDescription) -> ReadyEvent:
    return ReadyEvent(payload=ReadyPayload(hardware_description=hardware_description))


def input_change(bcm_pin_number: int, level_change: LevelChange) -> InputChangeEvent:
    return InputChangeEvent(
        payload=LevelPayload(bcm_pin_number=bcm_pin_number, level_change=level_change)
    )


def encode_event(event: HardwareEvent) -> bytes:
    return event.model_dump_json().encode("utf-8")


def _decode(adapter: TypeAdapter, data: bytes, direction: str):
    try:
        return adapter.validate_json(data)
    except (ValidationError, UnicodeDecodeError) as exc:
        raise EventDecodeError(f"Malformed {direction} event: {exc}") from exc


def decode_surface_event(data: bytes):
    """Decode a message sent by a control surface to a backend."""
    return _decode(_surface_adapter, data, "surface")


def decode_backend_event(data: bytes):
    """Decode a message sent by a backend to a control surface."""
    return _decode(_backend_adapter, data, "backend")


def decode_event(data: bytes):
    return _decode(_event_adapter, data, "hardware")
