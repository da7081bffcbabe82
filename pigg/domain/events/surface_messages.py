"""Messages posted into the control surface's inbox.

Every message from a backend carries the generation of the backend
relationship that produced it, so events from a superseded backend can be
recognised and dropped.
"""
from dataclasses import dataclass
from typing import Any

from pigg.domain.gpio.pin_description import HardwareDescription
from pigg.domain.gpio.pin_state import LevelChange


@dataclass(frozen=True)
class BackendReady:
    generation: int
    description: HardwareDescription
    handle: Any


@dataclass(frozen=True)
class BackendInputChange:
    generation: int
    bcm_pin_number: int
    level_change: LevelChange


@dataclass(frozen=True)
class BackendDisconnected:
    generation: int
    reason: str


@dataclass(frozen=True)
class ChartTick:
    pass
