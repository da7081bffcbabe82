from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pigg.domain.gpio.pin_function import PinFunction


class PinConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    bcm_pin_number: int
    function: PinFunction


class HardwareConfig(BaseModel):
    """Desired (bcm -> function) assignments. A missing bcm means no function."""

    config_version: int = 1
    configured_pins: List[PinConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_pins(self):
        seen: set[int] = set()
        for entry in self.configured_pins:
            if entry.bcm_pin_number in seen:
                raise ValueError(
                    f"Duplicate configuration for BCM pin {entry.bcm_pin_number}"
                )
            seen.add(entry.bcm_pin_number)
        return self

    def __iter__(self) -> Iterator[PinConfig]:
        return iter(self.configured_pins)

    def __len__(self) -> int:
        return len(self.configured_pins)

    def as_dict(self) -> Dict[int, PinFunction]:
        return {entry.bcm_pin_number: entry.function for entry in self.configured_pins}

    def get(self, bcm_pin_number: int) -> Optional[PinFunction]:
        for entry in self.configured_pins:
            if entry.bcm_pin_number == bcm_pin_number:
                return entry.function
        return None

    def upsert(self, bcm_pin_number: int, function: PinFunction) -> None:
        """Replace the entry for `bcm_pin_number` in place, or append a new one."""
        new_entry = PinConfig(bcm_pin_number=bcm_pin_number, function=function)
        for idx, entry in enumerate(self.configured_pins):
            if entry.bcm_pin_number == bcm_pin_number:
                self.configured_pins[idx] = new_entry
                return
        self.configured_pins.append(new_entry)

    def same_pins(self, other: "HardwareConfig") -> bool:
        return self.as_dict() == other.as_dict()

    def __str__(self) -> str:
        if not self.configured_pins:
            return "HardwareConfig: no pins configured"
        lines = [
            f"  BCM {entry.bcm_pin_number}: {entry.function}"
            for entry in self.configured_pins
        ]
        return "HardwareConfig:\n" + "\n".join(lines)
