# pigg/domain/gpio/pin_description.py
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, PrivateAttr, field_validator, model_validator

from pigg.domain.gpio.pin_function import PinFunction


class PinDescription(BaseModel):
    model_config = ConfigDict(frozen=True)

    board_pin_number: int
    bcm_pin_number: Optional[int] = None
    name: str
    options: List[PinFunction] = []

    @field_validator("board_pin_number")
    @classmethod
    def validate_board_pin_number(cls, value: int) -> int:
        if value < 1:
            raise ValueError("board_pin_number must be >= 1")
        return value

    @model_validator(mode="after")
    def validate_options(self):
        if self.bcm_pin_number is None and self.options:
            raise ValueError(
                f"Pin {self.board_pin_number} ({self.name}) has no BCM number "
                "and cannot offer functions"
            )
        return self

    def __str__(self) -> str:
        bcm = "-" if self.bcm_pin_number is None else self.bcm_pin_number
        options = ", ".join(str(option) for option in self.options) or "none"
        return f"Pin #{self.board_pin_number} (BCM {bcm}) {self.name}: {options}"


class PinDescriptionSet(BaseModel):
    """The pins of a board, with O(1) lookups between the two numbering schemes.

    Board numbers are the physical position on the connector (1..N). BCM
    numbers are what the GPIO controller understands and only exist for
    true GPIO pins.
    """

    model_config = ConfigDict(frozen=True)

    pins: List[PinDescription]

    _bcm_to_board: Dict[int, int] = PrivateAttr(default_factory=dict)
    _board_to_bcm: Dict[int, int] = PrivateAttr(default_factory=dict)
    _by_board: Dict[int, PinDescription] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def validate_unique_numbers(self):
        seen_board: set[int] = set()
        seen_bcm: set[int] = set()
        for pin in self.pins:
            if pin.board_pin_number in seen_board:
                raise ValueError(f"Duplicate board pin number: {pin.board_pin_number}")
            seen_board.add(pin.board_pin_number)
            if pin.bcm_pin_number is not None:
                if pin.bcm_pin_number in seen_bcm:
                    raise ValueError(f"Duplicate BCM pin number: {pin.bcm_pin_number}")
                seen_bcm.add(pin.bcm_pin_number)
        return self

    def model_post_init(self, __context) -> None:
        for pin in self.pins:
            self._by_board[pin.board_pin_number] = pin
            if pin.bcm_pin_number is not None:
                self._bcm_to_board[pin.bcm_pin_number] = pin.board_pin_number
                self._board_to_bcm[pin.board_pin_number] = pin.bcm_pin_number

    def __len__(self) -> int:
        return len(self.pins)

    @property
    def size(self) -> int:
        """Highest board position, i.e. the number of LiveState slots needed."""
        return max((pin.board_pin_number for pin in self.pins), default=0)

    def bcm_to_board(self, bcm_pin_number: int) -> Optional[int]:
        return self._bcm_to_board.get(bcm_pin_number)

    def board_to_bcm(self, board_pin_number: int) -> Optional[int]:
        return self._board_to_bcm.get(board_pin_number)

    def pins_by_board(self) -> List[PinDescription]:
        return sorted(self.pins, key=lambda pin: pin.board_pin_number)

    def bcm_pins_sorted(self) -> List[PinDescription]:
        return sorted(
            (pin for pin in self.pins if pin.bcm_pin_number is not None),
            key=lambda pin: pin.bcm_pin_number,
        )

    def get_by_bcm(self, bcm_pin_number: int) -> Optional[PinDescription]:
        board = self.bcm_to_board(bcm_pin_number)
        if board is None:
            return None
        return self.get_by_board(board)

    def get_by_board(self, board_pin_number: int) -> Optional[PinDescription]:
        return self._by_board.get(board_pin_number)


class HardwareDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    hardware: str
    revision: str
    serial: str
    model: str

    def __str__(self) -> str:
        return (
            f"Hardware: {self.hardware}\n"
            f"Revision: {self.revision}\n"
            f"Serial: {self.serial}\n"
            f"Model: {self.model}"
        )


class HardwareDescription(BaseModel):
    model_config = ConfigDict(frozen=True)

    details: HardwareDetails
    pins: PinDescriptionSet
