"""Static description of the Raspberry Pi 40-pin header.

Odd board pins are on the left, even on the right, looking at the Pi with
the USB ports facing down. ID_SD and ID_SC carry BCM numbers but are reserved
for the HAT EEPROM, so they offer no functions.
"""
from typing import List, Optional, Tuple

from pigg.domain.gpio.pin_description import PinDescription, PinDescriptionSet
from pigg.domain.gpio.pin_function import Input, Output

GPIO_OPTIONS = [Input(), Output()]

# (board_pin_number, bcm_pin_number, name)
HEADER_ROWS: List[Tuple[int, Optional[int], str]] = [
    (1, None, "3V3"),
    (2, None, "5V"),
    (3, 2, "GPIO2"),
    (4, None, "5V"),
    (5, 3, "GPIO3"),
    (6, None, "Ground"),
    (7, 4, "GPIO4"),
    (8, 14, "GPIO14"),
    (9, None, "Ground"),
    (10, 15, "GPIO15"),
    (11, 17, "GPIO17"),
    (12, 18, "GPIO18"),
    (13, 27, "GPIO27"),
    (14, None, "Ground"),
    (15, 22, "GPIO22"),
    (16, 23, "GPIO23"),
    (17, None, "3V3"),
    (18, 24, "GPIO24"),
    (19, 10, "GPIO10"),
    (20, None, "Ground"),
    (21, 9, "GPIO9"),
    (22, 25, "GPIO25"),
    (23, 11, "GPIO11"),
    (24, 8, "GPIO8"),
    (25, None, "Ground"),
    (26, 7, "GPIO7"),
    (27, 0, "ID_SD"),
    (28, 1, "ID_SC"),
    (29, 5, "GPIO5"),
    (30, None, "Ground"),
    (31, 6, "GPIO6"),
    (32, 12, "GPIO12"),
    (33, 13, "GPIO13"),
    (34, None, "Ground"),
    (35, 19, "GPIO19"),
    (36, 16, "GPIO16"),
    (37, 26, "GPIO26"),
    (38, 20, "GPIO20"),
    (39, None, "Ground"),
    (40, 21, "GPIO21"),
]

RESERVED_NAMES = {"ID_SD", "ID_SC"}


def _describe(board: int, bcm: Optional[int], name: str) -> PinDescription:
    options = GPIO_OPTIONS if bcm is not None and name not in RESERVED_NAMES else []
    return PinDescription(
        board_pin_number=board,
        bcm_pin_number=bcm,
        name=name,
        options=list(options),
    )


HEADER_40_PIN = PinDescriptionSet(pins=[_describe(*row) for row in HEADER_ROWS])
