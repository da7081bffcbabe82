import logging
from pathlib import Path

from pigg.core.config import settings
from pigg.infrastructure.gpio.driver import GPIODriver
from pigg.infrastructure.gpio.fake_hardware import FakeHardware

logger = logging.getLogger(__name__)


def running_on_pi(model_path: str = None) -> bool:
    path = Path(model_path or settings.DEVICE_TREE_MODEL)
    try:
        return "Raspberry Pi" in path.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return False


def get_hardware(backend: str = None) -> GPIODriver:
    """Pick the GPIO driver: "pi", "fake", or "auto" to detect a Raspberry Pi."""
    choice = (backend or settings.HARDWARE_BACKEND).strip().lower()

    if choice == "auto":
        choice = "pi" if running_on_pi() else "fake"

    match choice:
        case "pi":
            from pigg.infrastructure.gpio.rpi_hardware import PiHardware

            logger.info("Using Raspberry Pi GPIO hardware")
            return PiHardware()

        case "fake":
            logger.info("Using fake GPIO hardware")
            return FakeHardware()

        case _:
            raise ValueError(f"Unknown hardware backend: {choice!r}")
