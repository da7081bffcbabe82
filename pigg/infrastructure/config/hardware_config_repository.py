import json
import logging
import os
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from pigg.domain.errors import ConfigParseError
from pigg.domain.models.hardware_config import HardwareConfig

logger = logging.getLogger(__name__)

CONFIG_SUFFIX = ".pigg"

PathLike = Union[str, Path]


class HardwareConfigRepository:
    """Loads and saves a HardwareConfig as a named JSON file."""

    def load(self, filename: PathLike) -> HardwareConfig:
        config_path = Path(filename)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        logger.info(f"Loading hardware config: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigParseError(f"Config file {config_path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            # A directory or an unreadable file can not hold a configuration
            raise ConfigParseError(f"Config file {config_path} could not be read: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigParseError(f"Config file {config_path} root must be an object")

        try:
            return HardwareConfig.model_validate(raw)
        except ValidationError as exc:
            raise ConfigParseError(f"Config file {config_path} is invalid: {exc}") from exc

    def save(self, config: HardwareConfig, filename: PathLike) -> Path:
        """Write `config` next to its final name, then move it into place.

        A missing suffix becomes CONFIG_SUFFIX. Returns the path written.
        """
        config_path = Path(filename)
        if not config_path.suffix:
            config_path = config_path.with_suffix(CONFIG_SUFFIX)
        partial_path = config_path.with_name(config_path.name + ".partial")

        try:
            with partial_path.open("w", encoding="utf-8") as f:
                f.write(config.model_dump_json(indent=2))
                f.flush()
                os.fsync(f.fileno())
            os.replace(partial_path, config_path)
        except OSError:
            partial_path.unlink(missing_ok=True)
            raise

        logger.info("Hardware config with %d pins saved to %s", len(config), config_path)
        return config_path


hardware_config_repository = HardwareConfigRepository()
