# pigg/domain/gpio/enums.py

from enum import Enum


class InputPull(str, Enum):
    PULL_UP = "PULL_UP"
    PULL_DOWN = "PULL_DOWN"
    NONE = "NONE"


class ConfigSyncState(str, Enum):
    PENDING = "PENDING"
    APPLIED = "APPLIED"
