from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class NoHardware:
    def __str__(self) -> str:
        return "No Hardware"


@dataclass(frozen=True)
class LocalHardware:
    def __str__(self) -> str:
        return "Local Hardware"


@dataclass(frozen=True)
class RemoteHardware:
    node_id: str
    relay_url: Optional[str] = None

    def __str__(self) -> str:
        return f"Remote: {self.node_id}"


HardwareTarget = Union[NoHardware, LocalHardware, RemoteHardware]
