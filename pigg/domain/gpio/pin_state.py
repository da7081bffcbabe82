from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from pigg.domain.gpio.pin_function import NONE, PinFunction


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LevelChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    new_level: bool
    timestamp: datetime = Field(default_factory=utc_now)


Sample = Tuple[datetime, bool]


@dataclass
class PinState:
    """One LiveState slot: the selected function and what the pin last did."""

    chart_samples: int = 256
    function: PinFunction = NONE
    level: Optional[bool] = None
    last_change: Optional[datetime] = None
    chart: Deque[Sample] = field(init=False)

    def __post_init__(self):
        self.chart = deque(maxlen=self.chart_samples)

    def set_level(self, level_change: LevelChange) -> None:
        self.level = level_change.new_level
        self.last_change = level_change.timestamp
        self.chart.append((level_change.timestamp, level_change.new_level))

    def refresh_chart(self, now: Optional[datetime] = None) -> None:
        """Extend the trace to `now` so a steady level still scrolls."""
        if self.level is None:
            return
        self.chart.append((now or utc_now(), self.level))

    def samples(self) -> List[Sample]:
        return list(self.chart)
