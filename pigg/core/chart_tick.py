# pigg/core/chart_tick.py

import asyncio
import logging
from typing import Callable, Optional

from pigg.core.config import settings
from pigg.domain.events.surface_messages import ChartTick

logger = logging.getLogger(__name__)


async def post_chart_ticks(post: Callable[[object], None], updates_per_second: Optional[int] = None) -> None:
    interval = 1.0 / (updates_per_second or settings.CHART_UPDATES_PER_SECOND)

    logger.info("Chart tick started, every %.2fs", interval)

    while True:
        post(ChartTick())
        await asyncio.sleep(interval)
