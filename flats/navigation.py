"""Page loading with ordered fallback strategies."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from .config import NavigationStrategy

logger = logging.getLogger(__name__)


async def load(page: Any, url: str, strategies: Sequence[NavigationStrategy]) -> Optional[Any]:
    """Navigate *page* to *url*, trying each strategy in order.

    Each strategy is attempted exactly once. The error from the last strategy
    is raised unchanged if none of them succeed.
    """

    if not strategies:
        raise ValueError("At least one navigation strategy is required")

    last = len(strategies) - 1
    for index, strategy in enumerate(strategies):
        logger.info(
            "Loading %s with %s strategy (%dms timeout)", url, strategy.name, strategy.timeout_ms
        )
        try:
            response = await page.goto(url, wait_until=strategy.wait_until, timeout=strategy.timeout_ms)
        except Exception as exc:
            logger.warning("%s strategy failed for %s: %s", strategy.name, url, exc)
            if index == last:
                raise
            continue
        logger.info("Loaded %s with %s strategy", url, strategy.name)
        return response
    return None
