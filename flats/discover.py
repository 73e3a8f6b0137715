"""Floorplan discovery on the index page."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from .config import SiteConfig
from .heuristics import floorplan_url, has_price_marker, parse_bedroom_count
from .models import FloorplanCandidate
from .navigation import load

logger = logging.getLogger(__name__)

MAX_BEDROOMS = 1


async def _trigger_lazy_render(page: Any, config: SiteConfig) -> None:
    await page.wait_for_timeout(config.settle_ms)
    await page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
    await page.wait_for_timeout(config.lazy_load_ms)
    await page.evaluate("() => window.scrollTo(0, 0)")
    await page.wait_for_timeout(config.scroll_back_ms)


async def _read_card(card: Any, index: int, page: Any, config: SiteConfig) -> Optional[FloorplanCandidate]:
    await card.scroll_into_view_if_needed(timeout=config.scroll_timeout_ms)
    await page.wait_for_timeout(config.card_pause_ms)

    title = await card.locator(config.title_selector).first.text_content(timeout=config.card_timeout_ms)
    title = (title or "").strip()
    if not title:
        logger.info("Skipping card %d - no title found", index)
        return None

    bedroom_count = parse_bedroom_count(title)
    if bedroom_count > MAX_BEDROOMS:
        logger.info("Skipping %s - %d bedrooms", title, bedroom_count)
        return None

    card_text = await card.text_content(timeout=config.card_timeout_ms)
    if not has_price_marker(card_text, config.price_marker):
        logger.info("Skipping %s - no %r pricing found", title, config.price_marker)
        return None

    url = floorplan_url(title, config.floorplan_url_template)
    logger.info("%s qualifies (%d bedrooms): %s", title, bedroom_count, url)
    return FloorplanCandidate(title=title, detail_url=url, bedroom_count=bedroom_count)


async def discover(page: Any, config: Optional[SiteConfig] = None) -> List[FloorplanCandidate]:
    """Return the studio and one-bedroom floorplans that advertise a price.

    Every card is read before any detail page is visited, so the lazily
    rendered listing is never navigated away from mid-enumeration. A card that
    times out or errors is skipped.
    """

    config = config or SiteConfig()
    await load(page, config.index_url, config.strategies)
    await _trigger_lazy_render(page, config)

    cards = page.locator(config.card_selector)
    card_count = await cards.count()
    logger.info("Found %d floorplan cards", card_count)

    candidates: List[FloorplanCandidate] = []
    for index in range(card_count):
        try:
            candidate = await _read_card(cards.nth(index), index, page, config)
        except Exception as exc:
            logger.warning("Skipping floorplan card %d - %s", index, exc)
            continue
        if candidate is not None:
            candidates.append(candidate)

    logger.info("Found %d qualifying floorplans", len(candidates))
    return candidates


__all__ = ["discover", "MAX_BEDROOMS"]
