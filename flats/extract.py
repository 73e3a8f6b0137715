"""Unit extraction from floorplan detail pages."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Iterable, List, Optional

from .config import NavigationStrategy, SiteConfig
from .dedup import SeenKeys, dedup_key
from .heuristics import UnitTokens, extract_unit_tokens, scan_page_text
from .models import RawUnit
from .navigation import load

logger = logging.getLogger(__name__)


async def _open_disclosure(page: Any, config: SiteConfig) -> None:
    control = page.locator(config.disclosure_selector).first
    if await control.count() == 0:
        logger.debug("No availability control on page")
        return
    try:
        await control.click(timeout=config.click_timeout_ms)
    except Exception as exc:
        logger.info("Could not open availability control, reading visible data: %s", exc)
        return
    logger.debug("Opened availability control")
    await page.wait_for_timeout(config.disclosure_pause_ms)


async def _container_tokens(page: Any, config: SiteConfig) -> List[UnitTokens]:
    tokens: List[UnitTokens] = []
    for selector in config.container_selectors:
        containers = page.locator(selector)
        count = await containers.count()
        if not count:
            continue
        logger.debug("Found %d container(s) for %s", count, selector)
        for index in range(count):
            text = await containers.nth(index).text_content(timeout=config.container_timeout_ms)
            tokens.extend(extract_unit_tokens(text or ""))
    return tokens


def _emit(
    tokens: Iterable[UnitTokens],
    *,
    floorplan_name: str,
    floorplan_url: str,
    bedroom_count: int,
    seen: SeenKeys,
) -> List[RawUnit]:
    units: List[RawUnit] = []
    for token in tokens:
        if not token.unit_number:
            continue
        key = dedup_key(floorplan_name, token.unit_number, token.rent_text, token.availability_text)
        if not seen.is_new(key):
            logger.debug(
                "Duplicate unit skipped: %s - %s - %s",
                token.unit_number,
                token.rent_text,
                token.availability_text,
            )
            continue
        units.append(
            RawUnit(
                unit_number=token.unit_number,
                rent_text=token.rent_text,
                availability_text=token.availability_text,
                floorplan_name=floorplan_name,
                floorplan_url=floorplan_url,
                bedroom_count=bedroom_count,
            )
        )
        logger.info("Found unit: %s - %s - %s", token.unit_number, token.rent_text, token.availability_text)
    return units


async def extract(
    page: Any,
    floorplan_url: str,
    floorplan_name: str,
    bedroom_count: int,
    seen: SeenKeys,
    config: Optional[SiteConfig] = None,
) -> List[RawUnit]:
    """Return the units listed on one floorplan detail page.

    Containers are scanned first; the whole page body is only scanned when
    they produced nothing. Keys already in *seen* are skipped and new keys are
    added to it. Any failure is logged and gives an empty list so the rest of
    the run carries on.
    """

    config = config or SiteConfig()
    emit = partial(
        _emit, floorplan_name=floorplan_name, floorplan_url=floorplan_url, bedroom_count=bedroom_count, seen=seen
    )
    try:
        logger.info("Visiting floorplan page: %s", floorplan_url)
        detail = NavigationStrategy(
            name="detail", wait_until=config.detail_wait_until, timeout_ms=config.detail_timeout_ms
        )
        await load(page, floorplan_url, [detail])
        await page.wait_for_timeout(config.settle_ms)

        await _open_disclosure(page, config)

        units = emit(await _container_tokens(page, config))
        if units:
            return units

        logger.info("No units found in containers for %s, scanning page text", floorplan_name)
        body = await page.text_content("body", timeout=config.body_timeout_ms)
        return emit(scan_page_text(body or ""))
    except Exception as exc:
        logger.error("Error scraping floorplan details for %s: %s", floorplan_url, exc)
        return []


__all__ = ["extract"]
