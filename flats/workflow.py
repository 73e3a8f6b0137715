"""High-level workflow for a complete scraping run."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from tenacity import AsyncRetrying, before_sleep_log, stop_after_attempt, wait_incrementing

from .browser import BrowserSession
from .config import SiteConfig
from .dedup import SeenKeys, collate
from .discover import discover
from .extract import extract
from .heuristics import parse_availability, parse_rent
from .models import Apartment, FloorplanCandidate, RawUnit

logger = logging.getLogger(__name__)


def normalize_unit(raw: RawUnit, today: Optional[date] = None) -> Apartment:
    """Turn an as-scraped unit into an :class:`Apartment`."""

    return Apartment(
        unit_number=raw.unit_number,
        floorplan_name=raw.floorplan_name,
        bedroom_count=raw.bedroom_count,
        rent=parse_rent(raw.rent_text),
        availability_date=parse_availability(raw.availability_text, today=today),
    )


def normalize_units(raw_units: Iterable[RawUnit], today: Optional[date] = None) -> List[Apartment]:
    return [normalize_unit(raw, today=today) for raw in raw_units]


class FloorplanScraper:
    """Runs discovery and extraction inside a whole-run retry envelope.

    One browser session and one page are used for the whole attempt, and
    floorplans are visited one after another.
    """

    def __init__(
        self,
        config: Optional[SiteConfig] = None,
        *,
        session_factory: Optional[Callable[[], Any]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        environment: Optional[str] = None,
    ) -> None:
        self.config = config or SiteConfig()
        self.environment = environment
        self._session_factory = session_factory or self._default_session
        self._sleep = sleep

    def _default_session(self) -> BrowserSession:
        return BrowserSession(self.config.browser, environment=self.environment)

    async def collect(self, page: Any, candidates: Iterable[FloorplanCandidate], seen: SeenKeys) -> List[RawUnit]:
        raw_units: List[RawUnit] = []
        for candidate in candidates:
            logger.info("Processing %dBR floorplan: %s", candidate.bedroom_count, candidate.title)
            units = await extract(
                page,
                candidate.detail_url,
                candidate.title,
                candidate.bedroom_count,
                seen,
                self.config,
            )
            logger.debug("%s yielded %d unit(s)", candidate.title, len(units))
            raw_units.extend(units)
        return raw_units

    async def scrape(self, session: Any) -> List[Apartment]:
        """Run one discovery + extraction pass on an open *session*."""

        page = await session.new_page()
        seen = SeenKeys()
        try:
            candidates = await discover(page, self.config)
            raw_units = await self.collect(page, candidates, seen)
        finally:
            try:
                await page.close()
            except Exception as exc:
                logger.warning("Could not close page: %s", exc)
        return collate(zip(raw_units, normalize_units(raw_units)))

    async def run(self) -> List[Apartment]:
        """Scrape with up to ``max_attempts`` attempts and linear backoff.

        The session is closed after every attempt, successful or not, and once
        more before the last error is raised.
        """

        session = self._session_factory()
        attempts = self.config.max_attempts
        delay = self.config.retry_delay_seconds
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_incrementing(start=delay, increment=delay),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        apartments: List[Apartment] = []
        try:
            async for attempt in retrying:
                with attempt:
                    logger.info("Scraping attempt %d/%d...", attempt.retry_state.attempt_number, attempts)
                    try:
                        await session.open()
                        apartments = await self.scrape(session)
                    finally:
                        await session.close()
        except Exception as exc:
            logger.error("All %d scraping attempts failed: %s", attempts, exc)
            await session.close()
            raise
        logger.info("Scraping completed. Found %d available units.", len(apartments))
        return apartments


async def scrape_apartments(config: Optional[SiteConfig] = None) -> List[Apartment]:
    return await FloorplanScraper(config).run()


__all__ = ["FloorplanScraper", "normalize_unit", "normalize_units", "scrape_apartments"]
