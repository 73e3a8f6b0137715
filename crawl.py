# crawl.py
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from adapters.base import NotificationSink, RecordStore
from adapters.ntfy import NtfyNotifier
from adapters.supabase import SupabaseStore
from flats.config import load_config
from flats.models import Apartment, ScrapeLog
from flats.workflow import FloorplanScraper

logger = logging.getLogger(__name__)

ERROR_CONTEXT = "one-time scraping job"


@dataclass
class RunSummary:
    found: List[Apartment] = field(default_factory=list)
    new: List[Apartment] = field(default_factory=list)
    ignore_database: bool = False

    def lines(self) -> List[str]:
        label = "Units notified" if self.ignore_database else "New units"
        out = [
            "=== SCRAPING SUMMARY ===",
            f"Total units found: {len(self.found)}",
            f"{label}: {len(self.new)}",
        ]
        for apt in self.new:
            when = apt.availability_date.strftime("%m/%d/%Y") if apt.availability_date else "TBD"
            out.append(f"  - {apt.bedroom_label} {apt.unit_number}: ${apt.rent}/mo (Available: {when})")
        return out


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def run_once(
    ignore_database: bool = False,
    *,
    scraper: Optional[FloorplanScraper] = None,
    store: Optional[RecordStore] = None,
    notifier: Optional[NotificationSink] = None,
) -> RunSummary:
    """Scrape once, notify about new units and sync the record store.

    With *ignore_database* every unit found counts as new and the store is
    never touched.
    """
    started = _now()
    try:
        scraper = scraper or FloorplanScraper(load_config())
        notifier = notifier or NtfyNotifier()
        if ignore_database:
            logger.info("Database checks disabled - will notify for all found units")
            store = None
        else:
            store = store or SupabaseStore()
            if not await store.test_connection():
                raise RuntimeError("Database connection failed")

        apartments = await scraper.run()
        logger.info("Scraper found %d available units", len(apartments))
        if not apartments:
            logger.warning("No apartments found - this might indicate a scraping issue")

        new_units = apartments if store is None else await store.find_new_units(apartments)
        logger.info("Found %d %s units", len(new_units), "total" if store is None else "new")
        if new_units:
            await notifier.notify_new(new_units)

        if store is not None:
            if apartments:
                await store.upsert(apartments)
                await store.delete_except([apt.unit_number for apt in apartments])
            await store.append_run_log(
                ScrapeLog(
                    started_at=started,
                    completed_at=_now(),
                    units_found=len(apartments),
                    new_units=len(new_units),
                    status="completed",
                )
            )
    except Exception as exc:
        logger.error("One-time scraping failed: %s", exc)
        await _report_failure(str(exc), started, store, notifier)
        raise
    finally:
        for resource in (store, notifier):
            if resource is not None:
                await resource.close()

    summary = RunSummary(found=apartments, new=new_units, ignore_database=ignore_database)
    for line in summary.lines():
        logger.info(line)
    return summary


async def _report_failure(
    message: str,
    started: str,
    store: Optional[RecordStore],
    notifier: Optional[NotificationSink],
) -> None:
    if store is not None:
        try:
            await store.append_run_log(
                ScrapeLog(
                    started_at=started,
                    completed_at=_now(),
                    units_found=0,
                    new_units=0,
                    errors=message,
                    status="failed",
                )
            )
        except Exception as exc:
            logger.error("Failed to log failed run: %s", exc)
    if notifier is not None:
        await notifier.notify_error(message, ERROR_CONTEXT)


if __name__ == "__main__":
    asyncio.run(run_once())
