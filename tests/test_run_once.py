from __future__ import annotations

import asyncio
from datetime import date
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from adapters.memory import MemoryNotifier, MemoryStore
from crawl import ERROR_CONTEXT, run_once
from flats.models import Apartment


def make_apartment(unit, bedrooms=1, rent=1993):
    return Apartment(
        unit_number=unit,
        floorplan_name="The Dellwood",
        bedroom_count=bedrooms,
        rent=rent,
        availability_date=date(2025, 9, 28),
    )


class FakeScraper:
    def __init__(self, result):
        self.result = result
        self.runs = 0

    async def run(self):
        self.runs += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class OfflineStore(MemoryStore):
    async def test_connection(self):
        return False


def test_run_once_notifies_only_new_units_and_syncs_store():
    store = MemoryStore([{"unit_number": "WEST-641"}, {"unit_number": "GONE-1"}])
    notifier = MemoryNotifier()
    scraper = FakeScraper([make_apartment("WEST-641"), make_apartment("EAST-12", bedrooms=0)])

    summary = asyncio.run(run_once(scraper=scraper, store=store, notifier=notifier))

    assert [apt.unit_number for apt in summary.new] == ["EAST-12"]
    assert [[apt.unit_number for apt in batch] for batch in notifier.sent] == [["EAST-12"]]
    assert sorted(store.records) == ["EAST-12", "WEST-641"]
    assert store.records["EAST-12"]["rent"] == 1993
    [log] = store.logs
    assert log.status == "completed"
    assert (log.units_found, log.new_units) == (2, 1)


def test_run_once_without_database_notifies_everything():
    store = MemoryStore([{"unit_number": "WEST-641"}])
    notifier = MemoryNotifier()
    scraper = FakeScraper([make_apartment("WEST-641")])

    summary = asyncio.run(run_once(True, scraper=scraper, store=store, notifier=notifier))

    assert [apt.unit_number for apt in summary.new] == ["WEST-641"]
    assert len(notifier.sent) == 1
    assert store.logs == []
    assert "Units notified: 1" in summary.lines()


def test_run_once_with_no_units_skips_notification_but_logs():
    store = MemoryStore([{"unit_number": "WEST-641"}])
    notifier = MemoryNotifier()

    summary = asyncio.run(run_once(scraper=FakeScraper([]), store=store, notifier=notifier))

    assert summary.found == []
    assert notifier.sent == []
    assert list(store.records) == ["WEST-641"]
    assert store.logs[0].units_found == 0


def test_run_once_reports_scrape_failure():
    store = MemoryStore()
    notifier = MemoryNotifier()
    scraper = FakeScraper(RuntimeError("All scraping attempts failed"))

    with pytest.raises(RuntimeError):
        asyncio.run(run_once(scraper=scraper, store=store, notifier=notifier))

    [log] = store.logs
    assert log.status == "failed"
    assert log.errors == "All scraping attempts failed"
    assert notifier.errors == [("All scraping attempts failed", ERROR_CONTEXT)]


def test_run_once_stops_when_database_is_unreachable():
    notifier = MemoryNotifier()
    scraper = FakeScraper([make_apartment("WEST-641")])

    with pytest.raises(RuntimeError, match="Database connection failed"):
        asyncio.run(run_once(scraper=scraper, store=OfflineStore(), notifier=notifier))

    assert scraper.runs == 0
    assert notifier.errors == [("Database connection failed", ERROR_CONTEXT)]
