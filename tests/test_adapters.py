from __future__ import annotations

import asyncio
import json
from datetime import date
from pathlib import Path
import sys

import httpx
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from adapters.base import NotificationError, StoreError
from adapters.ntfy import NtfyNotifier, format_date, format_new_units
from adapters.supabase import SupabaseStore
from flats.models import Apartment, ScrapeLog


def make_apartment(unit, bedrooms=1, rent=1993, available=date(2025, 9, 28)):
    return Apartment(
        unit_number=unit,
        floorplan_name="The Dellwood",
        bedroom_count=bedrooms,
        rent=rent,
        availability_date=available,
    )


class Recorder:
    """MockTransport handler that records requests and replays a status."""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.payload is not None:
            return httpx.Response(self.status_code, json=self.payload)
        return httpx.Response(self.status_code)


def mock_client(recorder):
    return httpx.AsyncClient(transport=httpx.MockTransport(recorder))


def body(request):
    return json.loads(request.content)


# ntfy


def test_format_date_pads_day():
    assert format_date(date(2025, 9, 5)) == "Sep 05"
    assert format_date(None) == "TBD"


def test_format_single_unit():
    title, message = format_new_units([make_apartment("WEST-641")])

    assert title == "New Unit Available"
    assert message == "The Dellwood - #WEST-641 - $1,993 - Available Sep 28"


def test_format_single_unit_without_date():
    _, message = format_new_units([make_apartment("WEST-641", available=None)])

    assert message.endswith("Available Date TBD")


def test_format_few_units_lists_each():
    title, message = format_new_units([make_apartment("WEST-641"), make_apartment("EAST-12", rent=2100)])

    assert title == "2 New Units Available"
    assert message.split(" | ") == [
        "The Dellwood - #WEST-641 - $1,993 - Available Sep 28",
        "The Dellwood - #EAST-12 - $2,100 - Available Sep 28",
    ]


def test_format_many_units_summarizes_by_type():
    apartments = [make_apartment(f"WEST-{n}", bedrooms=0 if n < 2 else 1) for n in range(5)]

    title, message = format_new_units(apartments)

    assert title == "5 New Units Available"
    assert message == "2 studios, 3 1BRs - View all at flatsatpcm.com/floorplans"


def test_notify_new_posts_json_to_server():
    recorder = Recorder()
    notifier = NtfyNotifier("flats-test", client=mock_client(recorder))

    asyncio.run(notifier.notify_new([make_apartment("WEST-641")]))

    [request] = recorder.requests
    assert request.method == "POST"
    assert request.url.host == "ntfy.sh"
    payload = body(request)
    assert payload["topic"] == "flats-test"
    assert payload["title"] == "New Unit Available"
    assert payload["priority"] == 4
    assert payload["actions"][0]["label"] == "View Floorplan"


def test_notify_new_skips_empty_batches():
    recorder = Recorder()
    notifier = NtfyNotifier("flats-test", client=mock_client(recorder))

    asyncio.run(notifier.notify_new([]))

    assert recorder.requests == []


def test_notify_new_raises_on_http_error():
    notifier = NtfyNotifier("flats-test", client=mock_client(Recorder(status_code=500)))

    with pytest.raises(NotificationError):
        asyncio.run(notifier.notify_new([make_apartment("WEST-641")]))


def test_notify_error_never_raises():
    recorder = Recorder(status_code=503)
    notifier = NtfyNotifier("flats-test", "https://push.example.com/", client=mock_client(recorder))

    asyncio.run(notifier.notify_error("boom", "one-time scraping job"))

    [request] = recorder.requests
    assert request.url.host == "push.example.com"
    payload = body(request)
    assert payload["priority"] == 5
    assert payload["message"] == "Context: one-time scraping job\nError: boom"


def test_send_test_reports_success():
    notifier = NtfyNotifier("flats-test", client=mock_client(Recorder()))

    assert asyncio.run(notifier.send_test()) is True


def test_notifier_requires_topic(monkeypatch):
    monkeypatch.delenv("NTFY_TOPIC", raising=False)

    with pytest.raises(ValueError):
        NtfyNotifier()


# supabase


def make_store(recorder):
    return SupabaseStore("https://db.example.com", "service-key", client=mock_client(recorder))


def test_store_requires_credentials(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)

    with pytest.raises(ValueError):
        SupabaseStore()


def test_upsert_merges_on_unit_number():
    recorder = Recorder(status_code=201)
    store = make_store(recorder)

    asyncio.run(store.upsert([make_apartment("WEST-641")]))

    [request] = recorder.requests
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/apartments"
    assert request.url.params["on_conflict"] == "unit_number"
    assert request.headers["Prefer"] == "resolution=merge-duplicates,return=minimal"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["Authorization"] == "Bearer service-key"
    [record] = body(request)
    assert record["unit_number"] == "WEST-641"
    assert record["availability_date"] == "2025-09-28"
    assert record["first_seen"] == record["last_seen"]


def test_delete_except_keeps_listed_units():
    recorder = Recorder(status_code=204)
    store = make_store(recorder)

    asyncio.run(store.delete_except(["WEST-641", "EAST-12"]))

    [request] = recorder.requests
    assert request.method == "DELETE"
    assert request.url.params["unit_number"] == 'not.in.("WEST-641","EAST-12")'


def test_delete_except_with_nothing_to_keep_clears_table():
    recorder = Recorder(status_code=204)
    store = make_store(recorder)

    asyncio.run(store.delete_except([]))

    assert recorder.requests[0].url.params["id"] == "neq.0"


def test_find_new_units_compares_unit_numbers():
    store = make_store(Recorder(payload=[{"unit_number": "WEST-641"}]))

    new = asyncio.run(store.find_new_units([make_apartment("WEST-641"), make_apartment("EAST-12")]))

    assert [apt.unit_number for apt in new] == ["EAST-12"]


def test_fetch_failure_raises_store_error():
    store = make_store(Recorder(status_code=500))

    with pytest.raises(StoreError):
        asyncio.run(store.fetch_current())


def test_connection_check_reports_failure():
    store = make_store(Recorder(status_code=401))

    assert asyncio.run(store.test_connection()) is False


def test_append_run_log_drops_empty_fields():
    recorder = Recorder(status_code=201)
    store = make_store(recorder)
    log = ScrapeLog(started_at="2025-09-01T00:00:00+00:00", status="running")

    asyncio.run(store.append_run_log(log))

    [request] = recorder.requests
    assert request.url.path == "/rest/v1/scraping_logs"
    assert body(request) == {
        "started_at": "2025-09-01T00:00:00+00:00",
        "units_found": 0,
        "new_units": 0,
        "status": "running",
    }
