"""Record store backed by Supabase's PostgREST API."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from adapters.base import RecordStore, StoreError
from flats.models import Apartment, ScrapeLog

LOGGER = logging.getLogger(__name__)

APARTMENTS_TABLE = "apartments"
LOGS_TABLE = "scraping_logs"


def apartment_record(apt: Apartment, now: Optional[str] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc).isoformat()
    return {
        "unit_number": apt.unit_number,
        "floorplan_name": apt.floorplan_name,
        "bedroom_count": apt.bedroom_count,
        "rent": apt.rent,
        "availability_date": apt.availability_date.isoformat() if apt.availability_date else None,
        "last_seen": now,
        "first_seen": now,
    }


class SupabaseStore(RecordStore):
    """Reads and writes the ``apartments`` and ``scraping_logs`` tables."""

    name = "supabase"

    def __init__(
        self,
        url: Optional[str] = None,
        service_key: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 20.0,
    ) -> None:
        url = url or os.environ.get("SUPABASE_URL")
        service_key = service_key or os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
        if not url or not service_key:
            raise ValueError("Missing required Supabase environment variables")
        headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.client.base_url = f"{url.rstrip('/')}/rest/v1/"
        self.client.headers.update(headers)
        LOGGER.info("Database service initialized with Supabase")

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _request(self, method: str, table: str, **kwargs: Any) -> httpx.Response:
        resp = await self.client.request(method, table, **kwargs)
        resp.raise_for_status()
        return resp

    async def test_connection(self) -> bool:
        try:
            await self._request("GET", APARTMENTS_TABLE, params={"select": "id", "limit": "1"})
        except httpx.HTTPError as exc:
            LOGGER.error("Database connection test failed: %s", exc)
            return False
        LOGGER.info("Database connection test successful")
        return True

    async def fetch_current(self) -> List[Dict[str, Any]]:
        try:
            resp = await self._request("GET", APARTMENTS_TABLE, params={"select": "*"})
        except httpx.HTTPError as exc:
            raise StoreError(f"Failed to fetch active apartments: {exc}") from exc
        return resp.json() or []

    async def upsert(self, apartments: Sequence[Apartment]) -> None:
        if not apartments:
            return
        now = datetime.now(timezone.utc).isoformat()
        records = [apartment_record(apt, now) for apt in apartments]
        try:
            await self._request(
                "POST",
                APARTMENTS_TABLE,
                params={"on_conflict": "unit_number"},
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
                json=records,
            )
        except httpx.HTTPError as exc:
            raise StoreError(f"Failed to update apartments: {exc}") from exc
        LOGGER.info("Updated %d apartment records", len(records))

    async def delete_except(self, unit_numbers: Sequence[str]) -> None:
        if unit_numbers:
            quoted = ",".join(f'"{unit}"' for unit in unit_numbers)
            params = {"unit_number": f"not.in.({quoted})"}
        else:
            LOGGER.info("No current units to keep - removing all records")
            params = {"id": "neq.0"}
        try:
            await self._request("DELETE", APARTMENTS_TABLE, params=params)
        except httpx.HTTPError as exc:
            raise StoreError(f"Failed to remove unavailable units: {exc}") from exc
        LOGGER.info("Removed units no longer available")

    async def append_run_log(self, log: ScrapeLog) -> None:
        try:
            await self._request("POST", LOGS_TABLE, json=log.model_dump(exclude_none=True))
        except httpx.HTTPError as exc:
            raise StoreError(f"Failed to log scrape run: {exc}") from exc
        LOGGER.info(
            "Logged scrape run: %s - %d units found, %d new", log.status, log.units_found, log.new_units
        )

    async def close(self) -> None:
        await self.client.aclose()
