"""In-memory record store and notification sink for dry runs and tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from adapters.base import NotificationSink, RecordStore
from flats.models import Apartment, ScrapeLog


class MemoryStore(RecordStore):
    name = "memory"

    def __init__(self, records: Optional[Sequence[Dict[str, Any]]] = None) -> None:
        self.records: Dict[str, Dict[str, Any]] = {r["unit_number"]: dict(r) for r in records or ()}
        self.logs: List[ScrapeLog] = []

    async def fetch_current(self) -> List[Dict[str, Any]]:
        return [dict(record) for record in self.records.values()]

    async def upsert(self, apartments: Sequence[Apartment]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        for apt in apartments:
            previous = self.records.get(apt.unit_number, {})
            record = apt.model_dump(mode="json")
            record["first_seen"] = previous.get("first_seen", now)
            record["last_seen"] = now
            self.records[apt.unit_number] = record

    async def delete_except(self, unit_numbers: Sequence[str]) -> None:
        keep = set(unit_numbers)
        self.records = {unit: record for unit, record in self.records.items() if unit in keep}

    async def append_run_log(self, log: ScrapeLog) -> None:
        self.logs.append(log)


class MemoryNotifier(NotificationSink):
    name = "memory"

    def __init__(self) -> None:
        self.sent: List[List[Apartment]] = []
        self.errors: List[Tuple[str, Optional[str]]] = []

    async def notify_new(self, apartments: Sequence[Apartment]) -> None:
        if apartments:
            self.sent.append(list(apartments))

    async def notify_error(self, message: str, context: Optional[str] = None) -> None:
        self.errors.append((message, context))
