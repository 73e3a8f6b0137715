# adapters/base.py
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from flats.models import Apartment, ScrapeLog


class StoreError(RuntimeError):
    pass


class NotificationError(RuntimeError):
    pass


class RecordStore(ABC):
    """Where apartments seen by previous runs are kept."""

    name: str

    @abstractmethod
    async def fetch_current(self) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def upsert(self, apartments: Sequence[Apartment]) -> None:
        ...

    @abstractmethod
    async def delete_except(self, unit_numbers: Sequence[str]) -> None:
        ...

    @abstractmethod
    async def append_run_log(self, log: ScrapeLog) -> None:
        ...

    async def test_connection(self) -> bool:
        return True

    async def find_new_units(self, apartments: Sequence[Apartment]) -> List[Apartment]:
        existing = {record.get("unit_number") for record in await self.fetch_current()}
        return [apt for apt in apartments if apt.unit_number not in existing]

    async def close(self) -> None:
        return None


class NotificationSink(ABC):
    name: str

    @abstractmethod
    async def notify_new(self, apartments: Sequence[Apartment]) -> None:
        ...

    @abstractmethod
    async def notify_error(self, message: str, context: Optional[str] = None) -> None:
        """Report a failed run. Must never raise."""

    async def close(self) -> None:
        return None
