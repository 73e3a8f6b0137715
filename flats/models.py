"""Data models for floorplan discovery and unit extraction."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field


@dataclass(slots=True)
class FloorplanCandidate:
    """A floorplan card from the index page that qualifies for a detail visit."""

    title: str
    detail_url: str
    bedroom_count: int


@dataclass(slots=True)
class RawUnit:
    """Unit data as scraped from a floorplan detail page."""

    unit_number: str
    rent_text: str
    availability_text: str
    floorplan_name: str
    floorplan_url: str
    bedroom_count: int


class Apartment(BaseModel):
    """Normalized apartment unit handed to the store and notifier."""

    unit_number: str = Field(min_length=1)
    floorplan_name: str
    bedroom_count: int = Field(ge=0)
    rent: int = Field(ge=0)
    availability_date: Optional[date] = None

    @property
    def bedroom_label(self) -> str:
        return "Studio" if self.bedroom_count == 0 else f"{self.bedroom_count}BR"


class ScrapeLog(BaseModel):
    """One row of the run log kept by the record store."""

    started_at: str
    completed_at: Optional[str] = None
    units_found: int = 0
    new_units: int = 0
    errors: Optional[str] = None
    status: Literal["running", "completed", "failed"]


__all__ = ["FloorplanCandidate", "RawUnit", "Apartment", "ScrapeLog"]
