"""Identity keys and seen-sets for unit deduplication."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, MutableSet, Optional, Tuple

from .models import Apartment, RawUnit

logger = logging.getLogger(__name__)

KEY_DELIMITER = "|"


def dedup_key(floorplan_name: str, unit_number: str, rent_text: str, availability_text: str) -> str:
    """Return the identity key for one scraped unit.

    All four parts take part: the same unit number under two floorplans, or
    the same unit at a new price or date, is a different entry.
    """

    return KEY_DELIMITER.join((floorplan_name, unit_number, rent_text, availability_text))


def unit_key(unit: RawUnit) -> str:
    return dedup_key(unit.floorplan_name, unit.unit_number, unit.rent_text, unit.availability_text)


def is_new(key: str, seen: MutableSet[str]) -> bool:
    """Return True and remember *key* if it is not already in *seen*."""

    if key in seen:
        return False
    seen.add(key)
    return True


class SeenKeys:
    """Run-scoped set of dedup keys shared by every floorplan in one run."""

    def __init__(self, keys: Optional[Iterable[str]] = None) -> None:
        self._keys: set[str] = set(keys or ())

    def is_new(self, key: str) -> bool:
        return is_new(key, self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)


def collate(pairs: Iterable[Tuple[RawUnit, Apartment]]) -> List[Apartment]:
    """Drop repeated apartments after normalization, keeping first-seen order.

    *pairs* holds each scraped unit next to its normalized apartment. Keys
    come from the scraped text, so "Available Sep 28" and "9/28" stay
    separate even though they parse to the same date.
    """

    seen: set[str] = set()
    unique: List[Apartment] = []
    for raw, apartment in pairs:
        if is_new(unit_key(raw), seen):
            unique.append(apartment)
        else:
            logger.info("Final duplicate unit filtered out: %s - %s", raw.floorplan_name, raw.unit_number)
    return unique


__all__ = ["KEY_DELIMITER", "SeenKeys", "collate", "dedup_key", "is_new", "unit_key"]
