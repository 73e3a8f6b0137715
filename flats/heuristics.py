"""Text processing heuristics for floorplan and unit extraction.

Everything in here works on plain strings so the site grammar can be tested
without a browser. Markup changes on the target site should only ever need
edits to the patterns below.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import List, NamedTuple, Optional, Sequence

_LOGGER = logging.getLogger(__name__)

PRICE_MARKER = "Starting at $"
UNIT_MARKER = "#"
CURRENCY_MARKER = "$"
DEFAULT_AVAILABILITY = "Available Now"
FLOORPLAN_URL_TEMPLATE = "https://flatsatpcm.com/floorplans/the-{slug}/"

# Long descriptive codes (WEST-437) win over short column codes (D-1).
_LONG_UNIT_PATTERN = re.compile(r"#?([A-Z]{3,}-\d+|(?:WEST|EAST|NORTH|SOUTH)-\d+)")
_SHORT_UNIT_PATTERN = re.compile(r"#?([A-Z]+-\d+)")
_PRICE_PATTERN = re.compile(r"\$[\d,]+")
_DATE_PATTERN = re.compile(r"Available\s+[A-Za-z]+\s+\d+|\d+/\d+", flags=re.IGNORECASE)
_PAGE_UNIT_PATTERN = re.compile(
    r"#?((?:WEST|EAST|NORTH|SOUTH)-\d+).*?(\$[\d,]+).*?(Available\s+[A-Za-z]+\s+\d+|\d+/\d+)",
    flags=re.IGNORECASE | re.S,
)

_RENT_PATTERN = re.compile(r"\$?\s*(\d[\d,]*)")
_AVAILABLE_PREFIX = re.compile(r"^\s*available\s+", flags=re.IGNORECASE)
_MONTH_DAY_PATTERN = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2})$")
_SLASH_PATTERN = re.compile(r"(\d{1,2})/(\d{1,2})")
_FULL_DATE_FORMATS = ["%Y-%m-%d", "%m/%d/%Y", "%b %d, %Y", "%B %d, %Y"]

_BED_WORDS = {"one": 1, "two": 2, "three": 3}
_BED_WORD_PATTERN = re.compile(r"\b(one|two|three)[\s-]*bed", flags=re.IGNORECASE)
_BED_NUMBER_PATTERN = re.compile(r"(\d+)\s*bed", flags=re.IGNORECASE)


class UnitTokens(NamedTuple):
    """A unit/price/date triple pulled out of page text."""

    unit_number: str
    rent_text: str
    availability_text: str


def _normalise_text(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def parse_bedroom_count(title: str) -> int:
    """Return the bedroom count advertised by a floorplan *title*.

    Studios count as zero, and so does anything that cannot be classified.
    """

    if not title:
        return 0

    lowered = title.lower()
    if "studio" in lowered:
        return 0

    word = _BED_WORD_PATTERN.search(lowered)
    if word:
        return _BED_WORDS[word.group(1)]

    match = _BED_NUMBER_PATTERN.search(lowered)
    if match:
        return int(match.group(1))
    return 0


def has_price_marker(text: Optional[str], marker: str = PRICE_MARKER) -> bool:
    """Return True if card *text* advertises a starting price."""

    return bool(text) and marker in text


def floorplan_slug(title: str) -> str:
    slug = title.strip().lower()
    slug = re.sub(r"^the\s+", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"[^a-z0-9-]", "", slug)


def floorplan_url(title: str, template: str = FLOORPLAN_URL_TEMPLATE) -> str:
    """Build the detail page address for the floorplan called *title*.

    The site drops the leading article from the slug and then always puts
    ``the-`` back in front of it, so "The Dellwood" and "Dellwood" land on the
    same page.
    """

    return template.format(slug=floorplan_slug(title))


def find_unit_numbers(text: str) -> List[str]:
    """Return unit number tokens in *text*, without the leading ``#``."""

    if not text:
        return []
    units = _LONG_UNIT_PATTERN.findall(text)
    if not units:
        units = _SHORT_UNIT_PATTERN.findall(text)
    return [unit.strip() for unit in units]


def find_prices(text: str) -> List[str]:
    if not text:
        return []
    return _PRICE_PATTERN.findall(text)


def find_availability(text: str) -> List[str]:
    if not text:
        return []
    return [_normalise_text(token) for token in _DATE_PATTERN.findall(text)]


def pair_unit_tokens(
    units: Sequence[str],
    prices: Sequence[str],
    dates: Sequence[str],
) -> List[UnitTokens]:
    """Pair unit, price and date tokens by position.

    When a widget lists fewer prices or dates than units, the first one is
    reused for the remaining units. No units or no prices means no triples.
    """

    if not units or not prices:
        return []

    triples: List[UnitTokens] = []
    for index, unit in enumerate(units):
        if not unit:
            continue
        rent = prices[index] if index < len(prices) else prices[0]
        if dates:
            availability = dates[index] if index < len(dates) else dates[0]
        else:
            availability = DEFAULT_AVAILABILITY
        triples.append(UnitTokens(unit, rent.strip(), availability.strip()))
    return triples


def looks_like_unit_container(text: Optional[str]) -> bool:
    """Return True if container *text* could hold unit and price data."""

    return bool(text) and UNIT_MARKER in text and CURRENCY_MARKER in text


def extract_unit_tokens(text: str) -> List[UnitTokens]:
    """Extract unit/price/date triples from a single container's *text*."""

    if not looks_like_unit_container(text):
        return []
    triples = pair_unit_tokens(find_unit_numbers(text), find_prices(text), find_availability(text))
    _LOGGER.debug("Container text yielded %d unit token(s)", len(triples))
    return triples


def scan_page_text(text: str) -> List[UnitTokens]:
    """Scan a whole page body for units with a directional prefix.

    Used when no structured container produced anything; each match carries
    its own unit, price and date.
    """

    if not text:
        return []
    triples: List[UnitTokens] = []
    for match in _PAGE_UNIT_PATTERN.finditer(text):
        unit = match.group(1).upper()
        triples.append(UnitTokens(unit, match.group(2), _normalise_text(match.group(3))))
    return triples


def parse_rent(text: Optional[str]) -> int:
    """Return the rent in *text* as whole dollars, or 0 when there is none."""

    if not text:
        return 0
    match = _RENT_PATTERN.search(text)
    if not match:
        return 0
    digits = match.group(1).replace(",", "")
    try:
        return int(digits)
    except ValueError:
        return 0


def _month_day(month: str, day: int, year: int) -> Optional[date]:
    # "Sept" and friends only parse through their three letter prefix
    for name, fmt in ((month[:3], "%b"), (month, "%B")):
        try:
            return datetime.strptime(f"{name} {day} {year}", f"{fmt} %d %Y").date()
        except ValueError:
            continue
    return None


def parse_availability(text: Optional[str], today: Optional[date] = None) -> Optional[date]:
    """Parse an availability string such as "Available Sep 28" or "9/28".

    Dates without a year are placed in the current year. Anything that cannot
    be understood gives ``None``.
    """

    if not text:
        return None
    today = today or date.today()
    cleaned = _normalise_text(_AVAILABLE_PREFIX.sub("", text))

    for fmt in _FULL_DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue

    match = _MONTH_DAY_PATTERN.match(cleaned)
    if match:
        parsed = _month_day(match.group(1), int(match.group(2)), today.year)
        if parsed is not None:
            return parsed

    match = _SLASH_PATTERN.search(cleaned)
    if match:
        try:
            return date(today.year, int(match.group(1)), int(match.group(2)))
        except ValueError:
            pass

    _LOGGER.debug("Unable to parse availability from %r", text)
    return None
