import asyncio

import pytest

from flats.config import NavigationStrategy
from flats.navigation import load

STRATEGIES = [
    NavigationStrategy(name="A", wait_until="domcontentloaded", timeout_ms=30000),
    NavigationStrategy(name="B", wait_until="load", timeout_ms=45000),
    NavigationStrategy(name="C", wait_until="networkidle", timeout_ms=60000),
]


class ScriptedPage:
    """Page whose goto() follows a script of results or exceptions."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def goto(self, url, *, wait_until, timeout):
        self.calls.append((url, wait_until, timeout))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def test_load_tries_each_strategy_once_in_order():
    page = ScriptedPage([TimeoutError("A"), TimeoutError("B"), "response"])

    result = asyncio.run(load(page, "https://flatsatpcm.com/floorplans/", STRATEGIES))

    assert result == "response"
    assert [call[1:] for call in page.calls] == [
        ("domcontentloaded", 30000),
        ("load", 45000),
        ("networkidle", 60000),
    ]


def test_load_stops_at_first_success():
    page = ScriptedPage(["response"])

    asyncio.run(load(page, "https://flatsatpcm.com/floorplans/", STRATEGIES))

    assert len(page.calls) == 1


def test_load_reraises_last_error():
    last = RuntimeError("network idle never reached")
    page = ScriptedPage([TimeoutError("A"), TimeoutError("B"), last])

    with pytest.raises(RuntimeError) as excinfo:
        asyncio.run(load(page, "https://flatsatpcm.com/floorplans/", STRATEGIES))

    assert excinfo.value is last
    assert len(page.calls) == 3


def test_load_requires_a_strategy():
    with pytest.raises(ValueError):
        asyncio.run(load(ScriptedPage([]), "https://flatsatpcm.com/floorplans/", []))
