"""Shared fixtures."""

import asyncio
import random
from datetime import datetime, timedelta

import pytest

from parceltrack.config import TrackerConfig
from parceltrack.models import KST, FetchedTimeline, RawEvent
from parceltrack.tracking.adapters import SourceAdapter, SyntheticAdapter
from parceltrack.tracking.orchestrator import DeadlineOrchestrator


FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=KST)


@pytest.fixture
def config(tmp_path):
    """Test configuration with short deadlines."""
    return TrackerConfig(
        global_deadline=2.0,
        adapter_timeout=1.0,
        adapter_budget_fraction=0.8,
        synthetic_seed=7,
        log_file=str(tmp_path / "logs" / "test.log"),
    )


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def make_event():
    """Factory for raw events placed relative to FIXED_NOW."""

    def _make(status_text, hours_ago=0, location="서울 물류센터", description=None):
        return RawEvent(
            timestamp=FIXED_NOW - timedelta(hours=hours_ago),
            raw_location=location,
            raw_status_text=status_text,
            raw_description=description,
        )

    return _make


class FakeAdapter(SourceAdapter):
    """Scripted source: returns events, raises, or stalls."""

    def __init__(self, name, events=None, error=None, delay=0.0):
        self._name = name
        self.events = events or []
        self.error = error
        self.delay = delay
        self.budgets = []
        self.cancelled = False

    @property
    def name(self):
        return self._name

    @property
    def calls(self):
        return len(self.budgets)

    async def fetch(self, tracking_number, budget):
        self.budgets.append(budget)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return FetchedTimeline(events=self.events)


@pytest.fixture
def fake_adapter():
    return FakeAdapter


@pytest.fixture
def orchestrator_for(config, clock):
    """Build an orchestrator whose chain is the given adapters plus synthetic."""

    def _build(*adapters, orchestrator_class=DeadlineOrchestrator):
        def chain_builder(carrier):
            return [*adapters, SyntheticAdapter(rng=random.Random(1), clock=clock)]

        return orchestrator_class(config, chain_builder=chain_builder, clock=clock)

    return _build
