"""
Shared fixtures: an in-memory engine driven by a controllable clock
"""
import threading
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

import pytest

from ecobid.core.config import Settings
from ecobid.domain import DomainEvent, EventType
from ecobid.infrastructure.memory_store import InMemoryListingRepository, InMemoryPointsLedger
from ecobid.infrastructure.notifier import EventNotifier
from ecobid.services import AuctionEngine, NewListing

START = datetime(2026, 1, 1, 12, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier(EventNotifier):
    """Keeps every delivered event in memory"""

    def __init__(self):
        self._lock = threading.Lock()
        self.events: List[DomainEvent] = []

    def notify(self, event: DomainEvent) -> None:
        with self._lock:
            self.events.append(event)

    def of_type(self, event_type: EventType, recipient: Optional[str] = None) -> List[DomainEvent]:
        with self._lock:
            return [
                e for e in self.events
                if e.type == event_type and (recipient is None or recipient in e.recipients)
            ]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()


def make_settings(**overrides) -> Settings:
    values = dict(
        STORE_BACKEND="memory",
        NOTIFIER_BACKEND="log",
        CAS_MAX_RETRIES=50,
        CAS_RETRY_INITIAL_DELAY=0.001,
        CAS_RETRY_MAX_DELAY=0.01,
        EXPIRY_SWEEP_ENABLED=False,
        LOG_JSON=False,
    )
    values.update(overrides)
    return Settings(**values)


def new_listing(base_price="100", duration_minutes=60, **overrides) -> NewListing:
    values = dict(
        waste_type="PET plastic",
        weight_kg=Decimal("250"),
        base_price=Decimal(base_price),
        duration_minutes=duration_minutes,
        latitude=12.97,
        longitude=77.59,
        description="Baled PET bottles",
        city="Bengaluru",
        state="KA",
    )
    values.update(overrides)
    return NewListing(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository():
    return InMemoryListingRepository()


@pytest.fixture
def ledger():
    return InMemoryPointsLedger()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(repository, ledger, notifier, settings, clock):
    return AuctionEngine(repository, ledger, notifier, settings, clock)


@pytest.fixture
def listing(engine):
    """ACTIVE listing by seller-1, base price 100, ends in 60 minutes"""
    return engine.listings.create_listing("seller-1", new_listing())
