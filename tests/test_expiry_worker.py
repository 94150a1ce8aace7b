"""
Expiry sweeper tests
"""
import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio

from conftest import new_listing
from ecobid.domain import ListingStatus
from ecobid.services import ExpirySweeper


@pytest_asyncio.fixture
async def sweeper(engine):
    worker = ExpirySweeper(engine.finalization, interval_seconds=0.01, batch_size=10)
    yield worker
    await worker.stop()


@pytest.mark.asyncio
async def test_run_once_finalizes_unread_listing(engine, clock, sweeper):
    listing = engine.listings.create_listing("seller-1", new_listing(duration_minutes=5))
    engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))
    clock.advance(minutes=6)

    finalized = await sweeper.run_once()

    assert finalized == 1
    stored = engine.repository.get_listing(listing.id)
    assert stored.status == ListingStatus.ENDED
    assert stored.winner_id == "buyer-1"


@pytest.mark.asyncio
async def test_background_loop(engine, clock, sweeper):
    listings = [
        engine.listings.create_listing("seller-1", new_listing(duration_minutes=5))
        for _ in range(3)
    ]
    clock.advance(minutes=10)

    await sweeper.start()
    for _ in range(100):
        if all(engine.repository.get_listing(l.id).status == ListingStatus.ENDED for l in listings):
            break
        await asyncio.sleep(0.01)
    await sweeper.stop()

    assert sweeper.running is False
    assert all(engine.repository.get_listing(l.id).status == ListingStatus.ENDED for l in listings)


@pytest.mark.asyncio
async def test_loop_survives_errors(engine, clock, sweeper):
    calls = []

    def broken_sweep(limit=None):
        calls.append(limit)
        raise RuntimeError("store unavailable")

    engine.finalization.sweep_expired = broken_sweep

    await sweeper.start()
    await asyncio.sleep(0.2)
    await sweeper.stop()

    assert len(calls) >= 2
    assert calls[0] == 10


@pytest.mark.asyncio
async def test_start_twice_is_harmless(sweeper):
    await sweeper.start()
    first_task = sweeper.task
    await sweeper.start()

    assert sweeper.task is first_task
