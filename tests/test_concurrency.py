"""
Race tests: many threads hitting the same listing at once

Every mutation is a compare-and-swap on the listing version, so each race
must resolve to exactly the outcome a sequential execution could produce.
Each test runs against the in-memory store and against a SQLite file, where
the swap is a conditional UPDATE on the version column.
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from ecobid.domain import EventType, ListingStatus
from ecobid.infrastructure.database import create_db_engine, create_session_factory, init_db
from ecobid.infrastructure.memory_store import InMemoryListingRepository, InMemoryPointsLedger
from ecobid.infrastructure.points_ledger import SqlPointsLedger
from ecobid.infrastructure.sql_store import SqlListingRepository
from ecobid.services import AuctionEngine
from ecobid.services.errors import AlreadySettled, AuctionError, BidTooLow, HasBids, AuctionClosed


@pytest.fixture(params=["memory", "sql"])
def engine(request, tmp_path, notifier, settings, clock):
    if request.param == "memory":
        yield AuctionEngine(InMemoryListingRepository(), InMemoryPointsLedger(), notifier, settings, clock)
        return

    db_engine = create_db_engine(f"sqlite:///{tmp_path / 'races.db'}", settings)
    init_db(db_engine)
    session_factory = create_session_factory(db_engine)
    yield AuctionEngine(
        SqlListingRepository(session_factory),
        SqlPointsLedger(session_factory),
        notifier,
        settings,
        clock,
    )
    db_engine.dispose()


def bid_ledger(engine, listing_id):
    """Full bid ledger in admission order"""
    return list(reversed(engine.repository.list_bids(listing_id, limit=1000)))


def run_concurrently(fn, args_list):
    """Run fn(*args) for every args tuple, released together by a barrier"""
    barrier = threading.Barrier(len(args_list))

    def worker(args):
        barrier.wait()
        try:
            return ("ok", fn(*args))
        except AuctionError as e:
            return ("error", e)

    with ThreadPoolExecutor(max_workers=len(args_list)) as executor:
        return list(executor.map(worker, args_list))


class TestConcurrentBids:

    def test_scenario_twenty_overlapping_bids(self, engine, listing):
        """Amounts 100, 105, ... 145, each submitted by two bidders at once"""
        amounts = [Decimal(100 + 5 * k) for k in range(10)]
        args = [(listing.id, f"buyer-{i}", amount) for i, amount in enumerate(amounts * 2)]

        results = run_concurrently(engine.bids.place_bid, args)

        accepted = [r.bid for status, r in results if status == "ok"]
        rejected = [r for status, r in results if status == "error"]

        assert len(accepted) + len(rejected) == 20
        assert all(isinstance(e, BidTooLow) for e in rejected)

        ledger = bid_ledger(engine, listing.id)
        assert [b.sequence for b in ledger] == list(range(1, len(ledger) + 1))
        assert len(ledger) == len(accepted)
        assert ledger[0].amount >= Decimal("100")
        for previous, current in zip(ledger, ledger[1:]):
            assert current.amount >= previous.amount + Decimal("5")

        final = engine.repository.get_listing(listing.id)
        assert final.current_price == Decimal("145")
        assert final.current_price == max(b.amount for b in accepted)
        assert final.bid_count == len(ledger)
        assert final.version == len(ledger)

    def test_same_amount_only_one_wins(self, engine, listing):
        engine.bids.place_bid(listing.id, "buyer-0", Decimal("100"))
        args = [(listing.id, f"buyer-{i}", Decimal("120")) for i in range(1, 9)]

        results = run_concurrently(engine.bids.place_bid, args)

        assert sum(1 for status, _ in results if status == "ok") == 1
        final = engine.repository.get_listing(listing.id)
        assert final.current_price == Decimal("120")
        assert final.bid_count == 2


class TestConcurrentLifecycle:

    def test_finalize_race_has_one_winner(self, engine, listing, notifier, clock):
        engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))
        clock.advance(minutes=61)

        results = run_concurrently(
            engine.finalization.finalize,
            [(listing.id,) for _ in range(10)],
        )

        transitioned = [r for status, r in results if status == "ok" and r.transitioned]
        assert len(transitioned) == 1
        assert all(status == "ok" for status, _ in results)

        credentials = {r.listing.verification_credential for _, r in results}
        assert len(credentials) == 1
        assert len(notifier.of_type(EventType.WINNER_CREDENTIAL_ISSUED)) == 1

    def test_settlement_race_awards_once(self, engine, listing):
        engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))
        ended = engine.listings.close_early(listing.id, "seller-1")

        results = run_concurrently(
            engine.settlement.redeem,
            [(ended.id, "seller-1", ended.verification_credential) for _ in range(6)],
        )

        successes = [r for status, r in results if status == "ok"]
        failures = [r for status, r in results if status == "error"]
        assert len(successes) == 1
        assert all(isinstance(e, AlreadySettled) for e in failures)
        assert engine.ledger.balance("seller-1") == 30
        assert engine.ledger.balance("buyer-1") == 20

    def test_cancel_and_bid_race(self, engine, listing):
        results = run_concurrently(
            lambda action: action(),
            [
                (lambda: engine.listings.cancel_listing(listing.id, "seller-1"),),
                (lambda: engine.bids.place_bid(listing.id, "buyer-1", Decimal("100")),),
            ],
        )

        final = engine.repository.get_listing(listing.id)
        cancel_status, cancel_result = results[0]
        bid_status, bid_result = results[1]

        if final.status == ListingStatus.CANCELLED:
            assert cancel_status == "ok"
            assert isinstance(bid_result, AuctionClosed)
            assert final.bid_count == 0
        else:
            assert bid_status == "ok"
            assert isinstance(cancel_result, HasBids)
            assert final.bid_count == 1
