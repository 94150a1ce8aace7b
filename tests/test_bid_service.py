"""
Bid acceptance tests

Covers the precondition order, minimum-bid chain and event emission.
"""
from decimal import Decimal

import pytest

from conftest import new_listing
from ecobid.domain import EventType, ListingStatus
from ecobid.infrastructure.notifier import EventNotifier
from ecobid.services import AuctionEngine
from ecobid.services.errors import (
    AuctionClosed,
    BidTooLow,
    NotFound,
    SelfBidForbidden,
    ValidationError,
)


class TestMinimumBidChain:
    """Base price 100, increment 5"""

    def test_scenario_increment_chain(self, engine, listing):
        with pytest.raises(BidTooLow) as low_first:
            engine.bids.place_bid(listing.id, "buyer-1", Decimal("90"))
        assert low_first.value.minimum_bid == Decimal("100")

        assert engine.bids.place_bid(listing.id, "buyer-1", Decimal("100")).listing.current_price == Decimal("100")

        with pytest.raises(BidTooLow) as low_second:
            engine.bids.place_bid(listing.id, "buyer-2", Decimal("103"))
        assert low_second.value.minimum_bid == Decimal("105")

        assert engine.bids.place_bid(listing.id, "buyer-2", Decimal("105")).listing.current_price == Decimal("105")

    def test_first_bid_at_base_price_is_accepted(self, engine, listing):
        receipt = engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))

        assert receipt.bid.sequence == 1
        assert receipt.listing.current_price == Decimal("100")
        assert receipt.listing.bid_count == 1

    def test_first_bid_below_base_price_is_rejected(self, engine, listing):
        with pytest.raises(BidTooLow) as exc_info:
            engine.bids.place_bid(listing.id, "buyer-1", Decimal("99.99"))

        assert exc_info.value.minimum_bid == Decimal("100")

    def test_increment_applies_after_first_bid(self, engine, listing):
        engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))

        with pytest.raises(BidTooLow) as exc_info:
            engine.bids.place_bid(listing.id, "buyer-2", Decimal("104"))
        assert exc_info.value.minimum_bid == Decimal("105")

        receipt = engine.bids.place_bid(listing.id, "buyer-2", Decimal("105"))
        assert receipt.listing.current_price == Decimal("105")
        assert receipt.bid.sequence == 2

    def test_equal_bid_is_rejected(self, engine, listing):
        engine.bids.place_bid(listing.id, "buyer-1", Decimal("120"))

        with pytest.raises(BidTooLow):
            engine.bids.place_bid(listing.id, "buyer-2", Decimal("120"))

    def test_price_never_decreases(self, engine, listing):
        prices = []
        for i, amount in enumerate(["100", "110", "115", "140"]):
            receipt = engine.bids.place_bid(listing.id, f"buyer-{i}", Decimal(amount))
            prices.append(receipt.listing.current_price)

        for low in ["100", "139", "144.99"]:
            with pytest.raises(BidTooLow):
                engine.bids.place_bid(listing.id, "buyer-x", Decimal(low))

        assert prices == sorted(prices)
        assert engine.repository.get_listing(listing.id).current_price == Decimal("140")

    def test_same_bidder_can_raise_own_bid(self, engine, listing):
        engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))
        receipt = engine.bids.place_bid(listing.id, "buyer-1", Decimal("150"))

        assert receipt.listing.current_price == Decimal("150")


class TestBidRejections:

    def test_non_positive_amount(self, engine, listing):
        for amount in [Decimal("0"), Decimal("-5")]:
            with pytest.raises(ValidationError):
                engine.bids.place_bid(listing.id, "buyer-1", amount)

    def test_more_than_two_decimals(self, engine, listing):
        with pytest.raises(ValidationError):
            engine.bids.place_bid(listing.id, "buyer-1", Decimal("100.001"))

    def test_amount_beyond_money_column(self, engine, listing):
        with pytest.raises(ValidationError):
            engine.bids.place_bid(listing.id, "buyer-1", Decimal("10000000000"))

        receipt = engine.bids.place_bid(listing.id, "buyer-1", Decimal("9999999999.99"))
        assert receipt.listing.current_price == Decimal("9999999999.99")

    def test_garbage_amount(self, engine, listing):
        with pytest.raises(ValidationError):
            engine.bids.place_bid(listing.id, "buyer-1", "lots")

    def test_amount_validated_before_listing_lookup(self, engine):
        with pytest.raises(ValidationError):
            engine.bids.place_bid("missing", "buyer-1", Decimal("-1"))

    def test_unknown_listing(self, engine):
        with pytest.raises(NotFound):
            engine.bids.place_bid("missing", "buyer-1", Decimal("100"))

    def test_self_bid_forbidden(self, engine, listing):
        with pytest.raises(SelfBidForbidden):
            engine.bids.place_bid(listing.id, "seller-1", Decimal("500"))

        assert engine.repository.get_listing(listing.id).bid_count == 0

    def test_closed_checked_before_self_bid(self, engine, listing, clock):
        clock.advance(minutes=61)

        with pytest.raises(AuctionClosed):
            engine.bids.place_bid(listing.id, "seller-1", Decimal("500"))

    def test_bid_at_end_time_is_rejected(self, engine, listing, clock):
        clock.now = listing.end_time

        with pytest.raises(AuctionClosed):
            engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))

    def test_bid_on_cancelled_listing(self, engine, listing):
        engine.listings.cancel_listing(listing.id, "seller-1")

        with pytest.raises(AuctionClosed):
            engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))

    def test_bid_on_ended_listing(self, engine, listing):
        engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))
        engine.listings.close_early(listing.id, "seller-1")

        with pytest.raises(AuctionClosed):
            engine.bids.place_bid(listing.id, "buyer-2", Decimal("200"))


class TestBidEvents:

    def test_bid_placed_event_goes_to_seller(self, engine, listing, notifier):
        engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))

        events = notifier.of_type(EventType.BID_PLACED)
        assert len(events) == 1
        assert events[0].recipients == ["seller-1"]
        assert events[0].payload["amount"] == "100"
        assert events[0].payload["bidder_id"] == "buyer-1"

    def test_rejected_bid_emits_nothing(self, engine, listing, notifier):
        with pytest.raises(BidTooLow):
            engine.bids.place_bid(listing.id, "buyer-1", Decimal("1"))

        assert notifier.events == []

    def test_notifier_failure_does_not_undo_bid(self, repository, ledger, settings, clock):
        class BrokenNotifier(EventNotifier):
            def notify(self, event):
                raise ConnectionError("broker down")

        engine = AuctionEngine(repository, ledger, BrokenNotifier(), settings, clock)
        listing = engine.listings.create_listing("seller-1", new_listing())

        receipt = engine.bids.place_bid(listing.id, "buyer-1", Decimal("100"))

        assert receipt.listing.current_price == Decimal("100")
        stored = repository.get_listing(listing.id)
        assert stored.bid_count == 1
        assert stored.status == ListingStatus.ACTIVE
