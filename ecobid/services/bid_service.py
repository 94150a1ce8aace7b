"""
Bid Service - Business Logic

Handles:
- Bid validation (amount, auction open, no self-bidding, minimum)
- Atomic admission: ledger append + price advance in one conditional write
- Retrying lost races against a fresh read of the listing
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Union

from ecobid.core import metrics
from ecobid.core.config import Settings
from ecobid.core.retry import RetryConfig, retry_sync
from ecobid.domain import Bid, DomainEvent, EventType, Listing, utcnow
from ecobid.infrastructure.notifier import EventNotifier
from ecobid.infrastructure.store import ListingRepository
from ecobid.services.errors import (
    AuctionClosed,
    AuctionError,
    BidTooLow,
    ConcurrencyConflict,
    NotFound,
    SelfBidForbidden,
    ValidationError,
)
from ecobid.services.notifications import emit

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
# Largest value a NUMERIC(12, 2) money column holds
MAX_AMOUNT = Decimal("9999999999.99")


@dataclass
class BidReceipt:
    """An admitted bid and the listing state it produced"""
    bid: Bid
    listing: Listing


def parse_amount(amount: Union[Decimal, int, float, str]) -> Decimal:
    """
    Normalize a money amount

    Raises:
        ValidationError: not a number, not positive, too large, or more than two decimals
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid amount: {amount!r}")

    if not value.is_finite() or value <= 0:
        raise ValidationError("Amount must be positive")

    try:
        if value != value.quantize(CENT):
            raise ValidationError("Amount must have at most two decimals")
    except InvalidOperation:
        raise ValidationError("Amount out of range")

    if value > MAX_AMOUNT:
        raise ValidationError(f"Amount must not exceed {MAX_AMOUNT}")

    return value


class BidService:
    """Admits bids on ACTIVE listings"""

    def __init__(
        self,
        repository: ListingRepository,
        notifier: EventNotifier,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.notifier = notifier
        self.settings = settings
        self.clock = clock
        self.retry_config = RetryConfig.from_settings(settings)

    @metrics.track_time("place_bid")
    def place_bid(self, listing_id: str, bidder_id: str, amount) -> BidReceipt:
        """
        Place a bid

        Checks, in order: amount valid, listing exists, auction open,
        bidder is not the seller, amount >= minimum bid. A lost compare-and-swap
        is retried against a fresh read, so the minimum is re-evaluated.

        Raises:
            ValidationError, NotFound, AuctionClosed, SelfBidForbidden,
            BidTooLow, ConcurrencyConflict (retries exhausted)
        """
        try:
            value = parse_amount(amount)
            receipt = retry_sync(
                self._attempt,
                listing_id,
                bidder_id,
                value,
                config=self.retry_config,
                retry_on_exceptions=(ConcurrencyConflict,),
            )
        except AuctionError as e:
            metrics.bids_rejected_total.labels(reason=e.kind).inc()
            logger.info(
                f"❌ Bid rejected: {e.kind}",
                extra={"listing_id": listing_id, "user_id": bidder_id, "amount": amount},
            )
            raise

        metrics.bids_placed_total.inc()
        logger.info(
            f"✅ Bid accepted: ${receipt.bid.amount} (#{receipt.bid.sequence})",
            extra={
                "listing_id": listing_id,
                "user_id": bidder_id,
                "bid_id": receipt.bid.id,
                "amount": receipt.bid.amount,
            },
        )

        emit(self.notifier, DomainEvent(
            type=EventType.BID_PLACED,
            listing_id=listing_id,
            recipients=[receipt.listing.seller_id],
            payload={
                "bid_id": receipt.bid.id,
                "bidder_id": bidder_id,
                "amount": str(receipt.bid.amount),
                "bid_count": receipt.listing.bid_count,
            },
        ))

        return receipt

    def _attempt(self, listing_id: str, bidder_id: str, amount: Decimal) -> BidReceipt:
        listing = self.repository.get_listing(listing_id)
        if listing is None:
            raise NotFound("Listing not found", listing_id)

        now = self.clock()
        if not listing.accepts_bids(now):
            raise AuctionClosed("Auction is not active", listing_id)

        if bidder_id == listing.seller_id:
            raise SelfBidForbidden("Cannot bid on your own listing", listing_id)

        minimum = listing.minimum_bid(self.settings.MIN_BID_INCREMENT)
        if amount < minimum:
            raise BidTooLow(minimum, listing_id)

        bid = Bid(
            id=uuid.uuid4().hex,
            listing_id=listing_id,
            bidder_id=bidder_id,
            amount=amount,
            sequence=listing.bid_count + 1,
            created_at=now,
        )

        updated = self.repository.append_bid(listing_id, listing.version, bid)
        if updated is None:
            metrics.cas_conflicts_total.labels(operation="place_bid").inc()
            raise ConcurrencyConflict("Listing changed while bidding", listing_id)

        return BidReceipt(bid=bid, listing=updated)
