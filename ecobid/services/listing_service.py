"""
Listing Service - Business Logic

Handles:
- Listing creation and validation of lot details
- Reads with lazy finalization of expired auctions
- Seller actions: close early, cancel
- Points balance lookups
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional

from ecobid.core import metrics
from ecobid.core.config import Settings
from ecobid.core.retry import RetryConfig, retry_sync
from ecobid.domain import Bid, Listing, ListingStatus, PointCredit, can_transition, utcnow
from ecobid.infrastructure.store import ListingRepository, PointsLedger, SORT_KEYS
from ecobid.services.bid_service import parse_amount
from ecobid.services.errors import (
    AuctionClosed,
    ConcurrencyConflict,
    Forbidden,
    HasBids,
    NoBids,
    NotFound,
    ValidationError,
)
from ecobid.services.finalization_service import FinalizationService

logger = logging.getLogger(__name__)

TOP_BIDS_LIMIT = 10


@dataclass
class NewListing:
    """Validated lot details for a new listing"""
    waste_type: str
    weight_kg: Decimal
    base_price: Decimal
    duration_minutes: int
    latitude: float
    longitude: float
    description: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None


@dataclass
class ListingDetail:
    listing: Listing
    top_bids: List[Bid]
    time_remaining_minutes: int
    is_expired: bool
    is_user_listing: bool
    user_has_bid: bool


@dataclass
class MyListings:
    seller_listings: List[Listing] = field(default_factory=list)
    won_listings: List[Listing] = field(default_factory=list)


@dataclass
class PointsBalance:
    user_id: str
    balance: int
    credits: List[PointCredit]


class ListingService:
    """Listing lifecycle outside bidding and settlement"""

    def __init__(
        self,
        repository: ListingRepository,
        ledger: PointsLedger,
        finalization: FinalizationService,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.ledger = ledger
        self.finalization = finalization
        self.settings = settings
        self.clock = clock
        self.retry_config = RetryConfig.from_settings(settings)

    # ==================== Create ====================

    def create_listing(self, seller_id: str, request: NewListing) -> Listing:
        """Create an ACTIVE listing with current price = base price"""
        if not seller_id:
            raise ValidationError("Seller is required")

        waste_type = (request.waste_type or "").strip()
        if not waste_type:
            raise ValidationError("Waste type is required")

        weight = Decimal(str(request.weight_kg))
        if weight <= 0:
            raise ValidationError("Weight must be positive")

        base_price = parse_amount(request.base_price)

        duration = int(request.duration_minutes)
        if duration <= 0 or duration > self.settings.MAX_AUCTION_DURATION_MINUTES:
            raise ValidationError(
                f"Duration must be between 1 and {self.settings.MAX_AUCTION_DURATION_MINUTES} minutes"
            )

        if not -90 <= request.latitude <= 90 or not -180 <= request.longitude <= 180:
            raise ValidationError("Location is out of range")

        now = self.clock()
        listing = Listing(
            id=uuid.uuid4().hex,
            seller_id=seller_id,
            waste_type=waste_type,
            weight_kg=weight,
            base_price=base_price,
            current_price=base_price,
            duration_minutes=duration,
            end_time=now + timedelta(minutes=duration),
            latitude=request.latitude,
            longitude=request.longitude,
            description=request.description,
            city=request.city,
            state=request.state,
            status=ListingStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )

        created = self.repository.add_listing(listing)
        logger.info(
            f"📦 Listing created: {waste_type} ({weight} kg) from ${base_price}",
            extra={"listing_id": created.id, "user_id": seller_id},
        )
        return created

    # ==================== Reads ====================

    def get_listing(self, listing_id: str) -> Listing:
        """Listing snapshot; an expired ACTIVE listing is finalized first"""
        listing = self.repository.get_listing(listing_id)
        if listing is None:
            raise NotFound("Listing not found", listing_id)
        return self._finalize_if_expired(listing)

    def get_listing_detail(self, listing_id: str, viewer_id: Optional[str] = None) -> ListingDetail:
        listing = self.get_listing(listing_id)
        now = self.clock()

        return ListingDetail(
            listing=listing,
            top_bids=self.repository.list_bids(listing_id, limit=TOP_BIDS_LIMIT, order="amount"),
            time_remaining_minutes=listing.time_remaining_minutes(now),
            is_expired=listing.is_expired(now),
            is_user_listing=viewer_id is not None and viewer_id == listing.seller_id,
            user_has_bid=viewer_id is not None and self.repository.has_bid_from(listing_id, viewer_id),
        )

    def list_listings(
        self,
        status: Optional[ListingStatus] = ListingStatus.ACTIVE,
        sort_by: str = "endTime",
        limit: int = 50,
        offset: int = 0,
    ) -> List[Listing]:
        """
        Page through listings

        Expired ACTIVE listings on the page are finalized before returning;
        when listing ACTIVE only, they drop out of the result.
        """
        if sort_by not in SORT_KEYS:
            raise ValidationError(f"sortBy must be one of {', '.join(SORT_KEYS)}")

        page = self.repository.list_listings(status=status, sort_by=sort_by, limit=limit, offset=offset)
        refreshed = [self._finalize_if_expired(listing) for listing in page]

        if status is None:
            return refreshed
        return [listing for listing in refreshed if listing.status == status]

    def my_listings(self, user_id: str) -> MyListings:
        sold = [self._finalize_if_expired(l) for l in self.repository.listings_by_seller(user_id)]
        won = self.repository.listings_won_by(user_id)
        return MyListings(seller_listings=sold, won_listings=won)

    def bid_history(self, listing_id: str, limit: int = 50) -> List[Bid]:
        """Bids newest first"""
        if self.repository.get_listing(listing_id) is None:
            raise NotFound("Listing not found", listing_id)
        return self.repository.list_bids(listing_id, limit=limit, order="recent")

    def points_balance(self, user_id: str) -> PointsBalance:
        return PointsBalance(
            user_id=user_id,
            balance=self.ledger.balance(user_id),
            credits=self.ledger.credits_for_user(user_id),
        )

    # ==================== Seller actions ====================

    def close_early(self, listing_id: str, actor_id: str) -> Listing:
        """
        End bidding now and pick the winner

        A listing that already left ACTIVE is returned unchanged.
        """
        listing = self.repository.get_listing(listing_id)
        if listing is None:
            raise NotFound("Listing not found", listing_id)

        if actor_id != listing.seller_id:
            raise Forbidden("Only the seller can close this listing", listing_id)

        if listing.status != ListingStatus.ACTIVE:
            return listing

        if not listing.has_bids:
            raise NoBids("Cannot close a listing without bids", listing_id)

        return self.finalization.finalize(listing_id, manual=True, trigger="manual").listing

    @metrics.track_time("cancel")
    def cancel_listing(self, listing_id: str, actor_id: str) -> Listing:
        """Cancel an ACTIVE listing that has no bids"""
        cancelled = retry_sync(
            self._cancel_attempt,
            listing_id,
            actor_id,
            config=self.retry_config,
            retry_on_exceptions=(ConcurrencyConflict,),
        )

        metrics.listings_cancelled_total.inc()
        logger.info("🚫 Listing cancelled", extra={"listing_id": listing_id, "user_id": actor_id})
        return cancelled

    def _cancel_attempt(self, listing_id: str, actor_id: str) -> Listing:
        listing = self.repository.get_listing(listing_id)
        if listing is None:
            raise NotFound("Listing not found", listing_id)

        if actor_id != listing.seller_id:
            raise Forbidden("Only the seller can cancel this listing", listing_id)

        if not can_transition(listing.status, ListingStatus.CANCELLED):
            raise AuctionClosed("Only active listings can be cancelled", listing_id)

        if listing.has_bids:
            raise HasBids("Cannot cancel a listing with bids", listing_id)

        updated = self.repository.compare_and_set(
            listing_id,
            listing.version,
            {"status": ListingStatus.CANCELLED, "cancelled_at": self.clock()},
        )
        if updated is None:
            metrics.cas_conflicts_total.labels(operation="cancel").inc()
            raise ConcurrencyConflict("Listing changed while cancelling", listing_id)

        return updated

    # ==================== Helpers ====================

    def _finalize_if_expired(self, listing: Listing) -> Listing:
        if listing.status != ListingStatus.ACTIVE or not listing.is_expired(self.clock()):
            return listing

        try:
            return self.finalization.finalize(listing.id, manual=False, trigger="lazy").listing
        except ConcurrencyConflict:
            logger.warning(
                "⚠️  Lazy finalization kept conflicting, serving latest snapshot",
                extra={"listing_id": listing.id},
            )
            return self.repository.get_listing(listing.id) or listing
