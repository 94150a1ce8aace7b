"""
Finalization Service

Closes bidding on a listing and decides the winner. Three triggers reach it:
a read that notices an expired listing (lazy), the seller closing early
(manual) and the background sweep. All of them race through the same
compare-and-swap on the listing version, so exactly one caller performs the
ACTIVE -> ENDED transition and every other caller gets a no-op result.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ecobid.core import metrics
from ecobid.core.config import Settings
from ecobid.core.retry import RetryConfig, retry_sync
from ecobid.domain import DomainEvent, EventType, Listing, ListingStatus, can_transition, utcnow
from ecobid.infrastructure.notifier import EventNotifier
from ecobid.infrastructure.store import ListingRepository
from ecobid.services.errors import AuctionError, ConcurrencyConflict, NotFound
from ecobid.services.notifications import emit

logger = logging.getLogger(__name__)


@dataclass
class FinalizationResult:
    listing: Listing
    transitioned: bool


class FinalizationService:
    """Idempotent ACTIVE -> ENDED transition"""

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

    @metrics.track_time("finalize")
    def finalize(self, listing_id: str, manual: bool = False, trigger: Optional[str] = None) -> FinalizationResult:
        """
        Finalize a listing

        No-op unless the listing is ACTIVE and, for non-manual calls, past
        its end time. Events are emitted only by the caller whose write
        committed; a failed store write propagates with nothing emitted.
        """
        trigger = trigger or ("manual" if manual else "lazy")

        result = retry_sync(
            self._attempt,
            listing_id,
            manual,
            config=self.retry_config,
            retry_on_exceptions=(ConcurrencyConflict,),
        )

        if result.transitioned:
            self._on_ended(result.listing, trigger)

        return result

    def sweep_expired(self, limit: Optional[int] = None) -> int:
        """Finalize up to ``limit`` expired ACTIVE listings; returns how many transitioned"""
        limit = limit or self.settings.EXPIRY_SWEEP_BATCH_SIZE
        expired_ids = self.repository.find_expired(self.clock(), limit)

        if not expired_ids:
            return 0

        logger.info(f"⏰ Sweeping {len(expired_ids)} expired listings...")

        finalized = 0
        for listing_id in expired_ids:
            try:
                result = self.finalize(listing_id, manual=False, trigger="sweep")
            except AuctionError as e:
                logger.warning(
                    f"⚠️  Sweep could not finalize listing: {e.kind}",
                    extra={"listing_id": listing_id, "trigger": "sweep"},
                )
                continue

            if result.transitioned:
                finalized += 1

        logger.info(f"✅ Sweep finalized {finalized} listings")
        return finalized

    def _attempt(self, listing_id: str, manual: bool) -> FinalizationResult:
        listing = self.repository.get_listing(listing_id)
        if listing is None:
            raise NotFound("Listing not found", listing_id)

        if not can_transition(listing.status, ListingStatus.ENDED):
            return FinalizationResult(listing=listing, transitioned=False)

        now = self.clock()
        if not manual and not listing.is_expired(now):
            return FinalizationResult(listing=listing, transitioned=False)

        changes = {"status": ListingStatus.ENDED, "ended_at": now}

        top_bid = self.repository.highest_bid(listing_id)
        if top_bid is not None:
            changes.update(
                winner_id=top_bid.bidder_id,
                winning_amount=top_bid.amount,
                verification_credential=secrets.token_hex(self.settings.CREDENTIAL_BYTES),
            )

        updated = self.repository.compare_and_set(listing_id, listing.version, changes)
        if updated is None:
            metrics.cas_conflicts_total.labels(operation="finalize").inc()
            raise ConcurrencyConflict("Listing changed while finalizing", listing_id)

        return FinalizationResult(listing=updated, transitioned=True)

    def _on_ended(self, listing: Listing, trigger: str):
        outcome = "winner" if listing.winner_id else "no_winner"
        metrics.auctions_finalized_total.labels(trigger=trigger, outcome=outcome).inc()

        logger.info(
            f"🏁 Auction ended ({outcome})",
            extra={
                "listing_id": listing.id,
                "user_id": listing.winner_id,
                "amount": listing.winning_amount,
                "trigger": trigger,
            },
        )

        recipients = [listing.seller_id]
        if listing.winner_id:
            recipients.append(listing.winner_id)

        emit(self.notifier, DomainEvent(
            type=EventType.AUCTION_ENDED,
            listing_id=listing.id,
            recipients=recipients,
            payload={
                "winner_id": listing.winner_id,
                "winning_amount": str(listing.winning_amount) if listing.winning_amount is not None else None,
                "bid_count": listing.bid_count,
                "trigger": trigger,
            },
        ))

        if listing.winner_id:
            emit(self.notifier, DomainEvent(
                type=EventType.WINNER_CREDENTIAL_ISSUED,
                listing_id=listing.id,
                recipients=[listing.winner_id],
                payload={
                    "credential": listing.verification_credential,
                    "seller_id": listing.seller_id,
                    "winning_amount": str(listing.winning_amount),
                },
                public=False,
            ))
