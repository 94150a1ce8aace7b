"""
Settlement Service

The seller confirms the physical handover by redeeming the credential the
winner received. Redemption credits EcoPoints to both parties through the
keyed, idempotent points ledger and then moves the listing ENDED -> COMPLETED.
"""
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List

from ecobid.core import metrics
from ecobid.core.config import Settings
from ecobid.core.retry import RetryConfig, retry_sync
from ecobid.domain import DomainEvent, EventType, Listing, ListingStatus, PointRole, utcnow
from ecobid.infrastructure.notifier import EventNotifier
from ecobid.infrastructure.store import ListingRepository, PointsLedger
from ecobid.services.errors import (
    AlreadySettled,
    AuctionError,
    ConcurrencyConflict,
    Forbidden,
    InvalidCredential,
    NotFound,
    NotReadyForSettlement,
)
from ecobid.services.notifications import emit

logger = logging.getLogger(__name__)

SETTLEABLE_STATUSES = (ListingStatus.ENDED, ListingStatus.COMPLETED)


@dataclass
class SettlementResult:
    listing: Listing
    seller_points: int
    buyer_points: int


def credentials_match(presented: str, expected: str) -> bool:
    """Constant-time credential comparison"""
    if not presented or not expected:
        return False
    return hmac.compare_digest(str(presented).encode("utf-8"), expected.encode("utf-8"))


class SettlementService:
    """Credential redemption and point awards"""

    def __init__(
        self,
        repository: ListingRepository,
        ledger: PointsLedger,
        notifier: EventNotifier,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.ledger = ledger
        self.notifier = notifier
        self.settings = settings
        self.clock = clock
        self.retry_config = RetryConfig.from_settings(settings)

    @metrics.track_time("redeem")
    def redeem(self, listing_id: str, actor_id: str, credential: str) -> SettlementResult:
        """
        Redeem the pickup credential

        Raises:
            NotFound, Forbidden, NotReadyForSettlement, InvalidCredential,
            AlreadySettled, ConcurrencyConflict (retries exhausted)
        """
        try:
            result = retry_sync(
                self._attempt,
                listing_id,
                actor_id,
                credential,
                config=self.retry_config,
                retry_on_exceptions=(ConcurrencyConflict,),
            )
        except AuctionError as e:
            metrics.settlements_rejected_total.labels(reason=e.kind).inc()
            logger.info(
                f"❌ Redemption rejected: {e.kind}",
                extra={"listing_id": listing_id, "user_id": actor_id},
            )
            raise

        self._announce(result)
        return result

    def reconcile(self, listing_id: str) -> List[PointRole]:
        """
        Repair the settlement of a listing

        A COMPLETED listing gets both keyed credits re-issued. An ENDED
        listing that already holds credits from an interrupted redemption
        gets the missing credit and is then moved to COMPLETED.

        Returns the roles whose credit was applied by this call (empty when
        the ledger already held both).
        """
        return retry_sync(
            self._reconcile_attempt,
            listing_id,
            config=self.retry_config,
            retry_on_exceptions=(ConcurrencyConflict,),
        )

    def _reconcile_attempt(self, listing_id: str) -> List[PointRole]:
        listing = self.repository.get_listing(listing_id)
        if listing is None:
            raise NotFound("Listing not found", listing_id)

        if listing.status == ListingStatus.COMPLETED:
            applied = self._apply_credits(listing)
        elif self._interrupted(listing):
            applied = self._apply_credits(listing)
            self._announce(self._complete(listing, operation="reconcile"))
            logger.warning(
                "🔧 Reconciliation completed an interrupted settlement",
                extra={"listing_id": listing_id, "status": ListingStatus.COMPLETED.value},
            )
        else:
            raise NotReadyForSettlement("Only settled listings can be reconciled", listing_id)

        if applied:
            logger.warning(
                f"🔧 Reconciliation applied missing credits: {[r.value for r in applied]}",
                extra={"listing_id": listing_id},
            )
        return applied

    def _interrupted(self, listing: Listing) -> bool:
        """ENDED with a winner, and at least one credit already recorded"""
        if listing.status != ListingStatus.ENDED or not listing.winner_id:
            return False
        return bool(self.ledger.credits_for_listing(listing.id))

    def _attempt(self, listing_id: str, actor_id: str, credential: str) -> SettlementResult:
        listing = self.repository.get_listing(listing_id)
        if listing is None:
            raise NotFound("Listing not found", listing_id)

        if actor_id != listing.seller_id:
            raise Forbidden("Only the seller can verify the pickup", listing_id)

        if listing.status not in SETTLEABLE_STATUSES or not listing.winner_id:
            raise NotReadyForSettlement("Listing has no winner to settle with", listing_id)

        if not credentials_match(credential, listing.verification_credential):
            raise InvalidCredential("Invalid verification code", listing_id)

        if listing.completed_at is not None:
            raise AlreadySettled("Pickup already verified", listing_id)

        # A failing credit raises here, before the status write
        self._apply_credits(listing)
        return self._complete(listing, operation="redeem")

    def _complete(self, listing: Listing, operation: str) -> SettlementResult:
        now = self.clock()
        updated = self.repository.compare_and_set(
            listing.id,
            listing.version,
            {"status": ListingStatus.COMPLETED, "verified_at": now, "completed_at": now},
        )
        if updated is None:
            metrics.cas_conflicts_total.labels(operation=operation).inc()
            raise ConcurrencyConflict("Listing changed while settling", listing.id)

        return SettlementResult(
            listing=updated,
            seller_points=self.settings.SELLER_REWARD_POINTS,
            buyer_points=self.settings.BUYER_REWARD_POINTS,
        )

    def _announce(self, result: SettlementResult) -> None:
        listing = result.listing
        metrics.settlements_completed_total.inc()
        logger.info(
            "🎉 Settlement completed",
            extra={"listing_id": listing.id, "user_id": listing.winner_id, "status": listing.status.value},
        )

        emit(self.notifier, DomainEvent(
            type=EventType.SETTLEMENT_COMPLETED,
            listing_id=listing.id,
            recipients=[listing.seller_id, listing.winner_id],
            payload={
                "seller_points": result.seller_points,
                "buyer_points": result.buyer_points,
                "winning_amount": str(listing.winning_amount),
            },
        ))

    def _apply_credits(self, listing: Listing) -> List[PointRole]:
        awards = (
            (PointRole.SELLER, listing.seller_id, self.settings.SELLER_REWARD_POINTS),
            (PointRole.BUYER, listing.winner_id, self.settings.BUYER_REWARD_POINTS),
        )

        applied = []
        for role, user_id, amount in awards:
            if self.ledger.credit(listing.id, role, user_id, amount):
                metrics.points_credited_total.labels(role=role.value).inc(amount)
                applied.append(role)

        return applied
