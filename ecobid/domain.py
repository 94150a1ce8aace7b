"""
Domain types shared by the engine, the stores and the API

These are plain dataclasses. Stores hand out copies, so mutating a value
returned by a repository never changes persisted state; all writes go through
the repository's conditional update methods.
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    """Naive UTC timestamp (the stores persist naive UTC datetimes)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ListingStatus(str, enum.Enum):
    """Listing status enum"""
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Directed edges of the auction state machine
ALLOWED_TRANSITIONS = {
    ListingStatus.ACTIVE: {ListingStatus.ENDED, ListingStatus.CANCELLED},
    ListingStatus.ENDED: {ListingStatus.COMPLETED},
    ListingStatus.COMPLETED: set(),
    ListingStatus.CANCELLED: set(),
}


def can_transition(current: ListingStatus, target: ListingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class PointRole(str, enum.Enum):
    """Party credited on settlement"""
    SELLER = "SELLER"
    BUYER = "BUYER"


@dataclass
class Listing:
    """An auction for one lot of recyclable waste"""

    id: str
    seller_id: str
    waste_type: str
    weight_kg: Decimal
    base_price: Decimal
    current_price: Decimal
    duration_minutes: int
    end_time: datetime
    latitude: float
    longitude: float
    description: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    status: ListingStatus = ListingStatus.ACTIVE
    bid_count: int = 0
    winner_id: Optional[str] = None
    winning_amount: Optional[Decimal] = None
    verification_credential: Optional[str] = None
    ended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_bids(self) -> bool:
        return self.bid_count > 0

    def minimum_bid(self, increment: Decimal) -> Decimal:
        """Lowest amount the next bid may offer"""
        if self.bid_count == 0:
            return self.base_price
        return self.current_price + increment

    def is_expired(self, now: datetime) -> bool:
        return now >= self.end_time

    def accepts_bids(self, now: datetime) -> bool:
        return self.status == ListingStatus.ACTIVE and not self.is_expired(now)

    def time_remaining_minutes(self, now: datetime) -> int:
        if self.status != ListingStatus.ACTIVE:
            return 0
        remaining = (self.end_time - now).total_seconds()
        return max(0, int(remaining // 60))


@dataclass
class Bid:
    """An admitted offer on a listing; ``sequence`` is its ledger position"""

    id: str
    listing_id: str
    bidder_id: str
    amount: Decimal
    sequence: int
    created_at: datetime


@dataclass
class PointCredit:
    """One idempotent EcoPoints credit, unique per (listing, role)"""

    listing_id: str
    role: PointRole
    user_id: str
    amount: int
    created_at: datetime


# ============================================================================
# DOMAIN EVENTS
# ============================================================================

class EventType(str, enum.Enum):
    BID_PLACED = "BID_PLACED"
    AUCTION_ENDED = "AUCTION_ENDED"
    WINNER_CREDENTIAL_ISSUED = "WINNER_CREDENTIAL_ISSUED"
    SETTLEMENT_COMPLETED = "SETTLEMENT_COMPLETED"


@dataclass
class DomainEvent:
    """
    Event handed to the notifier after a state change has been committed

    ``public`` events may be fanned out on the listing's channel; private
    ones (the pickup credential) go to their recipients only.
    """

    type: EventType
    listing_id: str
    recipients: List[str]
    payload: Dict[str, Any] = field(default_factory=dict)
    public: bool = True
    occurred_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "listing_id": self.listing_id,
            "recipients": list(self.recipients),
            "payload": self.payload,
            "occurred_at": self.occurred_at.isoformat(),
        }
