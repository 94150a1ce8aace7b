"""
In-memory Listing Store, Bid Ledger and Points Ledger

Thread-safe: a single lock guards every read and conditional write, which
gives the same compare-and-swap semantics as the SQL store. Snapshots are
copies, so callers can't mutate stored state behind the store's back.
"""
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ecobid.domain import Bid, Listing, ListingStatus, PointCredit, PointRole, utcnow
from ecobid.infrastructure.store import (
    ListingRepository,
    PointsLedger,
    SORT_NEWEST,
    SORT_PRICE,
)


class InMemoryListingRepository(ListingRepository):
    """Dict-backed listing repository"""

    def __init__(self):
        self._lock = threading.RLock()
        self._listings: Dict[str, Listing] = {}
        self._bids: Dict[str, List[Bid]] = {}

    def add_listing(self, listing: Listing) -> Listing:
        with self._lock:
            if listing.id in self._listings:
                raise ValueError(f"Listing {listing.id} already exists")
            now = utcnow()
            stored = replace(
                listing,
                created_at=listing.created_at or now,
                updated_at=listing.updated_at or now,
            )
            self._listings[stored.id] = stored
            self._bids[stored.id] = []
            return replace(stored)

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        with self._lock:
            listing = self._listings.get(listing_id)
            return replace(listing) if listing else None

    def list_listings(
        self,
        status: Optional[ListingStatus] = ListingStatus.ACTIVE,
        sort_by: str = "endTime",
        limit: int = 50,
        offset: int = 0,
    ) -> List[Listing]:
        with self._lock:
            rows = [
                l for l in self._listings.values()
                if status is None or l.status == status
            ]

        if sort_by == SORT_PRICE:
            rows.sort(key=lambda l: l.current_price, reverse=True)
        elif sort_by == SORT_NEWEST:
            rows.sort(key=lambda l: l.created_at, reverse=True)
        else:
            rows.sort(key=lambda l: l.end_time)

        return [replace(l) for l in rows[offset:offset + limit]]

    def listings_by_seller(self, seller_id: str) -> List[Listing]:
        with self._lock:
            rows = [l for l in self._listings.values() if l.seller_id == seller_id]
        rows.sort(key=lambda l: l.created_at, reverse=True)
        return [replace(l) for l in rows]

    def listings_won_by(self, user_id: str) -> List[Listing]:
        with self._lock:
            rows = [l for l in self._listings.values() if l.winner_id == user_id]
        rows.sort(key=lambda l: l.updated_at, reverse=True)
        return [replace(l) for l in rows]

    def find_expired(self, now: datetime, limit: int = 100) -> List[str]:
        with self._lock:
            expired = [
                l for l in self._listings.values()
                if l.status == ListingStatus.ACTIVE and l.end_time <= now
            ]
        expired.sort(key=lambda l: l.end_time)
        return [l.id for l in expired[:limit]]

    def append_bid(self, listing_id: str, expected_version: int, bid: Bid) -> Optional[Listing]:
        with self._lock:
            current = self._listings.get(listing_id)
            if current is None or current.version != expected_version:
                return None

            updated = replace(
                current,
                current_price=bid.amount,
                bid_count=bid.sequence,
                version=current.version + 1,
                updated_at=utcnow(),
            )
            self._bids[listing_id].append(replace(bid))
            self._listings[listing_id] = updated
            return replace(updated)

    def compare_and_set(
        self,
        listing_id: str,
        expected_version: int,
        changes: Dict[str, Any],
    ) -> Optional[Listing]:
        with self._lock:
            current = self._listings.get(listing_id)
            if current is None or current.version != expected_version:
                return None

            updated = replace(
                current,
                **changes,
                version=current.version + 1,
                updated_at=utcnow(),
            )
            self._listings[listing_id] = updated
            return replace(updated)

    def highest_bid(self, listing_id: str) -> Optional[Bid]:
        with self._lock:
            bids = self._bids.get(listing_id) or []
            if not bids:
                return None
            return replace(max(bids, key=lambda b: (b.amount, b.sequence)))

    def list_bids(self, listing_id: str, limit: int = 50, order: str = "recent") -> List[Bid]:
        with self._lock:
            bids = list(self._bids.get(listing_id) or [])

        if order == "amount":
            bids.sort(key=lambda b: b.amount, reverse=True)
        else:
            bids.sort(key=lambda b: b.sequence, reverse=True)

        return [replace(b) for b in bids[:limit]]

    def has_bid_from(self, listing_id: str, bidder_id: str) -> bool:
        with self._lock:
            return any(b.bidder_id == bidder_id for b in self._bids.get(listing_id) or [])


class InMemoryPointsLedger(PointsLedger):
    """Dict-backed points ledger keyed by (listing_id, role)"""

    def __init__(self):
        self._lock = threading.Lock()
        self._credits: Dict[Tuple[str, PointRole], PointCredit] = {}

    def credit(self, listing_id: str, role: PointRole, user_id: str, amount: int) -> bool:
        key = (listing_id, PointRole(role))
        with self._lock:
            if key in self._credits:
                return False
            self._credits[key] = PointCredit(
                listing_id=listing_id,
                role=PointRole(role),
                user_id=user_id,
                amount=amount,
                created_at=utcnow(),
            )
            return True

    def balance(self, user_id: str) -> int:
        with self._lock:
            return sum(c.amount for c in self._credits.values() if c.user_id == user_id)

    def credits_for_user(self, user_id: str) -> List[PointCredit]:
        with self._lock:
            rows = [c for c in self._credits.values() if c.user_id == user_id]
        return sorted(rows, key=lambda c: c.created_at, reverse=True)

    def credits_for_listing(self, listing_id: str) -> List[PointCredit]:
        with self._lock:
            return [c for c in self._credits.values() if c.listing_id == listing_id]
