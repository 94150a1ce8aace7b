"""
Store interfaces consumed by the auction engine

The engine never talks to a database directly. It reads snapshots and writes
through conditional updates keyed on the listing ``version``: a write only
lands if nobody else committed a change to the listing since it was read.
That compare-and-swap is the per-listing serialization point for bids,
finalization, cancellation and settlement.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from ecobid.domain import Bid, Listing, ListingStatus, PointCredit, PointRole

# Sort keys accepted by list_listings
SORT_END_TIME = "endTime"
SORT_PRICE = "price"
SORT_NEWEST = "newest"
SORT_KEYS = (SORT_END_TIME, SORT_PRICE, SORT_NEWEST)


class ListingRepository(ABC):
    """Listing Store + Bid Ledger"""

    @abstractmethod
    def add_listing(self, listing: Listing) -> Listing:
        """Persist a new listing and return the stored snapshot"""

    @abstractmethod
    def get_listing(self, listing_id: str) -> Optional[Listing]:
        """Return a snapshot of the listing or None"""

    @abstractmethod
    def list_listings(
        self,
        status: Optional[ListingStatus] = ListingStatus.ACTIVE,
        sort_by: str = SORT_END_TIME,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Listing]:
        """Page through listings filtered by status"""

    @abstractmethod
    def listings_by_seller(self, seller_id: str) -> List[Listing]:
        """Listings created by the seller, newest first"""

    @abstractmethod
    def listings_won_by(self, user_id: str) -> List[Listing]:
        """Listings the user has won, most recently updated first"""

    @abstractmethod
    def find_expired(self, now: datetime, limit: int = 100) -> List[str]:
        """Ids of ACTIVE listings whose end time has passed"""

    @abstractmethod
    def append_bid(self, listing_id: str, expected_version: int, bid: Bid) -> Optional[Listing]:
        """
        Append a bid to the ledger and advance the listing's price

        In one atomic unit: insert ``bid``, set ``current_price = bid.amount``
        and ``bid_count = bid.sequence``, bump ``version``. Returns the updated
        listing, or None if the listing's version is no longer
        ``expected_version`` (nothing is written in that case).
        """

    @abstractmethod
    def compare_and_set(
        self,
        listing_id: str,
        expected_version: int,
        changes: Dict[str, Any],
    ) -> Optional[Listing]:
        """
        Apply ``changes`` to the listing iff its version is ``expected_version``

        Bumps the version on success and returns the updated listing;
        returns None on a version mismatch.
        """

    @abstractmethod
    def highest_bid(self, listing_id: str) -> Optional[Bid]:
        """The single highest bid in the listing's ledger"""

    @abstractmethod
    def list_bids(self, listing_id: str, limit: int = 50, order: str = "recent") -> List[Bid]:
        """Bids for a listing; order is 'recent' (newest first) or 'amount'"""

    @abstractmethod
    def has_bid_from(self, listing_id: str, bidder_id: str) -> bool:
        """True if the user has at least one admitted bid on the listing"""


class PointsLedger(ABC):
    """External EcoPoints ledger with idempotent, keyed credits"""

    @abstractmethod
    def credit(self, listing_id: str, role: PointRole, user_id: str, amount: int) -> bool:
        """
        Credit ``amount`` points to ``user_id`` for (listing_id, role)

        Returns True when the credit was applied now, False when that key had
        already been credited. Raises on ledger outage.
        """

    @abstractmethod
    def balance(self, user_id: str) -> int:
        """Total points credited to the user"""

    @abstractmethod
    def credits_for_user(self, user_id: str) -> List[PointCredit]:
        """Credits received by the user, newest first"""

    @abstractmethod
    def credits_for_listing(self, listing_id: str) -> List[PointCredit]:
        """Credits applied for a listing's settlement"""
