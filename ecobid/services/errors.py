"""
Engine error taxonomy

Every business-rule violation has its own exception class so callers (and
the HTTP layer) can report the specific kind. Only ConcurrencyConflict is
retryable.
"""
from decimal import Decimal
from typing import Any, Dict, Optional


class AuctionError(Exception):
    """Base exception for auction engine errors"""

    kind = "AuctionError"
    status_code = 400
    retryable = False

    def __init__(self, message: Optional[str] = None, listing_id: Optional[str] = None):
        self.message = message or self.kind
        self.listing_id = listing_id
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.listing_id:
            body["listing_id"] = self.listing_id
        return body


class NotFound(AuctionError):
    """Raised when the listing doesn't exist"""
    kind = "NotFound"
    status_code = 404


class Forbidden(AuctionError):
    """Raised when the actor is not allowed to perform the operation"""
    kind = "Forbidden"
    status_code = 403


class ValidationError(AuctionError):
    """Raised for malformed amounts, durations or lot details"""
    kind = "ValidationError"
    status_code = 422


class BidTooLow(AuctionError):
    """Raised when a bid is below the required minimum"""
    kind = "BidTooLow"
    status_code = 400

    def __init__(self, minimum_bid: Decimal, listing_id: Optional[str] = None):
        self.minimum_bid = minimum_bid
        super().__init__(f"Bid must be at least {minimum_bid}", listing_id)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["minimum_bid"] = str(self.minimum_bid)
        return body


class AuctionClosed(AuctionError):
    """Raised when the listing no longer accepts the operation"""
    kind = "AuctionClosed"
    status_code = 409


class SelfBidForbidden(AuctionError):
    """Raised when a seller bids on their own listing"""
    kind = "SelfBidForbidden"
    status_code = 403


class NotReadyForSettlement(AuctionError):
    """Raised when a credential is redeemed before the auction has a winner"""
    kind = "NotReadyForSettlement"
    status_code = 409


class InvalidCredential(AuctionError):
    """Raised when the presented credential doesn't match"""
    kind = "InvalidCredential"
    status_code = 400


class AlreadySettled(AuctionError):
    """Raised when the credential has already been redeemed"""
    kind = "AlreadySettled"
    status_code = 409


class HasBids(AuctionError):
    """Raised when cancelling a listing that has bids"""
    kind = "HasBids"
    status_code = 409


class NoBids(AuctionError):
    """Raised when closing early a listing without bids"""
    kind = "NoBids"
    status_code = 409


class ConcurrencyConflict(AuctionError):
    """Transient: the listing changed between read and conditional write"""
    kind = "ConcurrencyConflict"
    status_code = 409
    retryable = True


__all__ = [
    "AuctionError",
    "NotFound",
    "Forbidden",
    "ValidationError",
    "BidTooLow",
    "AuctionClosed",
    "SelfBidForbidden",
    "NotReadyForSettlement",
    "InvalidCredential",
    "AlreadySettled",
    "HasBids",
    "NoBids",
    "ConcurrencyConflict",
]
