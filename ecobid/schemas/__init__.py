"""
Pydantic schemas for API request/response validation
"""
from ecobid.schemas.bid import BidHistoryResponse, BidResponse, PlaceBidRequest
from ecobid.schemas.listing import (
    CreateListingRequest,
    ListingDetailResponse,
    ListingListResponse,
    ListingResponse,
    MyListingsResponse,
)
from ecobid.schemas.settlement import (
    PointCreditResponse,
    PointsBalanceResponse,
    ReconcileResponse,
    RedeemRequest,
    SettlementResponse,
    SweepResponse,
)

__all__ = [
    # Listings
    "CreateListingRequest",
    "ListingResponse",
    "ListingDetailResponse",
    "ListingListResponse",
    "MyListingsResponse",
    # Bids
    "PlaceBidRequest",
    "BidResponse",
    "BidHistoryResponse",
    # Settlement
    "RedeemRequest",
    "SettlementResponse",
    "ReconcileResponse",
    "SweepResponse",
    "PointCreditResponse",
    "PointsBalanceResponse",
]
