"""Pydantic schemas for Bid resources"""
from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field

from ecobid.domain import Bid


class PlaceBidRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class BidResponse(BaseModel):
    id: str
    listing_id: str
    bidder_id: str
    amount: Decimal
    sequence: int
    created_at: datetime

    @classmethod
    def from_bid(cls, bid: Bid) -> "BidResponse":
        return cls(
            id=bid.id,
            listing_id=bid.listing_id,
            bidder_id=bid.bidder_id,
            amount=bid.amount,
            sequence=bid.sequence,
            created_at=bid.created_at,
        )


class BidHistoryResponse(BaseModel):
    bids: List[BidResponse]
    count: int
