"""Pydantic schemas for Listing resources"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ecobid.domain import Listing, ListingStatus
from ecobid.schemas.bid import BidResponse
from ecobid.services.listing_service import ListingDetail, NewListing


class CreateListingRequest(BaseModel):
    waste_type: str = Field(..., min_length=1, max_length=64)
    weight_kg: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    description: Optional[str] = Field(None, max_length=2000)
    base_price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    duration_minutes: int = Field(..., gt=0)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    city: Optional[str] = Field(None, max_length=128)
    state: Optional[str] = Field(None, max_length=128)

    @field_validator("waste_type")
    @classmethod
    def strip_waste_type(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("waste_type must not be blank")
        return v

    def to_new_listing(self) -> NewListing:
        return NewListing(
            waste_type=self.waste_type,
            weight_kg=self.weight_kg,
            base_price=self.base_price,
            duration_minutes=self.duration_minutes,
            latitude=self.latitude,
            longitude=self.longitude,
            description=self.description,
            city=self.city,
            state=self.state,
        )


class ListingResponse(BaseModel):
    """Public view of a listing; the verification credential is never included"""

    id: str
    seller_id: str
    waste_type: str
    weight_kg: Decimal
    description: Optional[str] = None
    latitude: float
    longitude: float
    city: Optional[str] = None
    state: Optional[str] = None
    base_price: Decimal
    current_price: Decimal
    bid_count: int
    duration_minutes: int
    end_time: datetime
    status: ListingStatus
    winner_id: Optional[str] = None
    winning_amount: Optional[Decimal] = None
    ended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_listing(cls, listing: Listing) -> "ListingResponse":
        return cls(
            id=listing.id,
            seller_id=listing.seller_id,
            waste_type=listing.waste_type,
            weight_kg=listing.weight_kg,
            description=listing.description,
            latitude=listing.latitude,
            longitude=listing.longitude,
            city=listing.city,
            state=listing.state,
            base_price=listing.base_price,
            current_price=listing.current_price,
            bid_count=listing.bid_count,
            duration_minutes=listing.duration_minutes,
            end_time=listing.end_time,
            status=listing.status,
            winner_id=listing.winner_id,
            winning_amount=listing.winning_amount,
            ended_at=listing.ended_at,
            cancelled_at=listing.cancelled_at,
            verified_at=listing.verified_at,
            completed_at=listing.completed_at,
            created_at=listing.created_at,
            updated_at=listing.updated_at,
        )


class ListingDetailResponse(ListingResponse):
    top_bids: List[BidResponse] = Field(default_factory=list)
    time_remaining_minutes: int = 0
    is_expired: bool = False
    is_user_listing: bool = False
    user_has_bid: bool = False

    @classmethod
    def from_detail(cls, detail: ListingDetail) -> "ListingDetailResponse":
        base = ListingResponse.from_listing(detail.listing).model_dump()
        return cls(
            **base,
            top_bids=[BidResponse.from_bid(b) for b in detail.top_bids],
            time_remaining_minutes=detail.time_remaining_minutes,
            is_expired=detail.is_expired,
            is_user_listing=detail.is_user_listing,
            user_has_bid=detail.user_has_bid,
        )


class ListingListResponse(BaseModel):
    listings: List[ListingResponse]
    count: int


class MyListingsResponse(BaseModel):
    seller_listings: List[ListingResponse]
    won_listings: List[ListingResponse]
