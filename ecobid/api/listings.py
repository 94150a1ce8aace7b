"""
Listing API Routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ecobid.core.dependencies import get_auction_engine, get_current_user_id, get_optional_user_id
from ecobid.domain import ListingStatus
from ecobid.infrastructure.store import SORT_END_TIME
from ecobid.schemas import (
    CreateListingRequest,
    ListingDetailResponse,
    ListingListResponse,
    ListingResponse,
    MyListingsResponse,
)
from ecobid.services import AuctionEngine

router = APIRouter(prefix="/listings", tags=["listings"])


@router.post("", response_model=ListingResponse, status_code=201)
def create_listing(
    request: CreateListingRequest,
    user_id: str = Depends(get_current_user_id),
    engine: AuctionEngine = Depends(get_auction_engine),
):
    """Create a new listing (the caller is the seller)"""
    listing = engine.listings.create_listing(user_id, request.to_new_listing())
    return ListingResponse.from_listing(listing)


@router.get("", response_model=ListingListResponse)
def list_listings(
    status: Optional[ListingStatus] = ListingStatus.ACTIVE,
    sort_by: str = Query(SORT_END_TIME, alias="sortBy"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    engine: AuctionEngine = Depends(get_auction_engine),
):
    """List listings; expired auctions on the page are finalized first"""
    listings = engine.listings.list_listings(status=status, sort_by=sort_by, limit=limit, offset=offset)
    return ListingListResponse(
        listings=[ListingResponse.from_listing(l) for l in listings],
        count=len(listings),
    )


@router.get("/mine", response_model=MyListingsResponse)
def my_listings(
    user_id: str = Depends(get_current_user_id),
    engine: AuctionEngine = Depends(get_auction_engine),
):
    """Listings the caller sells and listings the caller won"""
    mine = engine.listings.my_listings(user_id)
    return MyListingsResponse(
        seller_listings=[ListingResponse.from_listing(l) for l in mine.seller_listings],
        won_listings=[ListingResponse.from_listing(l) for l in mine.won_listings],
    )


@router.get("/{listing_id}", response_model=ListingDetailResponse)
def get_listing(
    listing_id: str,
    viewer_id: Optional[str] = Depends(get_optional_user_id),
    engine: AuctionEngine = Depends(get_auction_engine),
):
    """Get a listing with its top bids"""
    detail = engine.listings.get_listing_detail(listing_id, viewer_id)
    return ListingDetailResponse.from_detail(detail)


@router.post("/{listing_id}/close", response_model=ListingResponse)
def close_listing(
    listing_id: str,
    user_id: str = Depends(get_current_user_id),
    engine: AuctionEngine = Depends(get_auction_engine),
):
    """Seller ends the auction early and the highest bidder wins"""
    listing = engine.listings.close_early(listing_id, user_id)
    return ListingResponse.from_listing(listing)


@router.post("/{listing_id}/cancel", response_model=ListingResponse)
def cancel_listing(
    listing_id: str,
    user_id: str = Depends(get_current_user_id),
    engine: AuctionEngine = Depends(get_auction_engine),
):
    """Seller cancels a listing nobody has bid on"""
    listing = engine.listings.cancel_listing(listing_id, user_id)
    return ListingResponse.from_listing(listing)
