"""
Bid API Routes
"""
from fastapi import APIRouter, Depends, Query

from ecobid.core.dependencies import get_auction_engine, get_current_user_id
from ecobid.schemas import BidHistoryResponse, BidResponse, ListingResponse, PlaceBidRequest
from ecobid.services import AuctionEngine

router = APIRouter(prefix="/listings", tags=["bids"])


@router.post("/{listing_id}/bids", status_code=201)
def place_bid(
    listing_id: str,
    request: PlaceBidRequest,
    user_id: str = Depends(get_current_user_id),
    engine: AuctionEngine = Depends(get_auction_engine),
):
    """Place a bid on an active listing"""
    receipt = engine.bids.place_bid(listing_id, user_id, request.amount)
    return {
        "success": True,
        "message": "Bid placed successfully",
        "bid": BidResponse.from_bid(receipt.bid),
        "listing": ListingResponse.from_listing(receipt.listing),
    }


@router.get("/{listing_id}/bids", response_model=BidHistoryResponse)
def get_bid_history(
    listing_id: str,
    limit: int = Query(50, ge=1, le=500),
    engine: AuctionEngine = Depends(get_auction_engine),
):
    """Bid history, newest first"""
    bids = engine.listings.bid_history(listing_id, limit=limit)
    return BidHistoryResponse(
        bids=[BidResponse.from_bid(b) for b in bids],
        count=len(bids),
    )
