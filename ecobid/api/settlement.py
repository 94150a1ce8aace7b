"""
Settlement and EcoPoints API Routes
"""
from fastapi import APIRouter, Depends

from ecobid.core.dependencies import get_auction_engine, get_current_user_id
from ecobid.schemas import (
    ListingResponse,
    PointCreditResponse,
    PointsBalanceResponse,
    RedeemRequest,
    SettlementResponse,
)
from ecobid.services import AuctionEngine

router = APIRouter(tags=["settlement"])


@router.post("/listings/{listing_id}/redeem", response_model=SettlementResponse)
def redeem_credential(
    listing_id: str,
    request: RedeemRequest,
    user_id: str = Depends(get_current_user_id),
    engine: AuctionEngine = Depends(get_auction_engine),
):
    """Seller confirms pickup with the winner's verification code"""
    result = engine.settlement.redeem(listing_id, user_id, request.credential)
    return SettlementResponse(
        listing=ListingResponse.from_listing(result.listing),
        seller_points=result.seller_points,
        buyer_points=result.buyer_points,
    )


@router.get("/points/{user_id}", response_model=PointsBalanceResponse)
def get_points_balance(user_id: str, engine: AuctionEngine = Depends(get_auction_engine)):
    """EcoPoints balance and credit history"""
    points = engine.listings.points_balance(user_id)
    return PointsBalanceResponse(
        user_id=points.user_id,
        balance=points.balance,
        credits=[PointCreditResponse.from_credit(c) for c in points.credits],
    )
