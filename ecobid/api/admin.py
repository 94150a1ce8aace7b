"""
Admin API Routes - operator maintenance
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ecobid.core.dependencies import get_auction_engine
from ecobid.schemas import ReconcileResponse, SweepResponse
from ecobid.services import AuctionEngine

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/listings/{listing_id}/reconcile", response_model=ReconcileResponse)
def reconcile_listing(listing_id: str, engine: AuctionEngine = Depends(get_auction_engine)):
    """Re-issue settlement credits, finishing a redemption interrupted after crediting"""
    applied = engine.settlement.reconcile(listing_id)
    return ReconcileResponse(listing_id=listing_id, applied=applied)


@router.post("/sweep", response_model=SweepResponse)
def sweep_expired(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    engine: AuctionEngine = Depends(get_auction_engine),
):
    """Finalize expired listings now instead of waiting for the next sweep"""
    return SweepResponse(finalized=engine.finalization.sweep_expired(limit))
