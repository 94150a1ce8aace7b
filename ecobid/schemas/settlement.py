"""Pydantic schemas for settlement and EcoPoints"""
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from ecobid.domain import PointCredit, PointRole
from ecobid.schemas.listing import ListingResponse


class RedeemRequest(BaseModel):
    credential: str = Field(..., min_length=1, max_length=256)


class SettlementResponse(BaseModel):
    listing: ListingResponse
    seller_points: int
    buyer_points: int


class ReconcileResponse(BaseModel):
    listing_id: str
    applied: List[PointRole]


class SweepResponse(BaseModel):
    finalized: int


class PointCreditResponse(BaseModel):
    listing_id: str
    role: PointRole
    amount: int
    created_at: datetime

    @classmethod
    def from_credit(cls, credit: PointCredit) -> "PointCreditResponse":
        return cls(
            listing_id=credit.listing_id,
            role=credit.role,
            amount=credit.amount,
            created_at=credit.created_at,
        )


class PointsBalanceResponse(BaseModel):
    user_id: str
    balance: int
    credits: List[PointCreditResponse]
