"""
Bid Model
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Index, UniqueConstraint

from ecobid.domain import Bid, utcnow
from ecobid.models import Base


class BidModel(Base):
    """Bid ledger row; (listing_id, sequence) is the admission order"""

    __tablename__ = "bids"

    id = Column(String(64), primary_key=True)
    listing_id = Column(String(64), ForeignKey("listings.id"), nullable=False, index=True)
    bidder_id = Column(String(64), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    sequence = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)

    __table_args__ = (
        UniqueConstraint("listing_id", "sequence", name="uq_bids_listing_sequence"),
        Index("ix_bids_listing_amount", "listing_id", "amount"),
    )

    def to_entity(self) -> Bid:
        return Bid(
            id=self.id,
            listing_id=self.listing_id,
            bidder_id=self.bidder_id,
            amount=self.amount,
            sequence=self.sequence,
            created_at=self.created_at,
        )
