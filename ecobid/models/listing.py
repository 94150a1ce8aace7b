"""
Listing Model
"""
from sqlalchemy import Column, Integer, String, Float, Numeric, DateTime, Text, Enum as SQLEnum, Index

from ecobid.domain import Listing, ListingStatus, utcnow
from ecobid.models import Base


class ListingModel(Base):
    """Listing database model"""

    __tablename__ = "listings"

    id = Column(String(64), primary_key=True)
    seller_id = Column(String(64), nullable=False, index=True)

    # Lot
    waste_type = Column(String(64), nullable=False)
    weight_kg = Column(Numeric(12, 2), nullable=False)
    description = Column(Text)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    city = Column(String(128))
    state = Column(String(128))

    # Pricing
    base_price = Column(Numeric(12, 2), nullable=False)
    current_price = Column(Numeric(12, 2), nullable=False)
    bid_count = Column(Integer, nullable=False, default=0)

    # Lifecycle
    duration_minutes = Column(Integer, nullable=False)
    end_time = Column(DateTime, nullable=False, index=True)
    status = Column(SQLEnum(ListingStatus), nullable=False, default=ListingStatus.ACTIVE, index=True)
    winner_id = Column(String(64), nullable=True, index=True)
    winning_amount = Column(Numeric(12, 2), nullable=True)
    verification_credential = Column(String(128), nullable=True)
    ended_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    verified_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Optimistic locking
    version = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_listings_status_end_time", "status", "end_time"),
    )

    @classmethod
    def from_entity(cls, listing: Listing) -> "ListingModel":
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
            verification_credential=listing.verification_credential,
            ended_at=listing.ended_at,
            cancelled_at=listing.cancelled_at,
            verified_at=listing.verified_at,
            completed_at=listing.completed_at,
            version=listing.version,
            created_at=listing.created_at or utcnow(),
            updated_at=listing.updated_at or utcnow(),
        )

    def to_entity(self) -> Listing:
        """Detach into a domain snapshot"""
        return Listing(
            id=self.id,
            seller_id=self.seller_id,
            waste_type=self.waste_type,
            weight_kg=self.weight_kg,
            description=self.description,
            latitude=self.latitude,
            longitude=self.longitude,
            city=self.city,
            state=self.state,
            base_price=self.base_price,
            current_price=self.current_price,
            bid_count=self.bid_count,
            duration_minutes=self.duration_minutes,
            end_time=self.end_time,
            status=ListingStatus(self.status),
            winner_id=self.winner_id,
            winning_amount=self.winning_amount,
            verification_credential=self.verification_credential,
            ended_at=self.ended_at,
            cancelled_at=self.cancelled_at,
            verified_at=self.verified_at,
            completed_at=self.completed_at,
            version=self.version,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
