"""
EcoPoints Credit Model
"""
from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum, UniqueConstraint

from ecobid.domain import PointCredit, PointRole, utcnow
from ecobid.models import Base


class PointCreditModel(Base):
    """One credit per (listing, role); the unique key makes re-issues no-ops"""

    __tablename__ = "point_credits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    listing_id = Column(String(64), nullable=False, index=True)
    role = Column(SQLEnum(PointRole), nullable=False)
    user_id = Column(String(64), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("listing_id", "role", name="uq_point_credits_listing_role"),
    )

    def to_entity(self) -> PointCredit:
        return PointCredit(
            listing_id=self.listing_id,
            role=PointRole(self.role),
            user_id=self.user_id,
            amount=self.amount,
            created_at=self.created_at,
        )
