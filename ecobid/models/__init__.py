"""
Database Models
"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import models after Base is defined
from ecobid.models.listing import ListingModel  # noqa: E402
from ecobid.models.bid import BidModel  # noqa: E402
from ecobid.models.point_credit import PointCreditModel  # noqa: E402

__all__ = ["Base", "ListingModel", "BidModel", "PointCreditModel"]
