"""
SQLAlchemy Listing Store + Bid Ledger

Conditional writes are a single ``UPDATE ... WHERE id = :id AND version = :v``.
The row count tells whether the write won; bid inserts happen in the same
transaction so a lost race never leaves an orphan bid in the ledger.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from ecobid.domain import Bid, Listing, ListingStatus, utcnow
from ecobid.infrastructure.store import ListingRepository, SORT_NEWEST, SORT_PRICE
from ecobid.models import BidModel, ListingModel

logger = logging.getLogger(__name__)


class SqlListingRepository(ListingRepository):
    """Listing repository backed by a relational database"""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def add_listing(self, listing: Listing) -> Listing:
        with self._session_factory.begin() as session:
            model = ListingModel.from_entity(listing)
            session.add(model)
            session.flush()
            return model.to_entity()

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        with self._session_factory() as session:
            model = session.get(ListingModel, listing_id)
            return model.to_entity() if model else None

    def list_listings(
        self,
        status: Optional[ListingStatus] = ListingStatus.ACTIVE,
        sort_by: str = "endTime",
        limit: int = 50,
        offset: int = 0,
    ) -> List[Listing]:
        query = select(ListingModel)
        if status is not None:
            query = query.where(ListingModel.status == status)

        if sort_by == SORT_PRICE:
            query = query.order_by(ListingModel.current_price.desc())
        elif sort_by == SORT_NEWEST:
            query = query.order_by(ListingModel.created_at.desc())
        else:
            query = query.order_by(ListingModel.end_time.asc())

        query = query.offset(offset).limit(limit)

        with self._session_factory() as session:
            return [m.to_entity() for m in session.scalars(query).all()]

    def listings_by_seller(self, seller_id: str) -> List[Listing]:
        query = (
            select(ListingModel)
            .where(ListingModel.seller_id == seller_id)
            .order_by(ListingModel.created_at.desc())
        )
        with self._session_factory() as session:
            return [m.to_entity() for m in session.scalars(query).all()]

    def listings_won_by(self, user_id: str) -> List[Listing]:
        query = (
            select(ListingModel)
            .where(ListingModel.winner_id == user_id)
            .order_by(ListingModel.updated_at.desc())
        )
        with self._session_factory() as session:
            return [m.to_entity() for m in session.scalars(query).all()]

    def find_expired(self, now: datetime, limit: int = 100) -> List[str]:
        query = (
            select(ListingModel.id)
            .where(
                ListingModel.status == ListingStatus.ACTIVE,
                ListingModel.end_time <= now,
            )
            .order_by(ListingModel.end_time.asc())
            .limit(limit)
        )
        with self._session_factory() as session:
            return list(session.scalars(query).all())

    def append_bid(self, listing_id: str, expected_version: int, bid: Bid) -> Optional[Listing]:
        try:
            with self._session_factory.begin() as session:
                if not self._conditional_update(
                    session,
                    listing_id,
                    expected_version,
                    {"current_price": bid.amount, "bid_count": bid.sequence},
                ):
                    return None

                session.add(BidModel(
                    id=bid.id,
                    listing_id=listing_id,
                    bidder_id=bid.bidder_id,
                    amount=bid.amount,
                    sequence=bid.sequence,
                    created_at=bid.created_at,
                ))
                session.flush()
                return session.get(ListingModel, listing_id).to_entity()
        except IntegrityError:
            # Another writer took this ledger position first
            logger.debug(
                "Bid sequence collision",
                extra={"listing_id": listing_id, "bid_id": bid.id},
            )
            return None

    def compare_and_set(
        self,
        listing_id: str,
        expected_version: int,
        changes: Dict[str, Any],
    ) -> Optional[Listing]:
        with self._session_factory.begin() as session:
            if not self._conditional_update(session, listing_id, expected_version, changes):
                return None
            return session.get(ListingModel, listing_id).to_entity()

    def highest_bid(self, listing_id: str) -> Optional[Bid]:
        query = (
            select(BidModel)
            .where(BidModel.listing_id == listing_id)
            .order_by(BidModel.amount.desc(), BidModel.sequence.desc())
            .limit(1)
        )
        with self._session_factory() as session:
            model = session.scalars(query).first()
            return model.to_entity() if model else None

    def list_bids(self, listing_id: str, limit: int = 50, order: str = "recent") -> List[Bid]:
        query = select(BidModel).where(BidModel.listing_id == listing_id)

        if order == "amount":
            query = query.order_by(BidModel.amount.desc(), BidModel.sequence.desc())
        else:
            query = query.order_by(BidModel.sequence.desc())

        with self._session_factory() as session:
            return [m.to_entity() for m in session.scalars(query.limit(limit)).all()]

    def has_bid_from(self, listing_id: str, bidder_id: str) -> bool:
        query = select(func.count(BidModel.id)).where(
            BidModel.listing_id == listing_id,
            BidModel.bidder_id == bidder_id,
        )
        with self._session_factory() as session:
            return session.scalar(query) > 0

    @staticmethod
    def _conditional_update(session, listing_id: str, expected_version: int, changes: Dict[str, Any]) -> bool:
        values = dict(changes)
        values["version"] = ListingModel.version + 1
        values["updated_at"] = utcnow()

        result = session.execute(
            update(ListingModel)
            .where(
                ListingModel.id == listing_id,
                ListingModel.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
