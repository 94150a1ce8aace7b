"""
EcoPoints Ledger

Credits are keyed by (listing_id, role). The unique constraint on that key
is what makes a re-issued credit a no-op, across retries and processes.
"""
import logging
from typing import List

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from ecobid.domain import PointCredit, PointRole, utcnow
from ecobid.infrastructure.store import PointsLedger
from ecobid.models import PointCreditModel

logger = logging.getLogger(__name__)


class SqlPointsLedger(PointsLedger):
    """Points ledger stored alongside the listings"""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def credit(self, listing_id: str, role: PointRole, user_id: str, amount: int) -> bool:
        role = PointRole(role)
        try:
            with self._session_factory.begin() as session:
                session.add(PointCreditModel(
                    listing_id=listing_id,
                    role=role,
                    user_id=user_id,
                    amount=amount,
                    created_at=utcnow(),
                ))
        except IntegrityError:
            logger.info(
                f"Points already credited for {role.value}",
                extra={"listing_id": listing_id, "user_id": user_id},
            )
            return False

        logger.info(
            f"🌱 Credited {amount} EcoPoints ({role.value})",
            extra={"listing_id": listing_id, "user_id": user_id, "amount": amount},
        )
        return True

    def balance(self, user_id: str) -> int:
        query = select(func.coalesce(func.sum(PointCreditModel.amount), 0)).where(
            PointCreditModel.user_id == user_id
        )
        with self._session_factory() as session:
            return int(session.scalar(query))

    def credits_for_user(self, user_id: str) -> List[PointCredit]:
        query = (
            select(PointCreditModel)
            .where(PointCreditModel.user_id == user_id)
            .order_by(PointCreditModel.created_at.desc(), PointCreditModel.id.desc())
        )
        with self._session_factory() as session:
            return [m.to_entity() for m in session.scalars(query).all()]

    def credits_for_listing(self, listing_id: str) -> List[PointCredit]:
        query = (
            select(PointCreditModel)
            .where(PointCreditModel.listing_id == listing_id)
            .order_by(PointCreditModel.id.asc())
        )
        with self._session_factory() as session:
            return [m.to_entity() for m in session.scalars(query).all()]
