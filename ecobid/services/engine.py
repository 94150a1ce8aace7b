"""
Auction Engine

Wires the stores, the notifier and the services together. One engine per
process; tests build their own around in-memory stores and a fake clock.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from ecobid.core.config import Settings, get_settings
from ecobid.domain import utcnow
from ecobid.infrastructure.notifier import EventNotifier, LoggingNotifier, RedisEventNotifier
from ecobid.infrastructure.store import ListingRepository, PointsLedger
from ecobid.services.bid_service import BidService
from ecobid.services.finalization_service import FinalizationService
from ecobid.services.listing_service import ListingService
from ecobid.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)


class AuctionEngine:
    """Facade holding one instance of each service"""

    def __init__(
        self,
        repository: ListingRepository,
        ledger: PointsLedger,
        notifier: EventNotifier,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings or get_settings()
        self.repository = repository
        self.ledger = ledger
        self.notifier = notifier
        self.clock = clock

        self.bids = BidService(repository, notifier, self.settings, clock)
        self.finalization = FinalizationService(repository, notifier, self.settings, clock)
        self.settlement = SettlementService(repository, ledger, notifier, self.settings, clock)
        self.listings = ListingService(repository, ledger, self.finalization, self.settings, clock)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AuctionEngine":
        """Build the engine for the configured store and notifier backends"""
        settings = settings or get_settings()

        if settings.STORE_BACKEND == "memory":
            from ecobid.infrastructure.memory_store import InMemoryListingRepository, InMemoryPointsLedger

            repository: ListingRepository = InMemoryListingRepository()
            ledger: PointsLedger = InMemoryPointsLedger()
        elif settings.STORE_BACKEND == "sql":
            from ecobid.infrastructure.database import get_session_factory, init_db
            from ecobid.infrastructure.points_ledger import SqlPointsLedger
            from ecobid.infrastructure.sql_store import SqlListingRepository

            init_db()
            session_factory = get_session_factory()
            repository = SqlListingRepository(session_factory)
            ledger = SqlPointsLedger(session_factory)
        else:
            raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")

        if settings.NOTIFIER_BACKEND == "redis":
            from ecobid.infrastructure.redis_client import get_redis_client

            notifier: EventNotifier = RedisEventNotifier(get_redis_client())
        elif settings.NOTIFIER_BACKEND == "log":
            notifier = LoggingNotifier()
        else:
            raise ValueError(f"Unknown NOTIFIER_BACKEND: {settings.NOTIFIER_BACKEND}")

        logger.info(
            f"🔧 Auction engine ready (store={settings.STORE_BACKEND}, notifier={settings.NOTIFIER_BACKEND})"
        )
        return cls(repository, ledger, notifier, settings)

    def close(self):
        self.notifier.close()
