"""
Business Logic Services
"""
from ecobid.services.bid_service import BidReceipt, BidService
from ecobid.services.engine import AuctionEngine
from ecobid.services.expiry_worker import ExpirySweeper
from ecobid.services.finalization_service import FinalizationResult, FinalizationService
from ecobid.services.listing_service import ListingDetail, ListingService, MyListings, NewListing, PointsBalance
from ecobid.services.settlement_service import SettlementResult, SettlementService

__all__ = [
    "AuctionEngine",
    "BidReceipt",
    "BidService",
    "ExpirySweeper",
    "FinalizationResult",
    "FinalizationService",
    "ListingDetail",
    "ListingService",
    "MyListings",
    "NewListing",
    "PointsBalance",
    "SettlementResult",
    "SettlementService",
]
