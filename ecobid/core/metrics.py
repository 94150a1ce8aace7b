"""
Prometheus metrics for monitoring
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# ==================== Bid Metrics ====================

bids_placed_total = Counter(
    'ecobid_bids_placed_total',
    'Total bids admitted'
)

bids_rejected_total = Counter(
    'ecobid_bids_rejected_total',
    'Total bids rejected',
    ['reason']  # BidTooLow, AuctionClosed, SelfBidForbidden, ...
)

# ==================== Lifecycle Metrics ====================

auctions_finalized_total = Counter(
    'ecobid_auctions_finalized_total',
    'Total ACTIVE -> ENDED transitions',
    ['trigger', 'outcome']  # lazy/manual/sweep, winner/no_winner
)

listings_cancelled_total = Counter(
    'ecobid_listings_cancelled_total',
    'Total listings cancelled by their seller'
)

settlements_completed_total = Counter(
    'ecobid_settlements_completed_total',
    'Total ENDED -> COMPLETED transitions'
)

settlements_rejected_total = Counter(
    'ecobid_settlements_rejected_total',
    'Total rejected credential redemptions',
    ['reason']
)

points_credited_total = Counter(
    'ecobid_points_credited_total',
    'Total EcoPoints credited',
    ['role']
)

# ==================== Concurrency / Delivery Metrics ====================

cas_conflicts_total = Counter(
    'ecobid_cas_conflicts_total',
    'Optimistic concurrency conflicts on the listing version',
    ['operation']
)

notifier_failures_total = Counter(
    'ecobid_notifier_failures_total',
    'Domain events that could not be delivered',
    ['event_type']
)

operation_duration_seconds = Histogram(
    'ecobid_operation_duration_seconds',
    'Time spent in engine operations',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0]
)


# ==================== Helper Functions ====================

def track_time(operation: str):
    """Decorator to track execution time of a synchronous engine call"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                operation_duration_seconds.labels(operation=operation).observe(
                    time.perf_counter() - start_time
                )
        return wrapper
    return decorator


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format"""
    return generate_latest()


__all__ = [
    "CONTENT_TYPE_LATEST",
    "auctions_finalized_total",
    "bids_placed_total",
    "bids_rejected_total",
    "cas_conflicts_total",
    "get_metrics",
    "listings_cancelled_total",
    "notifier_failures_total",
    "operation_duration_seconds",
    "points_credited_total",
    "settlements_completed_total",
    "settlements_rejected_total",
    "track_time",
]
