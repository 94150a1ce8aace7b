"""
Best-effort event delivery
"""
import logging

from ecobid.core import metrics
from ecobid.domain import DomainEvent
from ecobid.infrastructure.notifier import EventNotifier

logger = logging.getLogger(__name__)


def emit(notifier: EventNotifier, event: DomainEvent) -> bool:
    """Hand a committed event to the notifier; failures are logged and counted, never raised"""
    try:
        notifier.notify(event)
        return True
    except Exception as e:
        metrics.notifier_failures_total.labels(event_type=event.type.value).inc()
        logger.warning(
            f"⚠️  Failed to deliver {event.type.value}: {e}",
            extra={"listing_id": event.listing_id, "event_type": event.type.value},
        )
        return False
