"""
Event Notifier

Delivery of domain events to sellers, bidders and winners. The engine calls
``notify`` only after the state change behind the event has committed, and
treats delivery as best-effort: a notifier error never undoes a bid or a
finalization.

Channels (Redis backend):
    listing:{listing_id}   public events for anyone watching the listing
    user:{user_id}         every event addressed to that user
"""
import json
import logging
from abc import ABC, abstractmethod

import redis

from ecobid.domain import DomainEvent

logger = logging.getLogger(__name__)


class EventNotifier(ABC):
    """Sink for committed domain events"""

    @abstractmethod
    def notify(self, event: DomainEvent) -> None:
        """Deliver the event; may raise, callers treat failures as non-fatal"""

    def close(self) -> None:
        pass


class RedisEventNotifier(EventNotifier):
    """Publishes events on Redis pub/sub channels"""

    def __init__(self, client: redis.Redis):
        self.client = client

    @staticmethod
    def listing_channel(listing_id: str) -> str:
        return f"listing:{listing_id}"

    @staticmethod
    def user_channel(user_id: str) -> str:
        return f"user:{user_id}"

    def notify(self, event: DomainEvent) -> None:
        message = json.dumps(event.to_dict(), default=str)

        if event.public:
            self.client.publish(self.listing_channel(event.listing_id), message)

        for recipient in event.recipients:
            self.client.publish(self.user_channel(recipient), message)

        logger.debug(
            f"📤 Published {event.type.value}",
            extra={"listing_id": event.listing_id, "event_type": event.type.value},
        )

    def close(self) -> None:
        self.client.close()


class LoggingNotifier(EventNotifier):
    """Writes events to the log; used when no broker is configured"""

    def notify(self, event: DomainEvent) -> None:
        # Never log the pickup credential itself
        payload = {k: v for k, v in event.payload.items() if k != "credential"}
        logger.info(
            f"📣 {event.type.value} -> {', '.join(event.recipients)}",
            extra={
                "listing_id": event.listing_id,
                "event_type": event.type.value,
                "payload": payload,
            },
        )

