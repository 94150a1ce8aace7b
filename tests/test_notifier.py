"""
Notifier tests
"""
import json

from ecobid.domain import DomainEvent, EventType
from ecobid.infrastructure.notifier import LoggingNotifier, RedisEventNotifier


class RecordingRedis:
    """Captures publish calls made through the redis-py client API"""

    def __init__(self):
        self.published = []

    def publish(self, channel, message):
        self.published.append((channel, json.loads(message)))
        return 1

    def close(self):
        pass


class TestRedisEventNotifier:

    def test_public_event_goes_to_listing_and_users(self):
        client = RecordingRedis()
        notifier = RedisEventNotifier(client)

        notifier.notify(DomainEvent(
            type=EventType.AUCTION_ENDED,
            listing_id="lst-1",
            recipients=["seller-1", "buyer-1"],
            payload={"winner_id": "buyer-1"},
        ))

        channels = [channel for channel, _ in client.published]
        assert channels == ["listing:lst-1", "user:seller-1", "user:buyer-1"]
        assert client.published[0][1]["type"] == "AUCTION_ENDED"
        assert client.published[0][1]["payload"] == {"winner_id": "buyer-1"}

    def test_private_event_skips_listing_channel(self):
        client = RecordingRedis()
        notifier = RedisEventNotifier(client)

        notifier.notify(DomainEvent(
            type=EventType.WINNER_CREDENTIAL_ISSUED,
            listing_id="lst-1",
            recipients=["buyer-1"],
            payload={"credential": "secret"},
            public=False,
        ))

        assert [channel for channel, _ in client.published] == ["user:buyer-1"]


def test_logging_notifier_hides_credential(caplog):
    caplog.set_level("INFO")

    LoggingNotifier().notify(DomainEvent(
        type=EventType.WINNER_CREDENTIAL_ISSUED,
        listing_id="lst-1",
        recipients=["buyer-1"],
        payload={"credential": "top-secret"},
        public=False,
    ))

    assert "WINNER_CREDENTIAL_ISSUED" in caplog.text
    assert all("top-secret" not in str(r.__dict__) for r in caplog.records)
