"""Lightweight event bus wrapper for producing messages to Kafka.

Uses `confluent_kafka.Producer` when `KAFKA_BOOTSTRAP` is configured; otherwise
logs events so that code paths remain runnable in dev/test without a broker.
Publishing is fire-and-forget: a failing broker is logged, never raised to the
grading or streak code that emitted the event.
"""

from .config import get_settings
from confluent_kafka import Producer
from typing import Any, Optional
import json, logging

log = logging.getLogger(__name__)


class EventBus:
    """Thin Kafka publisher with safe no-op fallback."""

    def __init__(self, producer: Optional[Any] = None, topic: Optional[str] = None) -> None:
        """Initialize producer from settings; fall back to logging if no bootstrap is set.

        Args:
            producer: Optional pre-built producer (anything with `produce`/`flush`).
            topic: Override for the default events topic.
        """
        s = get_settings()
        self.topic = topic or s.EVENTS_TOPIC
        if producer is not None:
            self._producer = producer
        elif s.KAFKA_BOOTSTRAP:
            self._producer = Producer({'bootstrap.servers': s.KAFKA_BOOTSTRAP})
        else:
            self._producer = None
        self.published: list[dict[str, Any]] = []

    def publish(self, event: str, key: str, value: dict[str, Any], topic: Optional[str] = None) -> bool:
        """Publish a message to Kafka or log it if producer is unavailable.

        Args:
            event: Event name, e.g. "streak.milestone".
            key: Message key (used for partitioning; usually the user id).
            value: JSON-serializable payload dictionary.
            topic: Kafka topic name; defaults to the configured events topic.

        Returns:
            True if the event was handed off, False if dispatch failed.
        """
        envelope = {"event": event, "key": key, "data": value}
        try:
            payload = json.dumps(envelope, default=str).encode("utf-8")
            if self._producer:
                self._producer.produce(topic or self.topic, key=key, value=payload)
                self._producer.flush()
        except Exception:
            log.exception("event dispatch failed event=%s key=%s", event, key)
            return False
        self.published.append(envelope)
        log.info(f"PUBLISH event={event} key={key} value={value}")
        return True

    def notify(self, recipient: str, title: str, message: str, kind: str, priority: str = "medium") -> bool:
        """Publish a user-facing notification event."""
        return self.publish(
            "notification.created",
            recipient,
            {"recipient": recipient, "type": kind, "title": title, "message": message, "priority": priority},
        )


_bus: Optional[EventBus] = None


def get_bus() -> EventBus:
    """Return the process-wide `EventBus`, creating it on first use."""
    global _bus
    if _bus is None:
        _bus = EventBus()
    return _bus
