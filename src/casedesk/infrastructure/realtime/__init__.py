"""
Real-time Event Fanout
======================

In-process publish/subscribe used to push chat replies and case status
changes to connected clients over Server-Sent Events.

Topics:
- user:<id>   one user's own conversations
- case:<id>   everyone viewing one case
- agents      every connected support agent

Each subscriber owns an asyncio.Queue; publishing never blocks on a slow
subscriber (full queues drop the event for that subscriber only).
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Set

from casedesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


AGENTS_TOPIC = "agents"


def user_topic(user_id: str) -> str:
    return f"user:{user_id}"


def case_topic(case_id: str) -> str:
    return f"case:{case_id}"


class EventType(str):
    """Event names delivered to subscribers."""
    REPLY_DELIVERED = "chat:reply"
    STATUS_CHANGED = "case:status"
    INBOUND_QUEUED = "chat:user"
    CASE_MESSAGE = "case:message"


@dataclass
class Event:
    """One published event."""
    type: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "event": self.type,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


class IEventPublisher(ABC):
    """Interface for publishing events to topics."""

    @abstractmethod
    async def publish(self, topic: str, event: Event) -> int:
        """Publish an event; returns the number of subscribers reached."""

    async def publish_many(self, topics: Iterable[str], event: Event) -> int:
        delivered = 0
        for topic in topics:
            delivered += await self.publish(topic, event)
        return delivered


class Subscription:
    """A subscriber's queue bound to a set of topics."""

    def __init__(self, bus: "EventBus", topics: List[str], max_size: int):
        self.topics = topics
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_size)
        self._bus = bus

    async def get(self, timeout: float | None = None) -> Event:
        if timeout is None:
            return await self.queue.get()
        return await asyncio.wait_for(self.queue.get(), timeout=timeout)

    def close(self) -> None:
        self._bus.unsubscribe(self)


class EventBus(IEventPublisher):
    """In-memory topic fanout to per-subscriber queues."""

    def __init__(self, max_queue_size: int = 100):
        self._topics: Dict[str, Set[Subscription]] = {}
        self._max_queue_size = max_queue_size

    def subscribe(self, topics: Iterable[str]) -> Subscription:
        """
        Create a subscription receiving events for all given topics.

        Call Subscription.close() (or unsubscribe) when the client
        disconnects.
        """
        unique = list(dict.fromkeys(topics))
        subscription = Subscription(self, unique, self._max_queue_size)
        for topic in unique:
            self._topics.setdefault(topic, set()).add(subscription)
        logger.debug("Created subscription", extra={"topics": unique})
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription. No-op if already removed."""
        for topic in subscription.topics:
            subscribers = self._topics.get(topic)
            if subscribers is None:
                continue
            subscribers.discard(subscription)
            if not subscribers:
                del self._topics[topic]

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    async def publish(self, topic: str, event: Event) -> int:
        return self._deliver(list(self._topics.get(topic, ())), event)

    async def publish_many(self, topics: Iterable[str], event: Event) -> int:
        # A subscriber on several of the topics receives the event once
        subscribers: Dict[int, Subscription] = {}
        for topic in topics:
            for subscription in self._topics.get(topic, ()):
                subscribers.setdefault(id(subscription), subscription)
        return self._deliver(list(subscribers.values()), event)

    def _deliver(self, subscriptions: List[Subscription], event: Event) -> int:
        delivered = 0
        for subscription in subscriptions:
            try:
                subscription.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Subscriber queue full, dropping event",
                    extra={"topics": subscription.topics, "event_type": event.type}
                )
        return delivered
