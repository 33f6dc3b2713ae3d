"""Typed publish/subscribe for visit changes.

Views that cache visit lists (owner dashboards, availability calendars)
register for the topics they care about instead of listening on a global
broadcast channel. Publishing never composes or sends guest notifications.

The lifecycle publishes right after the store write, inside the request
transaction. Over HTTP the commit happens later in ``get_db``, so if that
commit fails subscribers have already seen a change that was rolled back.
Subscribers should treat events as cache invalidation hints and re-read
the visit rather than trust the event as a committed fact.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from staydesk.schemas.visit import VisitRecord, VisitStatus

logger = logging.getLogger(__name__)


class VisitTopic(str, Enum):
    CREATED = "visit.created"
    STATUS_CHANGED = "visit.status_changed"
    DELETED = "visit.deleted"


@dataclass(frozen=True)
class VisitEvent:
    topic: VisitTopic
    visit_id: uuid.UUID
    property_id: uuid.UUID
    owner_id: uuid.UUID
    requester_id: uuid.UUID | None
    status: VisitStatus
    previous_status: VisitStatus | None = None

    @classmethod
    def from_record(
        cls,
        topic: VisitTopic,
        record: VisitRecord,
        previous_status: VisitStatus | None = None,
    ) -> "VisitEvent":
        return cls(
            topic=topic,
            visit_id=record.id,
            property_id=record.property_id,
            owner_id=record.owner_id,
            requester_id=record.requester_id,
            status=record.status,
            previous_status=previous_status,
        )


Subscriber = Callable[[VisitEvent], Awaitable[None]]


class VisitEventBus:
    """Explicit subscriber list per topic."""

    def __init__(self) -> None:
        self._subscribers: dict[VisitTopic, list[Subscriber]] = {topic: [] for topic in VisitTopic}

    def subscribe(self, topic: VisitTopic, handler: Subscriber) -> None:
        if handler not in self._subscribers[topic]:
            self._subscribers[topic].append(handler)

    def unsubscribe(self, topic: VisitTopic, handler: Subscriber) -> None:
        if handler in self._subscribers[topic]:
            self._subscribers[topic].remove(handler)

    def subscribers(self, topic: VisitTopic) -> list[Subscriber]:
        return list(self._subscribers[topic])

    async def publish(self, event: VisitEvent) -> int:
        """Deliver ``event`` to every subscriber of its topic.

        A failing subscriber is logged and does not stop delivery to the
        rest, nor does it undo the change that was published.

        Returns:
            The number of subscribers that handled the event without error.
        """
        delivered = 0
        for handler in self.subscribers(event.topic):
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "Subscriber %r failed on %s for visit %s",
                    handler, event.topic.value, event.visit_id,
                )
                continue
            delivered += 1
        return delivered


# Process-wide bus used by the API layer.
event_bus = VisitEventBus()
