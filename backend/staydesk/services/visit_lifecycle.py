"""Visit lifecycle: creation, status transitions, queries and deletion.

State graph::

    scheduled ──> confirmed ──> completed
        │
        └───────> cancelled

``completed`` and ``cancelled`` are terminal. Only the visit's owner or its
requester may move a visit along the graph or delete it; ``authorize`` is
checked before every mutation, and the store applies the same row filter
again when it writes.

There is no version check on transitions. Two concurrent transitions on the
same visit race in the store and the last write wins.

Events are published after the store write but before the caller commits;
see ``staydesk.services.visit_events``.
"""

import logging
import uuid
from datetime import date, time, timedelta

from staydesk.errors import (
    InvalidTransitionError,
    NotFoundError,
    PolicyBlockedError,
    UnauthorizedError,
    ValidationError,
)
from staydesk.schemas.visit import ManualVisitDraft, NewVisit, VisitDraft, VisitRecord, VisitStatus
from staydesk.services.visit_events import VisitEvent, VisitEventBus, VisitTopic
from staydesk.services.visit_metadata import MANUAL_VISIT_PREAMBLE, encode_manual_visit
from staydesk.services.visit_store import PropertyDirectory, VisitStore

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[VisitStatus, frozenset[VisitStatus]] = {
    VisitStatus.SCHEDULED: frozenset({VisitStatus.CONFIRMED, VisitStatus.CANCELLED}),
    VisitStatus.CONFIRMED: frozenset({VisitStatus.COMPLETED}),
    VisitStatus.COMPLETED: frozenset(),
    VisitStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)

# Time used for owner-entered visits that leave the time blank.
DEFAULT_MANUAL_VISIT_TIME = time(9, 0)


def can_transition(current: VisitStatus | str, target: VisitStatus | str) -> bool:
    """Return True if ``current -> target`` is an edge of the state graph."""
    try:
        current, target = VisitStatus(current), VisitStatus(target)
    except ValueError:
        return False
    return target in ALLOWED_TRANSITIONS[current]


def is_party(record: VisitRecord, actor_id: uuid.UUID | None) -> bool:
    if actor_id is None:
        return False
    return actor_id == record.owner_id or (
        record.requester_id is not None and actor_id == record.requester_id
    )


def authorize(record: VisitRecord, actor_id: uuid.UUID | None) -> None:
    """Raise ``UnauthorizedError`` unless ``actor_id`` owns or requested the visit."""
    if not is_party(record, actor_id):
        raise UnauthorizedError("Only the property owner or the requester may access this visit")


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class VisitLifecycle:
    """Operations over visit records.

    Args:
        store: Visit persistence.
        properties: Property lookup used to resolve the owner at creation.
        events: Optional bus that receives created/status/deleted events.
    """

    def __init__(
        self,
        store: VisitStore,
        properties: PropertyDirectory,
        events: VisitEventBus | None = None,
    ) -> None:
        self.store = store
        self.properties = properties
        self.events = events

    async def _publish(
        self,
        topic: VisitTopic,
        record: VisitRecord,
        previous_status: VisitStatus | None = None,
    ) -> None:
        if self.events is not None:
            await self.events.publish(VisitEvent.from_record(topic, record, previous_status))

    async def _load(self, record_id: uuid.UUID) -> VisitRecord:
        record = await self.store.get(record_id)
        if record is None:
            raise NotFoundError("Visit not found")
        return record

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create(
        self,
        draft: VisitDraft | ManualVisitDraft,
        actor_id: uuid.UUID | None = None,
    ) -> VisitRecord | None:
        """Create a visit from a self-service or owner-entered draft.

        Returns:
            The stored visit, or ``None`` when the store's access rule
            refused an anonymous self-service write. That case is logged and
            reported to the caller as accepted.

        Raises:
            ValidationError: Required fields are missing.
            NotFoundError: The property does not exist.
            UnauthorizedError: A manual visit was entered by someone other
                than the property owner.
            TransportError: The store could not be reached.
        """
        if isinstance(draft, ManualVisitDraft):
            return await self._create_manual(draft, actor_id)
        return await self._create_self_service(draft, actor_id)

    async def _create_self_service(
        self, draft: VisitDraft, requester_id: uuid.UUID | None
    ) -> VisitRecord | None:
        if requester_id is None and _blank(draft.visitor_name) and draft.visitor_email is None:
            raise ValidationError(
                "A visitor name or email is required when not signed in",
                fields=["visitor_name", "visitor_email"],
            )
        if draft.check_out_date is not None and draft.check_out_date < draft.scheduled_date:
            raise ValidationError("check_out_date cannot be before scheduled_date", fields=["check_out_date"])

        prop = await self.properties.get_property(draft.property_id)
        if prop is None:
            raise NotFoundError("Property not found")

        values = NewVisit(
            property_id=prop.id,
            owner_id=prop.owner_id,
            requester_id=requester_id,
            scheduled_date=draft.scheduled_date,
            scheduled_time=draft.scheduled_time,
            check_out_date=draft.check_out_date,
            message=draft.message or None,
            visitor_name=draft.visitor_name or None,
            visitor_email=draft.visitor_email or None,
        )
        try:
            record = await self.store.insert(values, requester_id)
        except PolicyBlockedError as exc:
            if requester_id is not None:
                raise
            logger.warning(
                "PolicyBlocked: anonymous visit request for property %s not stored (%s)",
                prop.id, exc.detail,
            )
            return None

        logger.info("Visit %s created for property %s", record.id, record.property_id)
        await self._publish(VisitTopic.CREATED, record)
        return record

    async def _create_manual(self, draft: ManualVisitDraft, owner_id: uuid.UUID | None) -> VisitRecord:
        missing = [
            name
            for name, value in (
                ("client_name", draft.client_name),
                ("client_phone", draft.client_phone),
                ("scheduled_date", draft.scheduled_date),
                ("property_id", draft.property_id),
            )
            if value is None or (isinstance(value, str) and _blank(value))
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

        prop = await self.properties.get_property(draft.property_id)
        if prop is None:
            raise NotFoundError("Property not found")
        if owner_id is None or owner_id != prop.owner_id:
            raise UnauthorizedError("Only the property owner can enter visits manually")

        preamble = MANUAL_VISIT_PREAMBLE
        if not _blank(draft.notes):
            preamble = f"{preamble} {draft.notes.strip()}"
        values = NewVisit(
            property_id=prop.id,
            owner_id=prop.owner_id,
            requester_id=None,
            scheduled_date=draft.scheduled_date,
            scheduled_time=draft.scheduled_time or DEFAULT_MANUAL_VISIT_TIME,
            message=encode_manual_visit(draft.client_name.strip(), draft.client_phone.strip(), preamble=preamble),
        )
        record = await self.store.insert(values, owner_id)
        logger.info("Manual visit %s entered by owner %s", record.id, owner_id)
        await self._publish(VisitTopic.CREATED, record)
        return record

    # ------------------------------------------------------------------
    # Transitions and deletion
    # ------------------------------------------------------------------

    async def transition(
        self,
        record_id: uuid.UUID,
        target_status: VisitStatus | str,
        actor_id: uuid.UUID | None,
    ) -> VisitRecord:
        """Move a visit to ``target_status``.

        Raises:
            NotFoundError: The visit does not exist.
            UnauthorizedError: The actor is neither owner nor requester.
            InvalidTransitionError: The edge is not in the state graph.
        """
        record = await self._load(record_id)
        authorize(record, actor_id)

        if not can_transition(record.status, target_status):
            target = target_status.value if isinstance(target_status, VisitStatus) else str(target_status)
            raise InvalidTransitionError(record.status.value, target)
        target = VisitStatus(target_status)

        updated = await self.store.update_status(record_id, target, actor_id)
        if updated is None:
            # The store's row filter refused the write, or the row vanished.
            raise UnauthorizedError("Only the property owner or the requester may access this visit")

        logger.info(
            "Visit %s moved %s -> %s by %s",
            record_id, record.status.value, target.value, actor_id,
        )
        await self._publish(VisitTopic.STATUS_CHANGED, updated, previous_status=record.status)
        return updated

    async def delete(self, record_id: uuid.UUID, actor_id: uuid.UUID | None) -> None:
        """Delete a visit. Allowed for the owner or the requester."""
        record = await self._load(record_id)
        authorize(record, actor_id)

        if not await self.store.delete(record_id, actor_id):
            raise UnauthorizedError("Only the property owner or the requester may access this visit")

        logger.info("Visit %s deleted by %s", record_id, actor_id)
        await self._publish(VisitTopic.DELETED, record)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, record_id: uuid.UUID, actor_id: uuid.UUID | None) -> VisitRecord:
        record = await self._load(record_id)
        authorize(record, actor_id)
        return record

    async def list_for_owner(
        self, owner_id: uuid.UUID, status: VisitStatus | None = None
    ) -> list[VisitRecord]:
        """Visits on the owner's properties, earliest first."""
        return await self.store.list_for_owner(owner_id, status)

    async def list_for_requester(
        self, requester_id: uuid.UUID, status: VisitStatus | None = None
    ) -> list[VisitRecord]:
        """Visits the requester asked for, earliest first."""
        return await self.store.list_for_requester(requester_id, status)

    async def booked_dates(self, property_id: uuid.UUID) -> list[date]:
        """Every date held by a scheduled or confirmed visit on the property.

        A visit holds ``scheduled_date`` through ``check_out_date`` inclusive,
        or just ``scheduled_date`` when it has no check-out date.
        """
        booked: set[date] = set()
        for record in await self.store.list_active_for_property(property_id):
            day = record.scheduled_date
            last = record.check_out_date or day
            while day <= last:
                booked.add(day)
                day += timedelta(days=1)
        return sorted(booked)
