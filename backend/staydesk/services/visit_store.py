"""Visit persistence: the storage collaborator of the visit lifecycle.

``VisitStore`` and ``PropertyDirectory`` describe what the lifecycle needs
from storage. The SQLAlchemy implementations below enforce the
owner-or-requester row filter on every update and delete, and translate
connectivity failures into ``TransportError``. They never retry.
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from staydesk.errors import PolicyBlockedError, TransportError
from staydesk.models.property import Property
from staydesk.models.visit import ScheduledVisit
from staydesk.schemas.visit import NewVisit, PropertySummary, VisitRecord, VisitStatus

logger = logging.getLogger(__name__)


class VisitStore(Protocol):
    async def insert(self, values: NewVisit, actor_id: uuid.UUID | None) -> VisitRecord: ...

    async def get(self, visit_id: uuid.UUID) -> VisitRecord | None: ...

    async def list_for_owner(
        self, owner_id: uuid.UUID, status: VisitStatus | None = None
    ) -> list[VisitRecord]: ...

    async def list_for_requester(
        self, requester_id: uuid.UUID, status: VisitStatus | None = None
    ) -> list[VisitRecord]: ...

    async def list_active_for_property(self, property_id: uuid.UUID) -> list[VisitRecord]: ...

    async def update_status(
        self, visit_id: uuid.UUID, status: VisitStatus, actor_id: uuid.UUID
    ) -> VisitRecord | None: ...

    async def delete(self, visit_id: uuid.UUID, actor_id: uuid.UUID) -> bool: ...


class PropertyDirectory(Protocol):
    async def get_property(self, property_id: uuid.UUID) -> PropertySummary | None: ...


ACTIVE_STATUSES = (VisitStatus.SCHEDULED, VisitStatus.CONFIRMED)


@contextmanager
def _translate_db_errors(operation: str) -> Iterator[None]:
    """Re-raise driver connectivity failures as ``TransportError``."""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.error("Visit store %s failed: %s", operation, exc)
        raise TransportError(f"Visit store unavailable during {operation}") from exc


def _party_filter(actor_id: uuid.UUID):
    return or_(ScheduledVisit.owner_id == actor_id, ScheduledVisit.requester_id == actor_id)


class SqlVisitStore:
    """``VisitStore`` backed by the ``scheduled_visits`` table."""

    def __init__(self, session: AsyncSession, allow_anonymous: bool = True) -> None:
        self._session = session
        self._allow_anonymous = allow_anonymous

    async def _fetch(self, visit_id: uuid.UUID) -> ScheduledVisit | None:
        result = await self._session.execute(
            select(ScheduledVisit)
            .where(ScheduledVisit.id == visit_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _list(self, *criteria) -> list[VisitRecord]:
        result = await self._session.execute(
            select(ScheduledVisit)
            .where(*criteria)
            .order_by(ScheduledVisit.scheduled_date.asc(), ScheduledVisit.scheduled_time.asc())
            .execution_options(populate_existing=True)
        )
        return [VisitRecord.model_validate(row) for row in result.scalars().all()]

    async def insert(self, values: NewVisit, actor_id: uuid.UUID | None) -> VisitRecord:
        if actor_id is None and not self._allow_anonymous:
            raise PolicyBlockedError("Unauthenticated visit writes are not permitted")

        with _translate_db_errors("insert"):
            visit = ScheduledVisit(**{**values.model_dump(), "status": values.status.value})
            self._session.add(visit)
            await self._session.flush()
            stored = await self._fetch(visit.id)
        return VisitRecord.model_validate(stored)

    async def get(self, visit_id: uuid.UUID) -> VisitRecord | None:
        with _translate_db_errors("get"):
            visit = await self._fetch(visit_id)
        return VisitRecord.model_validate(visit) if visit is not None else None

    async def list_for_owner(
        self, owner_id: uuid.UUID, status: VisitStatus | None = None
    ) -> list[VisitRecord]:
        criteria = [ScheduledVisit.owner_id == owner_id]
        if status is not None:
            criteria.append(ScheduledVisit.status == status.value)
        with _translate_db_errors("list_for_owner"):
            return await self._list(*criteria)

    async def list_for_requester(
        self, requester_id: uuid.UUID, status: VisitStatus | None = None
    ) -> list[VisitRecord]:
        criteria = [ScheduledVisit.requester_id == requester_id]
        if status is not None:
            criteria.append(ScheduledVisit.status == status.value)
        with _translate_db_errors("list_for_requester"):
            return await self._list(*criteria)

    async def list_active_for_property(self, property_id: uuid.UUID) -> list[VisitRecord]:
        with _translate_db_errors("list_active_for_property"):
            return await self._list(
                ScheduledVisit.property_id == property_id,
                ScheduledVisit.status.in_([s.value for s in ACTIVE_STATUSES]),
            )

    async def update_status(
        self, visit_id: uuid.UUID, status: VisitStatus, actor_id: uuid.UUID
    ) -> VisitRecord | None:
        # No version check: concurrent updates are last-write-wins.
        with _translate_db_errors("update_status"):
            result = await self._session.execute(
                update(ScheduledVisit)
                .where(ScheduledVisit.id == visit_id, _party_filter(actor_id))
                .values(status=status.value)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            await self._session.flush()
            visit = await self._fetch(visit_id)
        return VisitRecord.model_validate(visit) if visit is not None else None

    async def delete(self, visit_id: uuid.UUID, actor_id: uuid.UUID) -> bool:
        with _translate_db_errors("delete"):
            result = await self._session.execute(
                delete(ScheduledVisit)
                .where(ScheduledVisit.id == visit_id, _party_filter(actor_id))
                .execution_options(synchronize_session=False)
            )
            await self._session.flush()
        return result.rowcount > 0


class SqlPropertyDirectory:
    """``PropertyDirectory`` reading the ``properties`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_property(self, property_id: uuid.UUID) -> PropertySummary | None:
        with _translate_db_errors("get_property"):
            prop = await self._session.get(Property, property_id)
        return PropertySummary.model_validate(prop) if prop is not None else None
