"""In-memory collaborators for lifecycle tests: no database involved.

``InMemoryVisitStore`` mirrors ``SqlVisitStore``: it applies the
owner-or-requester row filter on update/delete, orders listings by date then
time, and raises ``PolicyBlockedError`` for anonymous writes when configured
to refuse them.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from staydesk.errors import PolicyBlockedError, TransportError
from staydesk.schemas.visit import NewVisit, PartyProfile, PropertySummary, VisitRecord, VisitStatus
from staydesk.services.visit_events import VisitEventBus
from staydesk.services.visit_lifecycle import VisitLifecycle


class InMemoryPropertyDirectory:
    def __init__(self) -> None:
        self.properties: dict[uuid.UUID, PropertySummary] = {}

    def add(self, prop: PropertySummary) -> PropertySummary:
        self.properties[prop.id] = prop
        return prop

    async def get_property(self, property_id: uuid.UUID) -> PropertySummary | None:
        return self.properties.get(property_id)


class InMemoryVisitStore:
    def __init__(
        self,
        directory: InMemoryPropertyDirectory,
        allow_anonymous: bool = True,
    ) -> None:
        self.directory = directory
        self.allow_anonymous = allow_anonymous
        self.profiles: dict[uuid.UUID, PartyProfile] = {}
        self.rows: dict[uuid.UUID, VisitRecord] = {}
        self.offline = False

    def _check_online(self) -> None:
        if self.offline:
            raise TransportError("Visit store unavailable")

    async def insert(self, values: NewVisit, actor_id: uuid.UUID | None) -> VisitRecord:
        self._check_online()
        if actor_id is None and not self.allow_anonymous:
            raise PolicyBlockedError("Unauthenticated visit writes are not permitted")
        now = datetime.now(timezone.utc)
        record = VisitRecord(
            id=uuid.uuid4(),
            created_at=now,
            updated_at=now,
            property=self.directory.properties.get(values.property_id),
            owner=self.profiles.get(values.owner_id),
            requester=self.profiles.get(values.requester_id) if values.requester_id else None,
            **values.model_dump(),
        )
        self.rows[record.id] = record
        return record

    async def get(self, visit_id: uuid.UUID) -> VisitRecord | None:
        self._check_online()
        return self.rows.get(visit_id)

    def _sorted(self, records) -> list[VisitRecord]:
        return sorted(records, key=lambda r: (r.scheduled_date, r.scheduled_time))

    async def list_for_owner(self, owner_id, status=None) -> list[VisitRecord]:
        self._check_online()
        return self._sorted(
            r for r in self.rows.values()
            if r.owner_id == owner_id and (status is None or r.status == status)
        )

    async def list_for_requester(self, requester_id, status=None) -> list[VisitRecord]:
        self._check_online()
        return self._sorted(
            r for r in self.rows.values()
            if r.requester_id == requester_id and (status is None or r.status == status)
        )

    async def list_active_for_property(self, property_id) -> list[VisitRecord]:
        self._check_online()
        return self._sorted(
            r for r in self.rows.values()
            if r.property_id == property_id
            and r.status in (VisitStatus.SCHEDULED, VisitStatus.CONFIRMED)
        )

    def _is_party(self, record: VisitRecord, actor_id) -> bool:
        return actor_id in (record.owner_id, record.requester_id)

    async def update_status(self, visit_id, status, actor_id) -> VisitRecord | None:
        self._check_online()
        record = self.rows.get(visit_id)
        if record is None or not self._is_party(record, actor_id):
            return None
        updated = record.model_copy(update={"status": status, "updated_at": datetime.now(timezone.utc)})
        self.rows[visit_id] = updated
        return updated

    async def delete(self, visit_id, actor_id) -> bool:
        self._check_online()
        record = self.rows.get(visit_id)
        if record is None or not self._is_party(record, actor_id):
            return False
        del self.rows[visit_id]
        return True


@pytest.fixture
def owner_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def requester_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def directory() -> InMemoryPropertyDirectory:
    return InMemoryPropertyDirectory()


@pytest.fixture
def villa(directory: InMemoryPropertyDirectory, owner_id: uuid.UUID) -> PropertySummary:
    return directory.add(
        PropertySummary(
            id=uuid.uuid4(),
            owner_id=owner_id,
            title="Seaside Villa",
            location="Diani, Kwale",
            price=Decimal("120000"),
            images=[],
        )
    )


@pytest.fixture
def store(directory, owner_id, requester_id) -> InMemoryVisitStore:
    store = InMemoryVisitStore(directory)
    store.profiles[owner_id] = PartyProfile(id=owner_id, first_name="Olivia", last_name="Owner")
    store.profiles[requester_id] = PartyProfile(
        id=requester_id,
        first_name="Rita",
        last_name="Requester",
        email="rita@example.com",
        phone="0722000111",
    )
    return store


@pytest.fixture
def bus() -> VisitEventBus:
    return VisitEventBus()


@pytest.fixture
def lifecycle(store, directory, bus) -> VisitLifecycle:
    return VisitLifecycle(store=store, properties=directory, events=bus)
