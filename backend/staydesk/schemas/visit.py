"""Pydantic v2 schemas for visit records and visit endpoints.

``VisitRecord`` is the engine's view of a ``ScheduledVisit`` row. It is built
with ``from_attributes=True`` so the lifecycle and the notification builders
never touch ORM objects directly.
"""

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class VisitStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Domain records
# ---------------------------------------------------------------------------


class PropertySummary(BaseModel):
    """The slice of a property the visit engine needs."""

    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    location: str | None = None
    price: Decimal | None = None
    images: list[str] | None = None

    model_config = ConfigDict(from_attributes=True)


class PartyProfile(BaseModel):
    """Contact details of an owner or requester account."""

    id: uuid.UUID
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class VisitRecord(BaseModel):
    """A visit or short-stay booking as seen by the lifecycle engine."""

    id: uuid.UUID
    property_id: uuid.UUID
    owner_id: uuid.UUID
    requester_id: uuid.UUID | None = None
    scheduled_date: date
    scheduled_time: time
    check_out_date: date | None = None
    status: VisitStatus = VisitStatus.SCHEDULED
    message: str | None = None
    visitor_name: str | None = None
    visitor_email: str | None = None
    created_at: datetime
    updated_at: datetime

    property: PropertySummary | None = None
    owner: PartyProfile | None = None
    requester: PartyProfile | None = None

    model_config = ConfigDict(from_attributes=True)


class NewVisit(BaseModel):
    """Column values for a visit row about to be inserted."""

    property_id: uuid.UUID
    owner_id: uuid.UUID
    requester_id: uuid.UUID | None = None
    scheduled_date: date
    scheduled_time: time
    check_out_date: date | None = None
    status: VisitStatus = VisitStatus.SCHEDULED
    message: str | None = None
    visitor_name: str | None = None
    visitor_email: str | None = None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class VisitDraft(BaseModel):
    """Self-service visit request or short-stay booking."""

    property_id: uuid.UUID
    scheduled_date: date
    scheduled_time: time
    check_out_date: date | None = None
    message: str | None = None
    visitor_name: str | None = Field(None, max_length=255)
    visitor_email: EmailStr | None = None


class ManualVisitDraft(BaseModel):
    """Owner-entered visit for a client without an account.

    Fields are optional here; the lifecycle reports every missing one in a
    single ``ValidationError``.
    """

    property_id: uuid.UUID | None = None
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    client_name: str | None = Field(None, max_length=255)
    client_phone: str | None = Field(None, max_length=50)
    notes: str | None = None


class StatusTransition(BaseModel):
    """Body of a status change request."""

    status: VisitStatus


class DecodeRequest(BaseModel):
    message: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class VisitResponse(VisitRecord):
    """Visit returned from the API, with the decoded visit kind."""

    kind: str = "standard"


class VisitCreateResponse(BaseModel):
    """Result of a self-service create.

    ``visit`` is ``None`` when the store's access rule blocked an anonymous
    write; the request still counts as accepted.
    """

    accepted: bool = True
    visit: VisitResponse | None = None


class VisitListResponse(BaseModel):
    items: list[VisitResponse]
    total: int


class BookedDatesResponse(BaseModel):
    property_id: uuid.UUID
    booked_dates: list[date]
