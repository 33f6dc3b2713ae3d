"""Visits API router: viewing requests and short-stay bookings.

Access rule: a visit is visible to, and changeable by, exactly two parties,
the owner of the property and the requester who asked for it. Domain errors
raised by the lifecycle are turned into HTTP responses by the handler in
``staydesk.main``.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status

from staydesk.api.deps import get_current_user, get_lifecycle, get_optional_user
from staydesk.models.user import User
from staydesk.schemas.visit import (
    BookedDatesResponse,
    DecodeRequest,
    ManualVisitDraft,
    StatusTransition,
    VisitCreateResponse,
    VisitDraft,
    VisitListResponse,
    VisitRecord,
    VisitResponse,
    VisitStatus,
)
from staydesk.services.visit_lifecycle import VisitLifecycle
from staydesk.services.visit_metadata import VisitMetadata, classify, decode
from staydesk.services.visit_notifications import build_deep_link, build_receipt_email

router = APIRouter(prefix="/api/v1/visits", tags=["visits"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_response(record: VisitRecord) -> VisitResponse:
    return VisitResponse(**record.model_dump(), kind=classify(record.message).kind)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=VisitCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a visit or book a short stay",
)
async def create_visit(
    body: VisitDraft,
    lifecycle: VisitLifecycle = Depends(get_lifecycle),
    current_user: User | None = Depends(get_optional_user),
) -> VisitCreateResponse:
    """Self-service create, open to signed-in and anonymous visitors.

    When the store refuses an anonymous write the request is still reported
    as accepted, with ``visit`` set to null.
    """
    record = await lifecycle.create(body, current_user.id if current_user else None)
    return VisitCreateResponse(accepted=True, visit=_to_response(record) if record else None)


@router.post(
    "/manual",
    response_model=VisitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enter a visit for a client without an account",
)
async def create_manual_visit(
    body: ManualVisitDraft,
    lifecycle: VisitLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
) -> VisitResponse:
    """Owner-entered visit. Client name and phone are stored in the message."""
    record = await lifecycle.create(body, current_user.id)
    return _to_response(record)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get("/owned", response_model=VisitListResponse, summary="Visits on my properties")
async def list_owned_visits(
    status_filter: VisitStatus | None = Query(None, alias="status", description="Filter by visit status"),
    lifecycle: VisitLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
) -> VisitListResponse:
    records = await lifecycle.list_for_owner(current_user.id, status_filter)
    return VisitListResponse(items=[_to_response(r) for r in records], total=len(records))


@router.get("/requested", response_model=VisitListResponse, summary="Visits I requested")
async def list_requested_visits(
    status_filter: VisitStatus | None = Query(None, alias="status", description="Filter by visit status"),
    lifecycle: VisitLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
) -> VisitListResponse:
    records = await lifecycle.list_for_requester(current_user.id, status_filter)
    return VisitListResponse(items=[_to_response(r) for r in records], total=len(records))


@router.post("/metadata/decode", response_model=VisitMetadata, summary="Decode a visit message")
async def decode_metadata(body: DecodeRequest) -> VisitMetadata:
    return decode(body.message)


@router.get(
    "/properties/{property_id}/booked-dates",
    response_model=BookedDatesResponse,
    summary="Dates held by scheduled or confirmed visits",
)
async def get_booked_dates(
    property_id: uuid.UUID,
    lifecycle: VisitLifecycle = Depends(get_lifecycle),
) -> BookedDatesResponse:
    dates = await lifecycle.booked_dates(property_id)
    return BookedDatesResponse(property_id=property_id, booked_dates=dates)


@router.get("/{visit_id}", response_model=VisitResponse, summary="Get a visit")
async def get_visit(
    visit_id: uuid.UUID,
    lifecycle: VisitLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
) -> VisitResponse:
    return _to_response(await lifecycle.get(visit_id, current_user.id))


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


@router.patch("/{visit_id}/status", response_model=VisitResponse, summary="Change a visit's status")
async def transition_visit(
    visit_id: uuid.UUID,
    body: StatusTransition,
    lifecycle: VisitLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
) -> VisitResponse:
    """Move a visit along scheduled -> confirmed -> completed, or cancel it.

    Confirming a visit does not notify anyone; call the deep-link or
    receipt-email endpoints for that.
    """
    record = await lifecycle.transition(visit_id, body.status, current_user.id)
    return _to_response(record)


@router.delete("/{visit_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a visit")
async def delete_visit(
    visit_id: uuid.UUID,
    lifecycle: VisitLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
) -> None:
    await lifecycle.delete(visit_id, current_user.id)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


@router.get("/{visit_id}/deep-link", summary="Chat link confirming the visit to the client")
async def get_deep_link(
    visit_id: uuid.UUID,
    lifecycle: VisitLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
) -> dict:
    record = await lifecycle.get(visit_id, current_user.id)
    return asdict(build_deep_link(record))


@router.get("/{visit_id}/receipt-email", summary="Booking receipt email for the guest")
async def get_receipt_email(
    visit_id: uuid.UUID,
    lifecycle: VisitLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
) -> dict:
    record = await lifecycle.get(visit_id, current_user.id)
    return asdict(build_receipt_email(record))
