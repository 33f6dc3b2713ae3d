"""Shared API dependencies: single import point for all routers.

Re-exports database session and authentication dependencies and builds the
visit lifecycle for a request::

    from staydesk.api.deps import get_db, get_current_user, get_lifecycle
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from staydesk.auth.dependencies import get_current_user, get_optional_user
from staydesk.config import settings
from staydesk.database import get_db
from staydesk.services.visit_events import event_bus
from staydesk.services.visit_lifecycle import VisitLifecycle
from staydesk.services.visit_store import SqlPropertyDirectory, SqlVisitStore


async def get_lifecycle(db: AsyncSession = Depends(get_db)) -> VisitLifecycle:
    """Visit lifecycle bound to the request's database session."""
    return VisitLifecycle(
        store=SqlVisitStore(db, allow_anonymous=settings.allow_anonymous_visits),
        properties=SqlPropertyDirectory(db),
        events=event_bus,
    )


__all__ = [
    "get_db",
    "get_current_user",
    "get_optional_user",
    "get_lifecycle",
]
