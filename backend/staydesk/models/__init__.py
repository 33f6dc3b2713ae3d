"""SQLAlchemy models for StayDesk.

All models are imported here so that ``Base.metadata`` sees every table.
If you add a new model, import it in this file.
"""

from staydesk.models.property import Property
from staydesk.models.user import User
from staydesk.models.visit import ScheduledVisit

__all__ = [
    "Property",
    "ScheduledVisit",
    "User",
]
