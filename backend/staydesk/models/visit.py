"""ScheduledVisit model: property viewings and short-stay bookings."""

import uuid
from datetime import date, time

from sqlalchemy import Date, ForeignKey, Index, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staydesk.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ScheduledVisit(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A visit request or stay booking on a property.

    ``message`` may carry the line-oriented metadata sidecar decoded by
    ``staydesk.services.visit_metadata``.
    """

    __tablename__ = "scheduled_visits"

    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requester_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_time: Mapped[time] = mapped_column(Time, nullable=False)
    check_out_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50),
        default="scheduled",
        index=True,
    )  # scheduled, confirmed, completed, cancelled
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    visitor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    visitor_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Relationships
    property: Mapped["Property"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    owner: Mapped["User"] = relationship("User", foreign_keys=[owner_id], lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    requester: Mapped["User | None"] = relationship("User", foreign_keys=[requester_id], lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (Index("ix_scheduled_visits_scheduled_date", "scheduled_date"),)

    def __repr__(self) -> str:
        return (
            f"<ScheduledVisit(id={self.id}, property_id={self.property_id}, "
            f"owner_id={self.owner_id}, status={self.status})>"
        )
