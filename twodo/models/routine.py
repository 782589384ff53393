"""
Routine and RoutineOccurrence models.

A Routine owns a recurrence rule (stored as a JSON blob) and the concrete
RoutineOccurrence rows materialized from it, one per scheduled date.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..domain.schedule import Schedule, parse_schedule
from .base import Base, TimestampMixin, new_uuid, utcnow


class Routine(Base, TimestampMixin):
    """A recurring activity shared by a couple."""

    __tablename__ = "routines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    couple_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # {"frequency": "weekly", "daysOfWeek": [1, 3], ...}
    schedule: Mapped[dict] = mapped_column(JSON, nullable=False)

    assigned_to_user_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by_id: Mapped[str] = mapped_column(String(36), nullable=False)

    # Rows are removed by the ON DELETE CASCADE foreign key
    occurrences: Mapped[List["RoutineOccurrence"]] = relationship(
        "RoutineOccurrence",
        back_populates="routine",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def schedule_value(self) -> Schedule:
        return parse_schedule(self.schedule)

    def __repr__(self) -> str:
        return (
            f"<Routine(id={self.id}, couple_id={self.couple_id}, "
            f"name={self.name}, active={self.is_active})>"
        )


class RoutineOccurrence(Base):
    """One concrete scheduled instance of a routine on a calendar date."""

    __tablename__ = "routine_occurrences"
    __table_args__ = (
        UniqueConstraint(
            "routine_id", "scheduled_date", name="uq_routine_occurrence_date"
        ),
        Index("ix_routine_occurrences_couple_date", "couple_id", "scheduled_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    routine_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("routines.id", ondelete="CASCADE"), nullable=False
    )
    couple_id: Mapped[str] = mapped_column(String(36), nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_by_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    skipped: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    routine: Mapped["Routine"] = relationship("Routine", back_populates="occurrences")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def is_pending(self) -> bool:
        return self.completed_at is None and not self.skipped

    def __repr__(self) -> str:
        return (
            f"<RoutineOccurrence(id={self.id}, routine_id={self.routine_id}, "
            f"date={self.scheduled_date}, completed={self.is_completed}, "
            f"skipped={self.skipped})>"
        )
