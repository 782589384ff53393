"""SQLAlchemy implementation of OccurrenceRepository."""

import logging
from datetime import date
from typing import Iterable, List, Optional, Set

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from twodo.domain.errors import DuplicateOccurrence
from twodo.models.routine import RoutineOccurrence

from .scoping import require_couple

logger = logging.getLogger(__name__)


class SqlAlchemyOccurrenceRepository:
    """Concrete OccurrenceRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, occurrence_id: str, couple_id: str
    ) -> Optional[RoutineOccurrence]:
        """Look up an occurrence by ID within a couple."""
        require_couple(couple_id, "get occurrence")
        result = await self._session.execute(
            select(RoutineOccurrence).where(
                RoutineOccurrence.id == occurrence_id,
                RoutineOccurrence.couple_id == couple_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_routine(
        self,
        routine_id: str,
        couple_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[RoutineOccurrence]:
        """Occurrences of a routine, newest first, optionally bounded."""
        require_couple(couple_id, "list occurrences")
        stmt = select(RoutineOccurrence).where(
            RoutineOccurrence.routine_id == routine_id,
            RoutineOccurrence.couple_id == couple_id,
        )
        if start_date is not None:
            stmt = stmt.where(RoutineOccurrence.scheduled_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(RoutineOccurrence.scheduled_date <= end_date)

        result = await self._session.execute(
            stmt.order_by(RoutineOccurrence.scheduled_date.desc())
        )
        return list(result.scalars().all())

    async def scheduled_dates(
        self, routine_id: str, couple_id: str, start_date: date, end_date: date
    ) -> Set[date]:
        """Dates within the window that already have an occurrence."""
        require_couple(couple_id, "read scheduled dates")
        result = await self._session.execute(
            select(RoutineOccurrence.scheduled_date).where(
                RoutineOccurrence.routine_id == routine_id,
                RoutineOccurrence.couple_id == couple_id,
                RoutineOccurrence.scheduled_date >= start_date,
                RoutineOccurrence.scheduled_date <= end_date,
            )
        )
        return set(result.scalars().all())

    async def insert_batch(
        self, routine_id: str, couple_id: str, dates: Iterable[date]
    ) -> int:
        """Insert pending occurrences for the given dates in one commit."""
        require_couple(couple_id, "insert occurrences")
        rows = [
            RoutineOccurrence(
                routine_id=routine_id,
                couple_id=couple_id,
                scheduled_date=day,
                skipped=False,
            )
            for day in dates
        ]
        if not rows:
            return 0

        self._session.add_all(rows)
        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            logger.info(
                f"Occurrence insert for routine {routine_id} hit the "
                f"uniqueness constraint: {e.orig}"
            )
            raise DuplicateOccurrence(routine_id) from e
        return len(rows)

    async def delete_future_unskipped(
        self, routine_id: str, couple_id: str, from_date: date
    ) -> int:
        """Delete non-skipped occurrences dated from_date or later."""
        require_couple(couple_id, "delete occurrences")
        result = await self._session.execute(
            delete(RoutineOccurrence).where(
                RoutineOccurrence.routine_id == routine_id,
                RoutineOccurrence.couple_id == couple_id,
                RoutineOccurrence.scheduled_date >= from_date,
                RoutineOccurrence.skipped == False,  # noqa: E712
            )
        )
        await self._session.commit()
        return result.rowcount or 0

    async def save(self, occurrence: RoutineOccurrence) -> RoutineOccurrence:
        require_couple(occurrence.couple_id, "save occurrence")
        await self._session.commit()
        return occurrence
