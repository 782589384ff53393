"""SQLAlchemy implementation of RoutineRepository."""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from twodo.models.routine import Routine

from .scoping import require_couple

logger = logging.getLogger(__name__)


class SqlAlchemyRoutineRepository:
    """Concrete RoutineRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, routine_id: str, couple_id: str) -> Optional[Routine]:
        """Look up a routine by ID within a couple."""
        require_couple(couple_id, "get routine")
        result = await self._session.execute(
            select(Routine).where(
                Routine.id == routine_id, Routine.couple_id == couple_id
            )
        )
        return result.scalar_one_or_none()

    async def list_for_couple(self, couple_id: str) -> List[Routine]:
        """All routines of a couple, newest first."""
        require_couple(couple_id, "list routines")
        result = await self._session.execute(
            select(Routine)
            .where(Routine.couple_id == couple_id)
            .order_by(Routine.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_active(self) -> List[Routine]:
        """All active routines regardless of couple."""
        result = await self._session.execute(
            select(Routine).where(Routine.is_active == True)  # noqa: E712
        )
        return list(result.scalars().all())

    async def add(self, routine: Routine) -> Routine:
        require_couple(routine.couple_id, "add routine")
        self._session.add(routine)
        await self._session.commit()
        logger.debug(f"Persisted routine {routine.id} for couple {routine.couple_id}")
        return routine

    async def save(self, routine: Routine) -> Routine:
        require_couple(routine.couple_id, "save routine")
        await self._session.commit()
        return routine

    async def delete(self, routine: Routine) -> None:
        require_couple(routine.couple_id, "delete routine")
        await self._session.delete(routine)
        await self._session.commit()
