"""
Routine lifecycle management.

RoutineService handles create / update / delete of routines, occurrence
state transitions and statistics for one couple-scoped request, on top of a
single AsyncSession. ``generate_for_all_active_routines`` is the batch entry
point used by the daily generator job; it isolates every routine in its own
session so one failure never aborts the batch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, AsyncContextManager, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.database import get_db_session
from ..domain.errors import OccurrenceNotFound, RoutineNotFound
from ..domain.interfaces import Clock, SystemClock
from ..domain.schedule import Schedule, schedule_to_dict
from ..infrastructure.repositories import (
    SqlAlchemyOccurrenceRepository,
    SqlAlchemyRoutineRepository,
)
from ..models.routine import Routine, RoutineOccurrence
from ..utils.logging import GenerationLogContext
from .occurrence_materializer import OccurrenceMaterializer
from .routine_stats import RoutineStats, compute_stats

logger = logging.getLogger(__name__)

# Look-ahead for materialization on create and on schedule change
LOOKAHEAD_DAYS = 30

UPDATABLE_FIELDS = frozenset(
    {"name", "description", "schedule", "assigned_to_user_id", "is_active"}
)


def default_clock() -> Clock:
    return SystemClock(get_settings().tzinfo)


class RoutineService:
    """Couple-scoped routine operations bound to one database session."""

    def __init__(self, session: AsyncSession, clock: Optional[Clock] = None) -> None:
        self.clock = clock or default_clock()
        self.routines = SqlAlchemyRoutineRepository(session)
        self.occurrences = SqlAlchemyOccurrenceRepository(session)
        self.materializer = OccurrenceMaterializer(self.routines, self.occurrences)

    def _lookahead_window(self, days: int = LOOKAHEAD_DAYS):
        today = self.clock.today()
        return today, today + timedelta(days=days)

    # --- Routines ---

    async def create_routine(
        self,
        couple_id: str,
        creator_id: str,
        name: str,
        schedule: Schedule,
        description: Optional[str] = None,
        assigned_to_user_id: Optional[str] = None,
        is_active: bool = True,
    ) -> Routine:
        """Persist a routine and materialize its first 30 days."""
        routine = Routine(
            couple_id=couple_id,
            name=name,
            description=description,
            schedule=schedule_to_dict(schedule),
            assigned_to_user_id=assigned_to_user_id,
            is_active=is_active,
            created_by_id=creator_id,
        )
        await self.routines.add(routine)
        routine_id = routine.id

        start, end = self._lookahead_window()
        created = await self.materializer.materialize_routine(routine, start, end)
        logger.info(
            f"Created routine {routine_id} for couple {couple_id} "
            f"with {created} initial occurrence(s)"
        )
        return await self.get_routine(routine_id, couple_id)

    async def list_routines(self, couple_id: str) -> List[Routine]:
        return await self.routines.list_for_couple(couple_id)

    async def get_routine(self, routine_id: str, couple_id: str) -> Routine:
        routine = await self.routines.get(routine_id, couple_id)
        if routine is None:
            raise RoutineNotFound(routine_id)
        return routine

    async def update_routine(
        self, routine_id: str, couple_id: str, patch: Dict[str, Any]
    ) -> Routine:
        """Apply field updates; a schedule change regenerates the future window.

        On schedule change every occurrence dated today or later that is not
        skipped is deleted, completed ones included, then the next 30 days are
        materialized from the new schedule.
        """
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update routine fields: {sorted(unknown)}")

        routine = await self.get_routine(routine_id, couple_id)

        new_schedule = patch.get("schedule")
        for key, value in patch.items():
            if key == "schedule":
                continue
            setattr(routine, key, value)
        if new_schedule is not None:
            routine.schedule = schedule_to_dict(new_schedule)
        await self.routines.save(routine)

        if new_schedule is not None:
            start, end = self._lookahead_window()
            purged = await self.occurrences.delete_future_unskipped(
                routine_id, couple_id, start
            )
            created = await self.materializer.materialize(
                routine_id, couple_id, start, end
            )
            logger.info(
                f"Schedule of routine {routine_id} changed: purged {purged}, "
                f"created {created} occurrence(s)"
            )
            # A rollback inside the materializer expires loaded objects
            routine = await self.get_routine(routine_id, couple_id)

        return routine

    async def delete_routine(self, routine_id: str, couple_id: str) -> None:
        routine = await self.get_routine(routine_id, couple_id)
        await self.routines.delete(routine)
        logger.info(f"Deleted routine {routine_id} for couple {couple_id}")

    # --- Occurrences ---

    async def get_occurrences(
        self,
        routine_id: str,
        couple_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[RoutineOccurrence]:
        await self.get_routine(routine_id, couple_id)
        return await self.occurrences.list_for_routine(
            routine_id, couple_id, start_date, end_date
        )

    async def _get_occurrence(
        self, occurrence_id: str, couple_id: str, routine_id: Optional[str]
    ) -> RoutineOccurrence:
        occurrence = await self.occurrences.get(occurrence_id, couple_id)
        if occurrence is None or (
            routine_id is not None and occurrence.routine_id != routine_id
        ):
            raise OccurrenceNotFound(occurrence_id)
        return occurrence

    async def complete_occurrence(
        self,
        occurrence_id: str,
        couple_id: str,
        user_id: str,
        routine_id: Optional[str] = None,
    ) -> RoutineOccurrence:
        """PENDING or SKIPPED -> COMPLETED."""
        occurrence = await self._get_occurrence(occurrence_id, couple_id, routine_id)
        occurrence.completed_at = self.clock.now()
        occurrence.completed_by_id = user_id
        occurrence.skipped = False
        return await self.occurrences.save(occurrence)

    async def uncomplete_occurrence(
        self, occurrence_id: str, couple_id: str, routine_id: Optional[str] = None
    ) -> RoutineOccurrence:
        """COMPLETED -> PENDING. The skipped flag is left as is."""
        occurrence = await self._get_occurrence(occurrence_id, couple_id, routine_id)
        occurrence.completed_at = None
        occurrence.completed_by_id = None
        return await self.occurrences.save(occurrence)

    async def skip_occurrence(
        self, occurrence_id: str, couple_id: str, routine_id: Optional[str] = None
    ) -> RoutineOccurrence:
        """Any state -> SKIPPED, clearing completion."""
        occurrence = await self._get_occurrence(occurrence_id, couple_id, routine_id)
        occurrence.skipped = True
        occurrence.completed_at = None
        occurrence.completed_by_id = None
        return await self.occurrences.save(occurrence)

    # --- Stats ---

    async def get_stats(self, routine_id: str, couple_id: str) -> RoutineStats:
        await self.get_routine(routine_id, couple_id)
        occurrences = await self.occurrences.list_for_routine(routine_id, couple_id)
        return compute_stats(occurrences, self.clock.today())


# ---------------------------------------------------------------------------
# Batch generation
# ---------------------------------------------------------------------------


@dataclass
class GenerationResult:
    routines_processed: int = 0
    occurrences_generated: int = 0
    routines_failed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "routinesProcessed": self.routines_processed,
            "occurrencesGenerated": self.occurrences_generated,
            "routinesFailed": list(self.routines_failed),
        }


async def generate_for_all_active_routines(
    window_days: Optional[int] = None,
    session_factory: Callable[[], AsyncContextManager[AsyncSession]] = get_db_session,
    clock: Optional[Clock] = None,
    timeout_seconds: Optional[float] = None,
) -> GenerationResult:
    """Extend materialization to [today, today + window_days] for every
    active routine of every couple.

    Each routine runs in its own session under a timeout. Failures and
    timeouts are logged and the batch moves on.
    """
    settings = get_settings()
    if window_days is None:
        window_days = settings.routine_lookahead_days
    if timeout_seconds is None:
        timeout_seconds = settings.routine_generation_timeout_seconds
    clock = clock or default_clock()

    today = clock.today()
    end = today + timedelta(days=window_days)

    async with session_factory() as session:
        active = await SqlAlchemyRoutineRepository(session).list_active()
        targets = [(r.id, r.couple_id) for r in active]

    result = GenerationResult(routines_processed=len(targets))
    for routine_id, couple_id in targets:
        try:
            with GenerationLogContext(
                "materialize", routine_id=routine_id, couple_id=couple_id
            ) as log_ctx:
                async with session_factory() as session:
                    service = RoutineService(session, clock=clock)
                    log_ctx.created = await asyncio.wait_for(
                        service.materializer.materialize(
                            routine_id, couple_id, today, end
                        ),
                        timeout=timeout_seconds,
                    )
            result.occurrences_generated += log_ctx.created
        except asyncio.TimeoutError:
            result.routines_failed.append(routine_id)
            logger.warning(
                f"Timed out materializing routine {routine_id} "
                f"after {timeout_seconds}s, skipping"
            )
        except Exception:
            # Already logged with routine context by GenerationLogContext
            result.routines_failed.append(routine_id)

    return result
