"""
Occurrence materialization.

Reconciles a routine's expanded schedule against the occurrences already in
the store for a date window, inserting only the missing dates. Existing
occurrences are never updated or deleted, whatever their completion state,
so calling materialize twice for the same window inserts nothing the second
time.
"""

import logging
from datetime import date

from ..domain.errors import DuplicateOccurrence
from ..domain.repositories import OccurrenceRepository, RoutineRepository
from ..domain.schedule import expand, missing_dates, parse_schedule

logger = logging.getLogger(__name__)

# Retries after a concurrent writer filled part of the same window
_MAX_DUPLICATE_RETRIES = 1


class OccurrenceMaterializer:
    """Inserts missing RoutineOccurrence rows for a window."""

    def __init__(
        self, routines: RoutineRepository, occurrences: OccurrenceRepository
    ) -> None:
        self._routines = routines
        self._occurrences = occurrences

    async def materialize(
        self, routine_id: str, couple_id: str, start_date: date, end_date: date
    ) -> int:
        """Create occurrences for [start_date, end_date].

        Returns:
            Number of occurrences newly created. 0 when the routine is
            missing or inactive.
        """
        routine = await self._routines.get(routine_id, couple_id)
        if routine is None or not routine.is_active:
            logger.debug(
                f"Skipping materialization for routine {routine_id}: "
                f"{'missing' if routine is None else 'inactive'}"
            )
            return 0
        return await self.materialize_routine(routine, start_date, end_date)

    async def materialize_routine(
        self, routine, start_date: date, end_date: date
    ) -> int:
        """Materialize an already loaded routine."""
        if not routine.is_active:
            return 0

        # Plain values: a rollback after a duplicate insert expires the ORM object
        routine_id = routine.id
        couple_id = routine.couple_id
        expected = expand(parse_schedule(routine.schedule), start_date, end_date)
        if not expected:
            return 0

        attempt = 0
        while True:
            existing = await self._occurrences.scheduled_dates(
                routine_id, couple_id, start_date, end_date
            )
            to_insert = missing_dates(expected, existing)
            if not to_insert:
                return 0
            try:
                created = await self._occurrences.insert_batch(
                    routine_id, couple_id, to_insert
                )
            except DuplicateOccurrence:
                if attempt >= _MAX_DUPLICATE_RETRIES:
                    logger.info(
                        f"Routine {routine_id}: window {start_date}..{end_date} "
                        f"is being materialized concurrently, leaving it to the other writer"
                    )
                    return 0
                attempt += 1
                continue

            logger.debug(
                f"Routine {routine_id}: created {created} occurrence(s) "
                f"for {start_date}..{end_date}"
            )
            return created
