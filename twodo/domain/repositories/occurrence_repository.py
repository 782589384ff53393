"""OccurrenceRepository protocol: the occurrence store contract."""

from datetime import date
from typing import Iterable, List, Optional, Protocol, Set, runtime_checkable


@runtime_checkable
class OccurrenceRepository(Protocol):
    """Repository interface for RoutineOccurrence access, scoped by couple."""

    async def get(self, occurrence_id: str, couple_id: str) -> Optional[object]:
        """Look up an occurrence visible to the given couple, or None."""
        ...

    async def list_for_routine(
        self,
        routine_id: str,
        couple_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[object]:
        """Occurrences of a routine, newest scheduled date first.

        Both bounds are inclusive and optional.
        """
        ...

    async def scheduled_dates(
        self, routine_id: str, couple_id: str, start_date: date, end_date: date
    ) -> Set[date]:
        """Dates that already have an occurrence within the window."""
        ...

    async def insert_batch(
        self, routine_id: str, couple_id: str, dates: Iterable[date]
    ) -> int:
        """Insert one pending occurrence per date and commit.

        Raises:
            DuplicateOccurrence: a row for one of the dates already exists.
        """
        ...

    async def delete_future_unskipped(
        self, routine_id: str, couple_id: str, from_date: date
    ) -> int:
        """Delete occurrences on or after from_date that are not skipped."""
        ...

    async def save(self, occurrence: object) -> object:
        """Commit pending changes to an already loaded occurrence."""
        ...
