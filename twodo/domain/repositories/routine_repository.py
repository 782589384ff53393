"""RoutineRepository protocol: defines routine lookup and persistence contract."""

from typing import List, Optional, Protocol, runtime_checkable


@runtime_checkable
class RoutineRepository(Protocol):
    """Repository interface for Routine entity access.

    Every couple-facing method takes the couple id explicitly and must reject
    a call without one.
    """

    async def get(self, routine_id: str, couple_id: str) -> Optional[object]:
        """Look up a routine visible to the given couple.

        Returns:
            The Routine object, or None if absent or owned by another couple.
        """
        ...

    async def list_for_couple(self, couple_id: str) -> List[object]:
        """All routines of a couple, newest first."""
        ...

    async def list_active(self) -> List[object]:
        """All active routines across couples (system-level, batch job only)."""
        ...

    async def add(self, routine: object) -> object:
        """Persist a new routine and commit."""
        ...

    async def save(self, routine: object) -> object:
        """Commit pending changes to an already loaded routine."""
        ...

    async def delete(self, routine: object) -> None:
        """Delete a routine; its occurrences are removed by cascade."""
        ...
