"""
Typed domain errors for the routines service.

Callers distinguish specific failure modes (missing routine vs. malformed
schedule vs. unscoped store access) and map each to an HTTP response.
"""


class DomainError(Exception):
    """Base class for all domain-specific errors."""


# ---------------------------------------------------------------------------
# Lookup errors
# ---------------------------------------------------------------------------


class NotFound(DomainError):
    """Entity is absent or belongs to another couple.

    The two cases are deliberately indistinguishable.
    """


class RoutineNotFound(NotFound):
    """Routine with the given ID does not exist for this couple."""

    def __init__(self, routine_id: str) -> None:
        self.routine_id = routine_id
        super().__init__(f"Routine {routine_id} not found")


class OccurrenceNotFound(NotFound):
    """Routine occurrence with the given ID does not exist for this couple."""

    def __init__(self, occurrence_id: str) -> None:
        self.occurrence_id = occurrence_id
        super().__init__(f"Routine occurrence {occurrence_id} not found")


# ---------------------------------------------------------------------------
# Schedule errors
# ---------------------------------------------------------------------------


class InvalidSchedule(DomainError):
    """Recurrence rule is malformed or of an unknown kind."""


# ---------------------------------------------------------------------------
# Store errors
# ---------------------------------------------------------------------------


class TenantScopeRequired(DomainError):
    """A store operation was attempted without a couple id."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} requires a couple id")


class DuplicateOccurrence(DomainError):
    """An insert collided with an existing (routine_id, scheduled_date) row."""

    def __init__(self, routine_id: str) -> None:
        self.routine_id = routine_id
        super().__init__(f"Duplicate occurrence insert for routine {routine_id}")
