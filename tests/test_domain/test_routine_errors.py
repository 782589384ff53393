"""
Tests for typed domain errors.

Verifies that each error class inherits correctly and carries the right
attributes for downstream handling.
"""

from twodo.domain.errors import (
    DomainError,
    DuplicateOccurrence,
    InvalidSchedule,
    NotFound,
    OccurrenceNotFound,
    RoutineNotFound,
    TenantScopeRequired,
)


class TestDomainErrorHierarchy:
    def test_all_errors_share_a_base(self):
        for cls in (
            NotFound,
            InvalidSchedule,
            TenantScopeRequired,
            DuplicateOccurrence,
        ):
            assert issubclass(cls, DomainError)

    def test_lookup_errors_are_not_found(self):
        assert issubclass(RoutineNotFound, NotFound)
        assert issubclass(OccurrenceNotFound, NotFound)


class TestErrorAttributes:
    def test_routine_not_found(self):
        err = RoutineNotFound("r-1")
        assert err.routine_id == "r-1"
        assert str(err) == "Routine r-1 not found"

    def test_occurrence_not_found(self):
        err = OccurrenceNotFound("o-9")
        assert err.occurrence_id == "o-9"
        assert "o-9" in str(err)

    def test_tenant_scope_required(self):
        err = TenantScopeRequired("list routines")
        assert err.operation == "list routines"
        assert "couple id" in str(err)

    def test_duplicate_occurrence(self):
        assert DuplicateOccurrence("r-2").routine_id == "r-2"
