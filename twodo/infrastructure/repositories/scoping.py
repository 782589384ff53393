"""Tenant scoping guard shared by the SQLAlchemy repositories."""

from twodo.domain.errors import TenantScopeRequired


def require_couple(couple_id: str, operation: str) -> str:
    """Return couple_id, or raise if the caller did not supply one."""
    if not couple_id:
        raise TenantScopeRequired(operation)
    return couple_id
