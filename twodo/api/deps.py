"""
Request dependencies: caller identity and the routine service.

Authentication happens upstream. The identity gateway forwards the
authenticated member as ``X-User-ID`` and their couple as ``X-Couple-ID``.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db_session_dependency
from ..services.routine_service import RoutineService


@dataclass(frozen=True)
class Member:
    user_id: str
    couple_id: str


async def get_current_member(
    x_user_id: Optional[str] = Header(default=None),
    x_couple_id: Optional[str] = Header(default=None),
) -> Member:
    """Resolve the calling member; both headers are required."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    if not x_couple_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You must be part of a couple to access this resource",
        )
    return Member(user_id=x_user_id, couple_id=x_couple_id)


async def get_routine_service(
    session: AsyncSession = Depends(get_db_session_dependency),
) -> RoutineService:
    return RoutineService(session)
