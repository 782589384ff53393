from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..core.config import get_settings
from ..services.routine_service import RoutineService
from .deps import Member, get_current_member, get_routine_service
from .schemas import (
    MessageResponse,
    OccurrenceListResponse,
    OccurrenceOut,
    OccurrenceResponse,
    RoutineCreate,
    RoutineListResponse,
    RoutineOut,
    RoutineResponse,
    RoutineUpdate,
    StatsOut,
    StatsResponse,
)

router = APIRouter(prefix="/api/routines", tags=["routines"])


def _local_date(value: Optional[datetime]) -> Optional[date]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(get_settings().tzinfo)
    return value.date()


@router.get("", response_model=RoutineListResponse)
async def list_routines(
    member: Member = Depends(get_current_member),
    service: RoutineService = Depends(get_routine_service),
) -> RoutineListResponse:
    """All routines of the caller's couple, newest first."""
    routines = await service.list_routines(member.couple_id)
    return RoutineListResponse(
        routines=[RoutineOut.model_validate(r) for r in routines]
    )


@router.post("", response_model=RoutineResponse, status_code=status.HTTP_201_CREATED)
async def create_routine(
    body: RoutineCreate,
    member: Member = Depends(get_current_member),
    service: RoutineService = Depends(get_routine_service),
) -> RoutineResponse:
    """Create a routine and materialize its first month of occurrences."""
    routine = await service.create_routine(
        couple_id=member.couple_id,
        creator_id=member.user_id,
        name=body.name,
        schedule=body.schedule.to_schedule(),
        description=body.description,
        assigned_to_user_id=(
            str(body.assigned_to_user_id) if body.assigned_to_user_id else None
        ),
        is_active=body.is_active,
    )
    return RoutineResponse(
        message="Routine created successfully",
        routine=RoutineOut.model_validate(routine),
    )


@router.get("/{routine_id}", response_model=RoutineResponse)
async def get_routine(
    routine_id: str,
    member: Member = Depends(get_current_member),
    service: RoutineService = Depends(get_routine_service),
) -> RoutineResponse:
    routine = await service.get_routine(routine_id, member.couple_id)
    return RoutineResponse(routine=RoutineOut.model_validate(routine))


@router.put("/{routine_id}", response_model=RoutineResponse)
async def update_routine(
    routine_id: str,
    body: RoutineUpdate,
    member: Member = Depends(get_current_member),
    service: RoutineService = Depends(get_routine_service),
) -> RoutineResponse:
    """Update a routine; sending ``schedule`` regenerates future occurrences."""
    routine = await service.update_routine(
        routine_id, member.couple_id, body.to_patch()
    )
    return RoutineResponse(
        message="Routine updated successfully",
        routine=RoutineOut.model_validate(routine),
    )


@router.delete("/{routine_id}", response_model=MessageResponse)
async def delete_routine(
    routine_id: str,
    member: Member = Depends(get_current_member),
    service: RoutineService = Depends(get_routine_service),
) -> MessageResponse:
    await service.delete_routine(routine_id, member.couple_id)
    return MessageResponse(message="Routine deleted successfully")


@router.get("/{routine_id}/occurrences", response_model=OccurrenceListResponse)
async def list_occurrences(
    routine_id: str,
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    member: Member = Depends(get_current_member),
    service: RoutineService = Depends(get_routine_service),
) -> OccurrenceListResponse:
    """Occurrences newest first, optionally bounded by ``start``/``end``.

    Bounds may be plain dates or ISO timestamps (``Date.toISOString()``);
    timestamps are reduced to their calendar date in the reference zone.
    """
    occurrences = await service.get_occurrences(
        routine_id, member.couple_id, _local_date(start), _local_date(end)
    )
    return OccurrenceListResponse(
        occurrences=[OccurrenceOut.model_validate(o) for o in occurrences]
    )


@router.post(
    "/{routine_id}/occurrences/{occurrence_id}/complete",
    response_model=OccurrenceResponse,
)
async def complete_occurrence(
    routine_id: str,
    occurrence_id: str,
    member: Member = Depends(get_current_member),
    service: RoutineService = Depends(get_routine_service),
) -> OccurrenceResponse:
    occurrence = await service.complete_occurrence(
        occurrence_id, member.couple_id, member.user_id, routine_id=routine_id
    )
    return OccurrenceResponse(
        message="Routine occurrence completed",
        occurrence=OccurrenceOut.model_validate(occurrence),
    )


@router.post(
    "/{routine_id}/occurrences/{occurrence_id}/uncomplete",
    response_model=OccurrenceResponse,
)
async def uncomplete_occurrence(
    routine_id: str,
    occurrence_id: str,
    member: Member = Depends(get_current_member),
    service: RoutineService = Depends(get_routine_service),
) -> OccurrenceResponse:
    occurrence = await service.uncomplete_occurrence(
        occurrence_id, member.couple_id, routine_id=routine_id
    )
    return OccurrenceResponse(
        message="Routine occurrence marked as incomplete",
        occurrence=OccurrenceOut.model_validate(occurrence),
    )


@router.post(
    "/{routine_id}/occurrences/{occurrence_id}/skip",
    response_model=OccurrenceResponse,
)
async def skip_occurrence(
    routine_id: str,
    occurrence_id: str,
    member: Member = Depends(get_current_member),
    service: RoutineService = Depends(get_routine_service),
) -> OccurrenceResponse:
    occurrence = await service.skip_occurrence(
        occurrence_id, member.couple_id, routine_id=routine_id
    )
    return OccurrenceResponse(
        message="Routine occurrence skipped",
        occurrence=OccurrenceOut.model_validate(occurrence),
    )


@router.get("/{routine_id}/stats", response_model=StatsResponse)
async def get_stats(
    routine_id: str,
    member: Member = Depends(get_current_member),
    service: RoutineService = Depends(get_routine_service),
) -> StatsResponse:
    stats = await service.get_stats(routine_id, member.couple_id)
    return StatsResponse(stats=StatsOut.model_validate(stats))
