# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Schedule CRUD endpoints and the "who is on call" query.
Thin HTTP layer — delegates ALL logic to ScheduleService.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from oncall_core.core.dependencies import get_schedule_service, require_identity
from oncall_core.core.errors import DOMAIN_ERRORS, status_for
from oncall_core.models.domain import Identity
from oncall_core.schemas.schedule import (
    OnCallResponse, ScheduleCreateRequest, ScheduleMutationResponse,
    ScheduleResponse, ScheduleUpdateRequest,
)
from oncall_core.services.schedule_service import ScheduleService

router = APIRouter(prefix="/api/v1", tags=["Schedules"])


@router.post("/schedules", status_code=201, response_model=ScheduleMutationResponse)
def create_schedule(
    payload: ScheduleCreateRequest,
    identity: Identity = Depends(require_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create a schedule and prefill its assignments from the roster."""
    try:
        return service.create_schedule(
            actor_id=identity.member_id,
            name=payload.name,
            team_id=payload.team_id,
            frequency=payload.frequency,
            unit=payload.unit,
            start_date=payload.start_date,
            end_date=payload.end_date,
            members=payload.members,
            description=payload.description,
            timezone=payload.timezone,
        )
    except DOMAIN_ERRORS as e:
        raise HTTPException(status_code=status_for(e), detail=str(e))


@router.get("/schedules", response_model=list[ScheduleResponse])
def list_schedules(
    team_id: Optional[str] = None,
    member_id: Optional[str] = Query(default=None, min_length=1),
    start: Optional[date] = None,
    end: Optional[date] = None,
    identity: Identity = Depends(require_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    """
    List schedules. ``member_id`` and ``start``/``end`` keep only schedules
    where the member (or anyone, without ``member_id``) is on call in range.
    """
    if start and end and end < start:
        raise HTTPException(status_code=400, detail="end cannot be before start")
    return service.list_schedules(team_id, member_id=member_id, start=start, end=end)


@router.get("/schedules/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(
    schedule_id: str,
    identity: Identity = Depends(require_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.get_schedule(schedule_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/schedules/{schedule_id}", response_model=ScheduleMutationResponse)
def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdateRequest,
    identity: Identity = Depends(require_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Partially update a schedule. Cadence or roster changes regenerate from today."""
    try:
        return service.update_schedule(
            identity.member_id, schedule_id, payload.model_dump(exclude_unset=True),
        )
    except DOMAIN_ERRORS as e:
        raise HTTPException(status_code=status_for(e), detail=str(e))


@router.delete("/schedules/{schedule_id}")
def delete_schedule(
    schedule_id: str,
    identity: Identity = Depends(require_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.delete_schedule(identity.member_id, schedule_id)
    except DOMAIN_ERRORS as e:
        raise HTTPException(status_code=status_for(e), detail=str(e))


@router.get("/schedules/{schedule_id}/oncall", response_model=OnCallResponse)
def get_current_oncall(
    schedule_id: str,
    on: Optional[date] = Query(default=None, description="Day to query; defaults to today"),
    identity: Identity = Depends(require_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.current_oncall(schedule_id, on)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
