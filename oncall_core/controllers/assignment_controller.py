# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Assignment endpoints.
Reads always return one assignment per date (the latest written).
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from oncall_core.core.dependencies import get_schedule_service, require_identity
from oncall_core.core.errors import DOMAIN_ERRORS, status_for
from oncall_core.models.domain import Identity
from oncall_core.schemas.schedule import AssignmentResponse, AssignmentUpsertRequest
from oncall_core.services.schedule_service import ScheduleService

router = APIRouter(prefix="/api/v1", tags=["Assignments"])


@router.get("/assignments", response_model=list[AssignmentResponse])
def list_assignments(
    schedule_id: Optional[str] = Query(default=None, min_length=1),
    member_id: Optional[str] = Query(default=None, min_length=1),
    start: Optional[date] = None,
    end: Optional[date] = None,
    identity: Identity = Depends(require_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Assignments of one schedule, of one member across schedules, or both."""
    if start and end and end < start:
        raise HTTPException(status_code=400, detail="end cannot be before start")
    try:
        return service.list_assignments(schedule_id, start, end, member_id=member_id)
    except DOMAIN_ERRORS as e:
        raise HTTPException(status_code=status_for(e), detail=str(e))


@router.post("/assignments", status_code=201, response_model=AssignmentResponse)
def upsert_assignment(
    payload: AssignmentUpsertRequest,
    identity: Identity = Depends(require_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Set the on-call member for one day, replacing any existing assignment."""
    try:
        return service.upsert_assignment(
            identity.member_id, payload.schedule_id, payload.member_id, payload.date,
        )
    except DOMAIN_ERRORS as e:
        raise HTTPException(status_code=status_for(e), detail=str(e))


@router.delete("/assignments/{assignment_id}")
def delete_assignment(
    assignment_id: str,
    identity: Identity = Depends(require_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.delete_assignment(identity.member_id, assignment_id)
    except DOMAIN_ERRORS as e:
        raise HTTPException(status_code=status_for(e), detail=str(e))
