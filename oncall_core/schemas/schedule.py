# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas for schedules and assignments.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from oncall_core.models.domain import AssignmentsStatus, RotationUnit


def _normalise_unit(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.lower().strip()
    valid = [u.value for u in RotationUnit]
    if v not in valid:
        raise ValueError(f"unit must be one of {valid}")
    return v


def _clean_members(v: Optional[list[str]]) -> Optional[list[str]]:
    if v is None:
        return v
    members = [m.strip() for m in v]
    if any(not m for m in members):
        raise ValueError("member ids cannot be blank")
    return members


# ── Schedule Schemas ──

class ScheduleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    team_id: str = Field(..., min_length=1, max_length=255)
    frequency: int = Field(default=1, gt=0, description="Units per rotation")
    unit: str = Field(default="weekly", description="daily | weekly | biweekly | monthly")
    start_date: dt.date
    end_date: Optional[dt.date] = None
    timezone: str = Field(default="UTC", max_length=64)
    members: Optional[list[str]] = Field(
        default=None, description="Ordered roster of member ids"
    )

    @field_validator("unit")
    @classmethod
    def normalise_unit(cls, v: str) -> str:
        return _normalise_unit(v)

    @field_validator("members")
    @classmethod
    def clean_members(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _clean_members(v)

    @field_validator("end_date")
    @classmethod
    def end_after_start(cls, v: Optional[dt.date], info: ValidationInfo) -> Optional[dt.date]:
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date cannot be before start_date")
        return v


class ScheduleUpdateRequest(BaseModel):
    """Partial update model for PATCH /api/v1/schedules/{id}."""
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    frequency: Optional[int] = Field(default=None, gt=0)
    unit: Optional[str] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    timezone: Optional[str] = Field(default=None, max_length=64)
    members: Optional[list[str]] = None

    @field_validator("unit")
    @classmethod
    def normalise_unit(cls, v: Optional[str]) -> Optional[str]:
        return _normalise_unit(v)

    @field_validator("members")
    @classmethod
    def clean_members(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _clean_members(v)

    @field_validator("name", "frequency", "unit", "start_date", "timezone")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null; omit the field to keep its value")
        return v

    @field_validator("end_date")
    @classmethod
    def end_after_start(cls, v: Optional[dt.date], info: ValidationInfo) -> Optional[dt.date]:
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date cannot be before start_date")
        return v


class ScheduleResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    team_id: str
    frequency: int
    unit: RotationUnit
    start_date: dt.date
    end_date: Optional[dt.date] = None
    timezone: str
    members: list[str]
    rotation_anchor: Optional[dt.date] = None
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None


class ScheduleMutationResponse(BaseModel):
    schedule: ScheduleResponse
    assignments_status: AssignmentsStatus


class OnCallResponse(BaseModel):
    schedule_id: str
    date: dt.date
    member_id: Optional[str] = None
    source: Optional[str] = None


# ── Assignment Schemas ──

class AssignmentUpsertRequest(BaseModel):
    schedule_id: str = Field(..., min_length=1)
    member_id: str = Field(..., min_length=1)
    date: dt.date


class AssignmentResponse(BaseModel):
    id: str
    schedule_id: str
    member_id: str
    date: dt.date
    created_at: dt.datetime
