# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models — pure data structures, NO FastAPI dependency.
"""

import datetime as dt
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

VALID_SEVERITIES = ("critical", "high", "medium", "low", "unknown")


class RotationUnit(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class IncidentStatus(str, Enum):
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"

    @property
    def rank(self) -> int:
        """Position in the lifecycle; status may only move to an equal or higher rank."""
        return _STATUS_RANK[self]


_STATUS_RANK = {
    IncidentStatus.OPEN: 0,
    IncidentStatus.ACKNOWLEDGED: 1,
    IncidentStatus.RESOLVED: 2,
}


class UpdateType(str, Enum):
    CREATED = "CREATED"
    ACKNOWLEDGMENT = "ACKNOWLEDGMENT"
    RESOLUTION = "RESOLUTION"
    STATUS_CHANGE = "STATUS_CHANGE"
    ASSIGNMENT_CHANGE = "ASSIGNMENT_CHANGE"


class AckChannel(str, Enum):
    WEB = "web"
    SLACK = "slack"
    SMS = "sms"
    VOICE = "voice"


class Identity(BaseModel):
    """Caller identity as returned by the authentication collaborator."""
    member_id: str = Field(..., min_length=1)
    email: Optional[str] = None


class Cadence(BaseModel):
    """How often on-call responsibility rotates."""
    frequency: int = Field(..., gt=0, description="Number of units per rotation")
    unit: RotationUnit


class Schedule(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    team_id: str
    frequency: int
    unit: RotationUnit
    start_date: dt.date
    end_date: Optional[dt.date] = None
    # Informational only; all rotation math is calendar-day based.
    timezone: str = "UTC"
    members: list[str] = Field(default_factory=list)
    # Day the stored rotation counts periods from; moves when a roster or
    # cadence change regenerates assignments.
    rotation_anchor: Optional[dt.date] = None
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None

    @property
    def cadence(self) -> Cadence:
        return Cadence(frequency=self.frequency, unit=self.unit)

    @property
    def anchor(self) -> dt.date:
        return self.rotation_anchor or self.start_date


class Assignment(BaseModel):
    id: str
    schedule_id: str
    member_id: str
    date: dt.date
    created_at: dt.datetime


class Incident(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    severity: str = "unknown"
    status: IncidentStatus = IncidentStatus.OPEN
    team_id: str
    service_id: Optional[str] = None
    created_by_id: str
    assignee_id: Optional[str] = None
    acknowledged_by_id: Optional[str] = None
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None
    acknowledged_at: Optional[dt.datetime] = None
    resolved_at: Optional[dt.datetime] = None


class IncidentUpdate(BaseModel):
    """Append-only audit record. Never edited once written."""
    id: str
    incident_id: str
    member_id: str
    message: str
    type: UpdateType
    created_at: dt.datetime


class IncidentAcknowledgment(BaseModel):
    id: str
    incident_id: str
    member_id: str
    channel: AckChannel
    acknowledged_at: dt.datetime


class NotificationLog(BaseModel):
    """Written by the paging subsystem; read-only here."""
    id: str
    incident_id: str
    member_id: Optional[str] = None
    channel: str
    status: str
    sent_at: dt.datetime


class EscalationLog(BaseModel):
    """Written by the paging subsystem; read-only here."""
    id: str
    incident_id: str
    level: int
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    status: str
    triggered_at: dt.datetime


class AssignmentsStatus(BaseModel):
    """Outcome of the assignment phase of a schedule mutation."""
    state: Literal["ok", "skipped", "partial_failure"]
    generated: int = 0
    reason: Optional[str] = None


class ScheduleResult(BaseModel):
    """A committed schedule plus how its assignment regeneration went."""
    schedule: Schedule
    assignments_status: AssignmentsStatus
