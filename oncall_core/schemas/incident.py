# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Pydantic request/response schemas for incidents."""
import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from oncall_core.models.domain import VALID_SEVERITIES, AckChannel, IncidentStatus

VALID_STATUSES = tuple(s.value for s in IncidentStatus)
VALID_CHANNELS = tuple(c.value for c in AckChannel)


def _normalise_severity(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.lower().strip()
    if v not in VALID_SEVERITIES:
        raise ValueError(f"severity must be one of {VALID_SEVERITIES}")
    return v


class IncidentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    team_id: str = Field(..., min_length=1, max_length=255)
    severity: str = "unknown"
    service_id: Optional[str] = None
    assignee_id: Optional[str] = None

    @field_validator("severity")
    @classmethod
    def normalise_severity(cls, v: str) -> str:
        return _normalise_severity(v)


class IncidentPatch(BaseModel):
    """Unknown fields are ignored; only the ones actually sent are applied."""
    title: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: Optional[str] = None
    severity: Optional[str] = None
    assignee_id: Optional[str] = None
    service_id: Optional[str] = None
    resolved_at: Optional[dt.datetime] = None

    @field_validator("status")
    @classmethod
    def normalise_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.lower().strip()
            if v not in VALID_STATUSES:
                raise ValueError(f"status must be one of {VALID_STATUSES}")
        return v

    @field_validator("severity")
    @classmethod
    def normalise_severity(cls, v: Optional[str]) -> Optional[str]:
        return _normalise_severity(v)


class AcknowledgeRequest(BaseModel):
    """Token proof for out-of-band acknowledgment. Omit to use the session."""
    token: Optional[str] = None
    member_id: Optional[str] = None
    channel: Optional[str] = None


class IncidentOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    severity: str
    status: IncidentStatus
    team_id: str
    service_id: Optional[str] = None
    created_by_id: str
    assignee_id: Optional[str] = None
    acknowledged_by_id: Optional[str] = None
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None
    acknowledged_at: Optional[dt.datetime] = None
    resolved_at: Optional[dt.datetime] = None


class AcknowledgeResponse(BaseModel):
    message: str
    already_acknowledged: bool
    incident: IncidentOut


class AuditEntry(BaseModel):
    type: str
    timestamp: dt.datetime
    data: Dict[str, Any]


class IncidentAudit(BaseModel):
    incident: IncidentOut
    audit_log: List[AuditEntry] = []
