# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Controller: Incident CRUD, status transitions, acknowledgment and audit trail."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from oncall_core.core.dependencies import (
    get_audit_service, get_incident_service, get_session, require_identity,
)
from oncall_core.core.errors import DOMAIN_ERRORS, status_for
from oncall_core.models.domain import Identity, IncidentStatus
from oncall_core.schemas.incident import (
    VALID_STATUSES, AcknowledgeRequest, AcknowledgeResponse, AuditEntry,
    IncidentAudit, IncidentCreate, IncidentOut, IncidentPatch,
)
from oncall_core.services.ack_authorizer import AckRequest, authorize
from oncall_core.services.audit_timeline import AuditService
from oncall_core.services.incident_service import IncidentService

router = APIRouter(prefix="/api/v1", tags=["Incidents"])


@router.post("/incidents", status_code=201, response_model=IncidentOut)
def create_incident(body: IncidentCreate,
                    identity: Identity = Depends(require_identity),
                    service: IncidentService = Depends(get_incident_service)):
    try:
        return service.create_incident(
            actor_id=identity.member_id, title=body.title, team_id=body.team_id,
            description=body.description, severity=body.severity,
            service_id=body.service_id, assignee_id=body.assignee_id,
        )
    except DOMAIN_ERRORS as exc:
        raise HTTPException(status_code=status_for(exc), detail=str(exc))


@router.get("/incidents", response_model=list[IncidentOut])
def list_incidents(team_id: Optional[str] = None, status: Optional[str] = None,
                   identity: Identity = Depends(require_identity),
                   service: IncidentService = Depends(get_incident_service)):
    if status is not None and status not in VALID_STATUSES:
        raise HTTPException(status_code=400,
                            detail=f"status must be one of {VALID_STATUSES}")
    return service.list_incidents(identity.member_id, team_id=team_id, status=status)


@router.get("/incidents/{incident_id}", response_model=IncidentOut)
def get_incident(incident_id: str,
                 identity: Identity = Depends(require_identity),
                 service: IncidentService = Depends(get_incident_service)):
    try:
        return service.get_incident(incident_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Incident not found")


@router.patch("/incidents/{incident_id}", response_model=IncidentOut)
def update_incident(incident_id: str, body: IncidentPatch,
                    identity: Identity = Depends(require_identity),
                    service: IncidentService = Depends(get_incident_service)):
    try:
        return service.patch_incident(
            incident_id, identity.member_id, body.model_dump(exclude_unset=True),
        )
    except DOMAIN_ERRORS as exc:
        raise HTTPException(status_code=status_for(exc), detail=str(exc))


@router.delete("/incidents/{incident_id}")
def delete_incident(incident_id: str,
                    identity: Identity = Depends(require_identity),
                    service: IncidentService = Depends(get_incident_service)):
    try:
        return service.delete_incident(incident_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Incident not found")


@router.post("/incidents/{incident_id}/acknowledge", response_model=AcknowledgeResponse)
def acknowledge_incident(incident_id: str,
                         body: Optional[AcknowledgeRequest] = None,
                         session: Optional[Identity] = Depends(get_session),
                         service: IncidentService = Depends(get_incident_service)):
    """Accepts a session or an acknowledgment token with the member it speaks for."""
    body = body or AcknowledgeRequest()
    try:
        grant = authorize(AckRequest(session=session, token=body.token,
                                     member_id=body.member_id, channel=body.channel))
        incident, already = service.acknowledge_incident(incident_id, grant.member_id,
                                                         grant.channel)
    except DOMAIN_ERRORS as exc:
        raise HTTPException(status_code=status_for(exc), detail=str(exc))

    if not already:
        message = "Incident acknowledged"
    elif incident.status is IncidentStatus.RESOLVED:
        message = "Incident already resolved"
    else:
        message = "Incident already acknowledged"
    return AcknowledgeResponse(message=message, already_acknowledged=already,
                               incident=incident.model_dump())


@router.get("/incidents/{incident_id}/audit", response_model=IncidentAudit)
def get_incident_audit(incident_id: str,
                       identity: Identity = Depends(require_identity),
                       audit: AuditService = Depends(get_audit_service)):
    try:
        result = audit.get_incident_audit(incident_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Incident not found")
    return IncidentAudit(
        incident=result["incident"].model_dump(),
        audit_log=[
            AuditEntry(type=e["type"], timestamp=e["timestamp"], data=e["data"].model_dump())
            for e in result["audit_log"]
        ],
    )
