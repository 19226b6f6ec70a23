# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection — wire repositories, clients and services.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException

from oncall_core.core.database import engine
from oncall_core.models.domain import Identity
from oncall_core.repositories import (
    AssignmentRepository, IncidentRepository, ScheduleRepository,
)
from oncall_core.services.audit_timeline import AuditService
from oncall_core.services.auth_client import AuthClient
from oncall_core.services.directory_client import DirectoryClient
from oncall_core.services.incident_service import IncidentService
from oncall_core.services.reconciler import AssignmentReconciler
from oncall_core.services.schedule_service import ScheduleService

# ── Singleton repository instances ──
_schedule_repo = ScheduleRepository(engine)
_assignment_repo = AssignmentRepository(engine)
_incident_repo = IncidentRepository(engine)

# ── Outbound clients ──
_auth_client = AuthClient()
_directory_client = DirectoryClient()

# ── Service instances (with injected dependencies) ──
_reconciler = AssignmentReconciler(_assignment_repo)
_schedule_service = ScheduleService(
    schedule_repo=_schedule_repo,
    assignment_repo=_assignment_repo,
    reconciler=_reconciler,
    directory=_directory_client,
)
_incident_service = IncidentService(_incident_repo, _directory_client)
_audit_service = AuditService(_incident_repo)


# ── FastAPI dependency functions ──
def get_schedule_service() -> ScheduleService:
    return _schedule_service


def get_incident_service() -> IncidentService:
    return _incident_service


def get_audit_service() -> AuditService:
    return _audit_service


def get_incident_repo() -> IncidentRepository:
    return _incident_repo


def get_auth_client() -> AuthClient:
    return _auth_client


# ── Caller identity ──
def get_session(
    authorization: Optional[str] = Header(default=None),
    auth: AuthClient = Depends(get_auth_client),
) -> Optional[Identity]:
    """Verified session, or None. Used where other proofs are also accepted."""
    return auth.verify(authorization)


def require_identity(session: Optional[Identity] = Depends(get_session)) -> Identity:
    if session is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return session
