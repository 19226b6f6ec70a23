# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Business logic for the incident lifecycle."""
import uuid
from typing import Any, Dict, List, Mapping, Optional, Tuple

from oncall_core.core.clock import utcnow
from oncall_core.core.config import settings
from oncall_core.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from oncall_core.core.logging import get_logger
from oncall_core.metrics.prometheus import (
    ACKNOWLEDGMENTS, INCIDENT_TRANSITIONS, INCIDENTS_CREATED, TIME_TO_ACKNOWLEDGE,
    TIME_TO_RESOLVE,
)
from oncall_core.models.domain import (
    VALID_SEVERITIES, AckChannel, Incident, IncidentAcknowledgment, IncidentStatus,
    IncidentUpdate, UpdateType,
)
from oncall_core.repositories.incident_repository import IncidentRepository
from oncall_core.services.directory_client import DirectoryClient
from oncall_core.services.incident_state import transition

logger = get_logger(__name__)


class IncidentService:
    def __init__(self, repo: IncidentRepository, directory: DirectoryClient,
                 strict_transitions: Optional[bool] = None):
        self._repo = repo
        self._directory = directory
        self._strict = (settings.STRICT_TRANSITIONS if strict_transitions is None
                        else strict_transitions)

    def create_incident(self, actor_id: str, title: str, team_id: str,
                        description: Optional[str] = None, severity: str = "unknown",
                        service_id: Optional[str] = None,
                        assignee_id: Optional[str] = None) -> Incident:
        if not title or not team_id:
            raise InvalidInputError("Title and team ID are required")
        severity = (severity or "unknown").lower()
        if severity not in VALID_SEVERITIES:
            raise InvalidInputError(f"severity must be one of {VALID_SEVERITIES}")
        if self._directory.team_role(team_id, actor_id) is None:
            raise ForbiddenError(f"Member {actor_id} is not a member of team {team_id}")

        now = utcnow()
        incident = Incident(
            id=str(uuid.uuid4()), title=title, description=description,
            severity=severity, status=IncidentStatus.OPEN, team_id=team_id,
            service_id=service_id or None, created_by_id=actor_id,
            assignee_id=assignee_id or None, created_at=now, updated_at=now,
        )
        created = IncidentUpdate(
            id=str(uuid.uuid4()), incident_id=incident.id, member_id=actor_id,
            message=f"Incident created by {self._directory.display_name(actor_id) or actor_id}",
            type=UpdateType.CREATED, created_at=now,
        )
        self._repo.create(incident, created)
        INCIDENTS_CREATED.labels(severity=severity).inc()
        logger.info("Incident created id=%s team=%s severity=%s", incident.id, team_id, severity,
                    extra={"incident_id": incident.id})
        return incident

    def get_incident(self, incident_id: str) -> Incident:
        incident = self._repo.get(incident_id)
        if incident is None:
            raise NotFoundError(f"Incident {incident_id} not found")
        return incident

    def list_incidents(self, actor_id: str, team_id: Optional[str] = None,
                       status: Optional[str] = None) -> List[Incident]:
        """Without a team filter, only incidents of the caller's teams are listed."""
        team_ids = [team_id] if team_id else self._directory.team_ids_for(actor_id)
        return self._repo.list(team_ids=team_ids, status=status)

    def delete_incident(self, incident_id: str) -> Dict[str, str]:
        if not self._repo.delete(incident_id):
            raise NotFoundError(f"Incident {incident_id} not found")
        logger.info("Incident deleted id=%s", incident_id)
        return {"status": "deleted", "id": incident_id}

    def patch_incident(self, incident_id: str, actor_id: str,
                       proposed: Mapping[str, Any],
                       channel: AckChannel = AckChannel.WEB) -> Incident:
        current = self.get_incident(incident_id)
        now = utcnow()
        result = transition(current, proposed, actor_id, now, channel=channel,
                            names=self._directory.display_name, strict=self._strict)
        if result.ignored:
            logger.info("Backward status move ignored incident=%s from=%s to=%s",
                        incident_id, current.status.value, proposed.get("status"))
        if result.is_noop:
            return current

        updates = [
            IncidentUpdate(id=str(uuid.uuid4()), incident_id=incident_id, member_id=actor_id,
                           message=u.message, type=u.type, created_at=now)
            for u in result.updates
        ]
        acknowledgments = []
        if result.acknowledged_via is not None:
            acknowledgments.append(IncidentAcknowledgment(
                id=str(uuid.uuid4()), incident_id=incident_id, member_id=actor_id,
                channel=result.acknowledged_via, acknowledged_at=now,
            ))

        incident = self._repo.apply_transition(incident_id, result.changes, updates,
                                               acknowledgments)
        self._observe(current, incident, result.acknowledged_via)
        return incident

    def acknowledge_incident(self, incident_id: str, member_id: str,
                             channel: AckChannel = AckChannel.WEB) -> Tuple[Incident, bool]:
        """
        Acknowledge on behalf of an already-authorized member.
        Returns (incident, already_acknowledged); repeating is not an error.
        """
        current = self.get_incident(incident_id)
        if current.status is IncidentStatus.ACKNOWLEDGED:
            return current, True
        if current.status is IncidentStatus.RESOLVED and not self._strict:
            return current, True
        incident = self.patch_incident(incident_id, member_id,
                                       {"status": IncidentStatus.ACKNOWLEDGED.value}, channel)
        return incident, False

    # ── Internal ──

    def _observe(self, before: Incident, after: Incident,
                 acknowledged_via: Optional[AckChannel]) -> None:
        if before.status is not after.status:
            INCIDENT_TRANSITIONS.labels(from_status=before.status.value,
                                        to_status=after.status.value).inc()
            logger.info("Incident transition id=%s %s -> %s",
                        after.id, before.status.value, after.status.value,
                        extra={"incident_id": after.id})
        if acknowledged_via is not None:
            ACKNOWLEDGMENTS.labels(channel=acknowledged_via.value).inc()
            if after.acknowledged_at:
                TIME_TO_ACKNOWLEDGE.observe(
                    (after.acknowledged_at - before.created_at).total_seconds())
        if before.resolved_at is None and after.resolved_at is not None:
            TIME_TO_RESOLVE.observe((after.resolved_at - before.created_at).total_seconds())
