# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Audit timeline aggregation.

Merges the four per-incident event streams into one list, newest first.
Entries are never deduplicated across streams: an acknowledgment shows up
both as its acknowledgment row and as the ACKNOWLEDGMENT update written
beside it.
"""

from typing import Any, Dict, List, Sequence

from oncall_core.core.errors import NotFoundError
from oncall_core.models.domain import (
    EscalationLog, IncidentAcknowledgment, IncidentUpdate, NotificationLog,
)
from oncall_core.repositories.incident_repository import IncidentRepository

# stream type -> timestamp attribute
TIMESTAMP_FIELDS = {
    "update": "created_at",
    "notification": "sent_at",
    "escalation": "triggered_at",
    "acknowledgment": "acknowledged_at",
}


def merge_timeline(
    updates: Sequence[IncidentUpdate],
    notifications: Sequence[NotificationLog],
    escalations: Sequence[EscalationLog],
    acknowledgments: Sequence[IncidentAcknowledgment],
) -> List[Dict[str, Any]]:
    entries: List[Dict[str, Any]] = []
    for entry_type, items in (
        ("update", updates),
        ("notification", notifications),
        ("escalation", escalations),
        ("acknowledgment", acknowledgments),
    ):
        ts_field = TIMESTAMP_FIELDS[entry_type]
        entries.extend(
            {"type": entry_type, "timestamp": getattr(item, ts_field), "data": item}
            for item in items
        )
    entries.sort(key=lambda e: e["timestamp"], reverse=True)
    return entries


class AuditService:
    def __init__(self, repo: IncidentRepository):
        self._repo = repo

    def get_incident_audit(self, incident_id: str) -> Dict[str, Any]:
        incident = self._repo.get(incident_id)
        if incident is None:
            raise NotFoundError(f"Incident {incident_id} not found")
        audit_log = merge_timeline(
            self._repo.list_updates(incident_id),
            self._repo.list_notifications(incident_id),
            self._repo.list_escalations(incident_id),
            self._repo.list_acknowledgments(incident_id),
        )
        return {"incident": incident, "audit_log": audit_log}
