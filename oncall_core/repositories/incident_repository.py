# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for incidents, their updates, acknowledgments and paging logs."""
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, func, insert, select, text, update
from sqlalchemy.engine import Engine

from oncall_core.core.clock import ensure_utc
from oncall_core.models.domain import (
    EscalationLog, Incident, IncidentAcknowledgment, IncidentUpdate, NotificationLog,
)
from oncall_core.repositories.tables import (
    escalation_logs, incident_acknowledgments, incident_updates, incidents,
    notification_logs, to_row,
)


_INCIDENT_TIMESTAMPS = ("created_at", "updated_at", "acknowledged_at", "resolved_at")


def _row_to_incident(row) -> Incident:
    data = dict(row._mapping)
    for col in _INCIDENT_TIMESTAMPS:
        data[col] = ensure_utc(data[col])
    return Incident(**data)


def _row_to_model(row, model, ts_col: str):
    data = dict(row._mapping)
    data[ts_col] = ensure_utc(data[ts_col])
    return model(**data)


class IncidentRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──────────────────────────────────────────────────────────

    def create(self, incident: Incident, created_update: IncidentUpdate) -> Incident:
        with self._engine.begin() as conn:
            conn.execute(insert(incidents).values(**to_row(incident.model_dump())))
            conn.execute(insert(incident_updates).values(**to_row(created_update.model_dump())))
        return incident

    def apply_transition(self, incident_id: str, changes: Dict[str, Any],
                         updates: Sequence[IncidentUpdate],
                         acknowledgments: Sequence[IncidentAcknowledgment]) -> Incident:
        """Persist field changes plus their audit records in one transaction."""
        with self._engine.begin() as conn:
            for ack in acknowledgments:
                conn.execute(insert(incident_acknowledgments).values(**to_row(ack.model_dump())))
            for upd in updates:
                conn.execute(insert(incident_updates).values(**to_row(upd.model_dump())))
            if changes:
                conn.execute(
                    update(incidents).where(incidents.c.id == incident_id).values(**to_row(changes))
                )
            row = conn.execute(
                select(incidents).where(incidents.c.id == incident_id)
            ).fetchone()
        return _row_to_incident(row)

    def delete(self, incident_id: str) -> bool:
        with self._engine.begin() as conn:
            conn.execute(delete(incident_acknowledgments)
                         .where(incident_acknowledgments.c.incident_id == incident_id))
            conn.execute(delete(incident_updates)
                         .where(incident_updates.c.incident_id == incident_id))
            removed = conn.execute(
                delete(incidents).where(incidents.c.id == incident_id)
            ).rowcount
        return bool(removed)

    # ── Read ───────────────────────────────────────────────────────────

    def get(self, incident_id: str) -> Optional[Incident]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(incidents).where(incidents.c.id == incident_id)
            ).fetchone()
        return _row_to_incident(row) if row else None

    def list(self, team_ids: Optional[Sequence[str]] = None,
             status: Optional[str] = None) -> List[Incident]:
        query = select(incidents).order_by(incidents.c.created_at.desc())
        if team_ids is not None:
            query = query.where(incidents.c.team_id.in_(list(team_ids)))
        if status:
            query = query.where(incidents.c.status == status)
        with self._engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_incident(r) for r in rows]

    def list_updates(self, incident_id: str) -> List[IncidentUpdate]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(incident_updates)
                .where(incident_updates.c.incident_id == incident_id)
                .order_by(incident_updates.c.created_at.desc())
            ).fetchall()
        return [_row_to_model(r, IncidentUpdate, "created_at") for r in rows]

    def list_acknowledgments(self, incident_id: str) -> List[IncidentAcknowledgment]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(incident_acknowledgments)
                .where(incident_acknowledgments.c.incident_id == incident_id)
                .order_by(incident_acknowledgments.c.acknowledged_at.desc())
            ).fetchall()
        return [_row_to_model(r, IncidentAcknowledgment, "acknowledged_at") for r in rows]

    def list_notifications(self, incident_id: str) -> List[NotificationLog]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(notification_logs)
                .where(notification_logs.c.incident_id == incident_id)
                .order_by(notification_logs.c.sent_at.desc())
            ).fetchall()
        return [_row_to_model(r, NotificationLog, "sent_at") for r in rows]

    def list_escalations(self, incident_id: str) -> List[EscalationLog]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(escalation_logs)
                .where(escalation_logs.c.incident_id == incident_id)
                .order_by(escalation_logs.c.triggered_at.desc())
            ).fetchall()
        return [_row_to_model(r, EscalationLog, "triggered_at") for r in rows]

    def count_by_status(self) -> Dict[str, int]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(incidents.c.status, func.count()).group_by(incidents.c.status)
            ).fetchall()
        return {r[0]: r[1] for r in rows}

    def verify_connection(self):
        with self._engine.connect() as conn:
            conn.execute(text("SELECT 1"))
