# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Schedule data access.
Encapsulates all read/write operations on the schedules table.
NO business rules here — pure CRUD.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine

from oncall_core.core.clock import ensure_utc
from oncall_core.models.domain import Schedule
from oncall_core.repositories.tables import assignments, schedules, to_row


def _row_to_schedule(row) -> Schedule:
    data = dict(row._mapping)
    data["created_at"] = ensure_utc(data["created_at"])
    data["updated_at"] = ensure_utc(data["updated_at"])
    data["members"] = list(data["members"] or [])
    return Schedule(**data)


class ScheduleRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Read ──

    def get(self, schedule_id: str) -> Optional[Schedule]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(schedules).where(schedules.c.id == schedule_id)
            ).fetchone()
        return _row_to_schedule(row) if row else None

    def list(self, team_id: Optional[str] = None) -> List[Schedule]:
        query = select(schedules).order_by(schedules.c.created_at.desc())
        if team_id:
            query = query.where(schedules.c.team_id == team_id)
        with self._engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_schedule(r) for r in rows]

    # ── Write ──

    def create(self, schedule: Schedule) -> Schedule:
        with self._engine.begin() as conn:
            conn.execute(insert(schedules).values(**to_row(schedule.model_dump())))
        return schedule

    def update(self, schedule_id: str, values: Dict[str, Any]) -> Optional[Schedule]:
        with self._engine.begin() as conn:
            if values:
                conn.execute(
                    update(schedules).where(schedules.c.id == schedule_id).values(**to_row(values))
                )
            row = conn.execute(
                select(schedules).where(schedules.c.id == schedule_id)
            ).fetchone()
        return _row_to_schedule(row) if row else None

    def delete(self, schedule_id: str) -> int:
        """Delete the schedule and every assignment it owns. Returns assignments removed."""
        with self._engine.begin() as conn:
            removed = conn.execute(
                delete(assignments).where(assignments.c.schedule_id == schedule_id)
            ).rowcount
            conn.execute(delete(schedules).where(schedules.c.id == schedule_id))
        return removed or 0
