# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Assignment data access.
Raw rows only; duplicate resolution happens in the reconciler.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, exists, insert, select, true
from sqlalchemy.engine import Engine

from oncall_core.core.clock import ensure_utc, utcnow
from oncall_core.models.domain import Assignment
from oncall_core.repositories.tables import assignments


def _row_to_assignment(row) -> Assignment:
    data = dict(row._mapping)
    data["created_at"] = ensure_utc(data["created_at"])
    return Assignment(**data)


def _in_range(schedule_id: Optional[str], start: Optional[date], end: Optional[date]):
    conditions = []
    if schedule_id is not None:
        conditions.append(assignments.c.schedule_id == schedule_id)
    if start is not None:
        conditions.append(assignments.c.date >= start)
    if end is not None:
        conditions.append(assignments.c.date <= end)
    return and_(true(), *conditions)


def _slots_held_by(member_id: str):
    """Rows sharing a (schedule, date) slot with any row of ``member_id``."""
    mine = assignments.alias("mine")
    return exists().where(
        mine.c.schedule_id == assignments.c.schedule_id,
        mine.c.date == assignments.c.date,
        mine.c.member_id == member_id,
    )


class AssignmentRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Read ──

    def get(self, assignment_id: str) -> Optional[Assignment]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(assignments).where(assignments.c.id == assignment_id)
            ).fetchone()
        return _row_to_assignment(row) if row else None

    def list_rows(self, schedule_id: Optional[str] = None, start: Optional[date] = None,
                  end: Optional[date] = None,
                  member_id: Optional[str] = None) -> List[Assignment]:
        """
        Every stored row in range, duplicates included.

        With ``member_id`` the result holds every row of each slot the member
        appears in, so the caller can still tell whether a later row for the
        same slot superseded the member.
        """
        query = select(assignments).where(_in_range(schedule_id, start, end))
        if member_id is not None:
            query = query.where(_slots_held_by(member_id))
        with self._engine.connect() as conn:
            rows = conn.execute(
                query.order_by(assignments.c.date, assignments.c.schedule_id,
                               assignments.c.created_at)
            ).fetchall()
        return [_row_to_assignment(r) for r in rows]

    # ── Write ──

    def replace_range(self, schedule_id: str, start: date, end: date,
                      entries: Sequence[Tuple[date, str]], batch_size: int = 100,
                      created_at: Optional[datetime] = None,
                      clear_after: bool = False) -> int:
        """
        Delete rows in [start, end] and insert ``entries`` in one transaction.

        With ``clear_after`` every row dated ``start`` or later is deleted,
        including those beyond ``end``.
        """
        created_at = created_at or utcnow()
        cleared = _in_range(schedule_id, start, None if clear_after else end)
        with self._engine.begin() as conn:
            conn.execute(delete(assignments).where(cleared))
            for i in range(0, len(entries), batch_size):
                batch = entries[i:i + batch_size]
                conn.execute(
                    insert(assignments),
                    [
                        {"id": str(uuid.uuid4()), "schedule_id": schedule_id,
                         "member_id": member_id, "date": day, "created_at": created_at}
                        for day, member_id in batch
                    ],
                )
        return len(entries)

    def replace_day(self, schedule_id: str, member_id: str, day: date) -> Assignment:
        assignment = Assignment(
            id=str(uuid.uuid4()), schedule_id=schedule_id, member_id=member_id,
            date=day, created_at=utcnow(),
        )
        with self._engine.begin() as conn:
            conn.execute(delete(assignments).where(_in_range(schedule_id, day, day)))
            conn.execute(insert(assignments).values(**assignment.model_dump()))
        return assignment

    def delete(self, assignment_id: str) -> bool:
        with self._engine.begin() as conn:
            removed = conn.execute(
                delete(assignments).where(assignments.c.id == assignment_id)
            ).rowcount
        return bool(removed)
