# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Assignment store reconciler.

Applies generated rotations to the assignment table with replace-in-range
semantics, and resolves duplicate rows at read time: for any
(schedule, date) the row created last is authoritative.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from oncall_core.core.config import settings
from oncall_core.core.logging import get_logger
from oncall_core.models.domain import Assignment
from oncall_core.repositories.assignment_repository import AssignmentRepository

logger = get_logger(__name__)


def select_authoritative(rows: Iterable[Assignment]) -> List[Assignment]:
    """One assignment per (schedule, date), the latest-created one, ordered by date."""
    current: Dict[Tuple[str, date], Assignment] = {}
    for row in rows:
        slot = (row.schedule_id, row.date)
        held = current.get(slot)
        if held is None or (row.created_at, row.id) > (held.created_at, held.id):
            current[slot] = row
    return [current[slot] for slot in sorted(current, key=lambda s: (s[1], s[0]))]


class AssignmentReconciler:
    def __init__(self, repo: AssignmentRepository, batch_size: Optional[int] = None):
        self._repo = repo
        self._batch_size = batch_size or settings.ASSIGNMENT_BATCH_SIZE

    def replace_range(self, schedule_id: str, start: date, end: date,
                      generated: Sequence[Tuple[date, str]],
                      clear_after: bool = False) -> int:
        """
        Replace every assignment of the schedule dated within [start, end].

        Entries outside the range are ignored so a caller can never clobber
        history it did not ask to touch. ``clear_after`` also drops stored
        rows past ``end``, for a rotation whose window got shorter.
        """
        entries = [(d, m) for d, m in generated if start <= d <= end]
        written = self._repo.replace_range(
            schedule_id, start, end, entries, batch_size=self._batch_size,
            clear_after=clear_after,
        )
        logger.info("Assignments replaced: schedule=%s range=%s..%s%s written=%d",
                    schedule_id, start.isoformat(), end.isoformat(),
                    " (cleared after)" if clear_after else "", written)
        return written

    def upsert_one(self, schedule_id: str, member_id: str, day: date) -> Assignment:
        assignment = self._repo.replace_day(schedule_id, member_id, day)
        logger.info("Assignment set: schedule=%s date=%s member=%s",
                    schedule_id, day.isoformat(), member_id)
        return assignment

    def current(self, schedule_id: Optional[str] = None, start: Optional[date] = None,
                end: Optional[date] = None,
                member_id: Optional[str] = None) -> List[Assignment]:
        """Authoritative assignments; the member filter applies after duplicates resolve."""
        rows = select_authoritative(
            self._repo.list_rows(schedule_id, start, end, member_id=member_id)
        )
        if member_id is not None:
            rows = [r for r in rows if r.member_id == member_id]
        return rows

    def on_day(self, schedule_id: str, day: date) -> Optional[Assignment]:
        rows = self.current(schedule_id, day, day)
        return rows[0] if rows else None
