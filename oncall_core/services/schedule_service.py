# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule management — business logic for schedules and assignments.
Coordinates repository writes with rotation generation, metrics and logging.

Schedule metadata is committed first; assignment generation runs after it
and its failures are reported in the result instead of undoing the schedule.
"""

import uuid
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from oncall_core.core.clock import today, utcnow
from oncall_core.core.config import settings
from oncall_core.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from oncall_core.core.logging import get_logger
from oncall_core.metrics.prometheus import (
    ASSIGNMENT_SOFT_FAILURES, ASSIGNMENTS_GENERATED, SCHEDULES_CREATED,
)
from oncall_core.models.domain import (
    Assignment, AssignmentsStatus, RotationUnit, Schedule, ScheduleResult,
)
from oncall_core.repositories.assignment_repository import AssignmentRepository
from oncall_core.repositories.schedule_repository import ScheduleRepository
from oncall_core.services.directory_client import DirectoryClient
from oncall_core.services.reconciler import AssignmentReconciler
from oncall_core.services.rotation import generate, member_on, period_days

logger = get_logger(__name__)

EDITABLE_FIELDS = (
    "name", "description", "frequency", "unit", "start_date", "end_date",
    "timezone", "members",
)
NON_NULLABLE_FIELDS = ("name", "frequency", "unit", "start_date", "timezone")


class ScheduleService:
    """Business logic for on-call schedules and their daily assignments."""

    def __init__(
        self,
        schedule_repo: ScheduleRepository,
        assignment_repo: AssignmentRepository,
        reconciler: AssignmentReconciler,
        directory: DirectoryClient,
        horizon_days: Optional[int] = None,
    ) -> None:
        self._schedules = schedule_repo
        self._assignments = assignment_repo
        self._reconciler = reconciler
        self._directory = directory
        self._horizon = horizon_days or settings.ASSIGNMENT_HORIZON_DAYS

    # ── Commands ──

    def create_schedule(
        self,
        actor_id: str,
        name: str,
        team_id: str,
        frequency: int,
        unit: str,
        start_date: date,
        end_date: Optional[date] = None,
        members: Optional[List[str]] = None,
        description: Optional[str] = None,
        timezone: str = "UTC",
    ) -> ScheduleResult:
        """Create a schedule and prefill its rotation. Raises InvalidInputError / ForbiddenError."""
        if not name or not team_id or start_date is None:
            raise InvalidInputError("name, team_id and start_date are required")
        period_days(frequency, unit)
        self._require_admin(actor_id, team_id)

        schedule = Schedule(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            team_id=team_id,
            frequency=frequency,
            unit=RotationUnit(unit),
            start_date=start_date,
            end_date=end_date,
            timezone=timezone or "UTC",
            members=list(members or []),
            rotation_anchor=start_date,
            created_at=utcnow(),
        )
        self._schedules.create(schedule)
        SCHEDULES_CREATED.inc()
        logger.info("Schedule created: id=%s team=%s members=%d",
                    schedule.id, team_id, len(schedule.members),
                    extra={"schedule_id": schedule.id})

        if not schedule.members:
            status = AssignmentsStatus(state="skipped", reason="no members supplied")
        else:
            end = end_date or start_date + timedelta(days=self._horizon)
            status = self._regenerate(schedule, start_date, end, trigger="create")
        return ScheduleResult(schedule=schedule, assignments_status=status)

    def update_schedule(self, actor_id: str, schedule_id: str,
                        changes: Dict[str, Any]) -> ScheduleResult:
        """
        Partially update a schedule. Only EDITABLE_FIELDS are applied.

        When the cadence or roster actually changes, assignments from today
        forward are regenerated and the rotation is re-anchored there; earlier
        ones are kept as the record of who served. Stored rows past the new
        window are dropped.
        """
        current = self._get_or_raise(schedule_id)
        self._require_admin(actor_id, current.team_id)

        values = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        for field in NON_NULLABLE_FIELDS:
            if field in values and values[field] is None:
                raise InvalidInputError(f"{field} cannot be cleared")
        if "name" in values and not values["name"]:
            raise InvalidInputError("name cannot be empty")
        start_date = values.get("start_date", current.start_date)
        end_date = values.get("end_date", current.end_date)
        if end_date is not None and end_date < start_date:
            raise InvalidInputError("end_date cannot be before start_date")
        frequency = values.get("frequency", current.frequency)
        unit = values.get("unit", current.unit)
        period_days(frequency, unit)
        if "unit" in values:
            values["unit"] = RotationUnit(values["unit"])
        if "members" in values:
            values["members"] = list(values["members"] or [])

        cadence_changed = (frequency, RotationUnit(unit)) != (current.frequency, current.unit)
        roster_changed = "members" in values and values["members"] != current.members
        members = values.get("members", current.members)
        regenerate = (cadence_changed or roster_changed) and bool(members)
        if regenerate:
            values["rotation_anchor"] = max(today(), start_date)

        values["updated_at"] = utcnow()
        schedule = self._schedules.update(schedule_id, values)
        logger.info("Schedule updated: id=%s fields=%s", schedule_id,
                    sorted(k for k in values if k != "updated_at"))

        if not (cadence_changed or roster_changed):
            status = AssignmentsStatus(state="skipped", reason="cadence and roster unchanged")
        elif not regenerate:
            status = AssignmentsStatus(state="skipped", reason="schedule has no members")
        else:
            start = schedule.anchor
            end = schedule.end_date or start + timedelta(days=self._horizon)
            status = self._regenerate(schedule, start, end, trigger="update",
                                      clear_after=True)
        return ScheduleResult(schedule=schedule, assignments_status=status)

    def delete_schedule(self, actor_id: str, schedule_id: str) -> Dict[str, Any]:
        schedule = self._get_or_raise(schedule_id)
        self._require_admin(actor_id, schedule.team_id)
        removed = self._schedules.delete(schedule_id)
        logger.info("Schedule deleted: id=%s assignments_removed=%d", schedule_id, removed)
        return {"status": "deleted", "id": schedule_id, "assignments_removed": removed}

    def upsert_assignment(self, actor_id: str, schedule_id: str, member_id: str,
                          day: date) -> Assignment:
        """Make ``member_id`` the on-call for ``day``, replacing whoever held it."""
        if not member_id or day is None:
            raise InvalidInputError("member_id and date are required")
        schedule = self._get_or_raise(schedule_id)
        self._require_admin(actor_id, schedule.team_id)
        return self._reconciler.upsert_one(schedule_id, member_id, day)

    def delete_assignment(self, actor_id: str, assignment_id: str) -> Dict[str, str]:
        assignment = self._assignments.get(assignment_id)
        if assignment is None:
            raise NotFoundError(f"Assignment {assignment_id} not found")
        schedule = self._get_or_raise(assignment.schedule_id)
        self._require_admin(actor_id, schedule.team_id)
        self._assignments.delete(assignment_id)
        logger.info("Assignment deleted: id=%s schedule=%s", assignment_id, schedule.id)
        return {"status": "deleted", "id": assignment_id}

    # ── Queries ──

    def get_schedule(self, schedule_id: str) -> Schedule:
        return self._get_or_raise(schedule_id)

    def list_schedules(self, team_id: Optional[str] = None, member_id: Optional[str] = None,
                       start: Optional[date] = None,
                       end: Optional[date] = None) -> List[Schedule]:
        """
        Schedules, newest first. A member or date filter keeps only schedules
        holding a matching assignment; with dates alone any assignment counts.
        """
        found = self._schedules.list(team_id)
        if member_id is None and start is None and end is None:
            return found
        holding = {a.schedule_id for a in
                   self._reconciler.current(None, start, end, member_id=member_id)}
        return [s for s in found if s.id in holding]

    def list_assignments(self, schedule_id: Optional[str] = None,
                         start: Optional[date] = None, end: Optional[date] = None,
                         member_id: Optional[str] = None) -> List[Assignment]:
        """Filter by schedule, member, or both; at least one is required."""
        if schedule_id is None and member_id is None:
            raise InvalidInputError("schedule_id or member_id is required")
        if schedule_id is not None:
            self._get_or_raise(schedule_id)
        return self._reconciler.current(schedule_id, start, end, member_id=member_id)

    def current_oncall(self, schedule_id: str, day: Optional[date] = None) -> Dict[str, Any]:
        """
        Who holds the schedule on ``day``. A stored assignment wins; otherwise
        the rotation is computed from the roster when the day is in range.
        """
        schedule = self._get_or_raise(schedule_id)
        day = day or today()
        result: Dict[str, Any] = {"schedule_id": schedule_id, "date": day,
                                  "member_id": None, "source": None}

        assignment = self._reconciler.on_day(schedule_id, day)
        if assignment is not None:
            result.update(member_id=assignment.member_id, source="assignment")
        elif (schedule.members and day >= schedule.start_date
              and (schedule.end_date is None or day <= schedule.end_date)):
            result.update(
                member_id=member_on(schedule.members, schedule.anchor, day,
                                    schedule.cadence),
                source="rotation",
            )
        return result

    # ── Internal ──

    def _regenerate(self, schedule: Schedule, start: date, end: date,
                    trigger: str, clear_after: bool = False) -> AssignmentsStatus:
        try:
            entries = generate(schedule.members, start, end,
                               schedule.frequency, schedule.unit)
            written = self._reconciler.replace_range(schedule.id, start, end, entries,
                                                     clear_after=clear_after)
        except Exception as exc:
            ASSIGNMENT_SOFT_FAILURES.labels(trigger=trigger).inc()
            logger.warning("Assignment generation failed: schedule=%s trigger=%s",
                           schedule.id, trigger, exc_info=True)
            return AssignmentsStatus(state="partial_failure", reason=str(exc))
        ASSIGNMENTS_GENERATED.labels(trigger=trigger).inc(written)
        return AssignmentsStatus(state="ok", generated=written)

    def _get_or_raise(self, schedule_id: str) -> Schedule:
        schedule = self._schedules.get(schedule_id)
        if schedule is None:
            raise NotFoundError(f"Schedule {schedule_id} not found")
        return schedule

    def _require_admin(self, actor_id: str, team_id: str) -> None:
        if self._directory.team_role(team_id, actor_id) != "admin":
            raise ForbiddenError(
                f"Member {actor_id} is not an admin of team {team_id}"
            )
