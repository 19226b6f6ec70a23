# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation logic — pure computation, no side effects.

Maps a roster, a cadence and a date range to one on-call member per
calendar day. Day arithmetic only: no instants, no timezones.
"""

from datetime import date, timedelta
from typing import Sequence, Union

from oncall_core.core.errors import InvalidInputError, InvalidRosterError
from oncall_core.models.domain import Cadence, RotationUnit

# Monthly rotations use a flat month, not calendar months. Callers rely on
# the exact day count, so this stays an approximation.
MONTH_APPROXIMATION_DAYS = 30

DAYS_PER_UNIT: dict[RotationUnit, int] = {
    RotationUnit.DAILY: 1,
    RotationUnit.WEEKLY: 7,
    RotationUnit.BIWEEKLY: 14,
    RotationUnit.MONTHLY: MONTH_APPROXIMATION_DAYS,
}


def _coerce_unit(unit: Union[RotationUnit, str]) -> RotationUnit:
    try:
        return RotationUnit(unit)
    except ValueError:
        valid = [u.value for u in RotationUnit]
        raise InvalidInputError(f"rotation unit must be one of {valid}, got '{unit}'")


def period_days(frequency: int, unit: Union[RotationUnit, str]) -> int:
    """Length of one rotation period in days."""
    if frequency is None or int(frequency) <= 0:
        raise InvalidInputError("rotation frequency must be a positive integer")
    return int(frequency) * DAYS_PER_UNIT[_coerce_unit(unit)]


def member_on(
    roster: Sequence[str],
    anchor: date,
    day: date,
    cadence: Cadence,
) -> str:
    """Member in control on ``day`` for a rotation anchored at ``anchor``."""
    if not roster:
        raise InvalidRosterError("rotation roster must contain at least one member")
    period = period_days(cadence.frequency, cadence.unit)
    index = ((day - anchor).days // period) % len(roster)
    return roster[index]


def generate(
    roster: Sequence[str],
    start: date,
    end: date,
    frequency: int,
    unit: Union[RotationUnit, str],
) -> list[tuple[date, str]]:
    """
    Return one (date, member_id) pair per calendar day in [start, end].

    Raises InvalidRosterError for an empty roster. An inverted range is not
    an error: it simply yields nothing.
    """
    if not roster:
        raise InvalidRosterError("rotation roster must contain at least one member")
    period = period_days(frequency, unit)
    members = list(roster)

    total_days = (end - start).days + 1
    return [
        (start + timedelta(days=offset), members[(offset // period) % len(members)])
        for offset in range(max(total_days, 0))
    ]
