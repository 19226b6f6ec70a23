# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Incident lifecycle state machine — pure computation, no I/O.

    open ─► acknowledged ─► resolved
    open ─────────────────► resolved   (acknowledgment is not required)

``transition`` takes the current incident and a proposed patch and returns
the field changes plus the audit records they imply. The caller persists
both together. Rules are evaluated in this order:

  1. acknowledge  — proposed acknowledged, current is not
  2. resolve      — proposed resolved, current is not
  3. status diff  — any status difference gets a STATUS_CHANGE record
  4. assignee     — any assignee difference gets an ASSIGNMENT_CHANGE record
  5. field edits  — allow-listed fields are applied, everything else dropped
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from oncall_core.core.clock import ensure_utc
from oncall_core.core.errors import InvalidInputError, InvalidTransitionError
from oncall_core.models.domain import (
    VALID_SEVERITIES, AckChannel, Incident, IncidentStatus, UpdateType,
)

PATCHABLE_FIELDS = (
    "title", "description", "status", "severity", "assignee_id", "service_id",
    "resolved_at",
)

# Applied verbatim by rule 5. status and resolved_at go through rules 1-3.
_PLAIN_EDITS = ("title", "description", "severity", "assignee_id", "service_id")

NameLookup = Callable[[str], Optional[str]]


@dataclass
class PendingUpdate:
    type: UpdateType
    message: str


@dataclass
class Transition:
    changes: Dict[str, Any] = field(default_factory=dict)
    updates: List[PendingUpdate] = field(default_factory=list)
    # Set when rule 1 fires: an IncidentAcknowledgment row must be written.
    acknowledged_via: Optional[AckChannel] = None
    # Patch keys dropped because they would move the status backwards.
    ignored: List[str] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.changes and not self.updates

    def update_types(self) -> List[UpdateType]:
        return [u.type for u in self.updates]


def sanitize_patch(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep allow-listed fields only. Unknown fields are dropped, not rejected."""
    return {k: raw[k] for k in PATCHABLE_FIELDS if k in raw}


def _parse_status(value: Any) -> IncidentStatus:
    try:
        return IncidentStatus(value)
    except ValueError:
        valid = [s.value for s in IncidentStatus]
        raise InvalidInputError(f"status must be one of {valid}, got '{value}'")


def _label(member_id: Optional[str], names: NameLookup) -> str:
    if not member_id:
        return "unassigned"
    return names(member_id) or member_id


def transition(
    current: Incident,
    patch: Mapping[str, Any],
    actor_id: str,
    now: datetime,
    channel: AckChannel = AckChannel.WEB,
    names: Optional[NameLookup] = None,
    strict: bool = True,
) -> Transition:
    """
    Compute the effect of ``patch`` on ``current``.

    Backward status moves raise InvalidTransitionError when ``strict``;
    otherwise the status edit is ignored and the rest of the patch applies.
    """
    names = names or (lambda _member_id: None)
    edits = sanitize_patch(patch)
    result = Transition()

    proposed: Optional[IncidentStatus] = None
    if edits.get("status") is not None:
        proposed = _parse_status(edits["status"])
        if proposed.rank < current.status.rank:
            if strict:
                raise InvalidTransitionError(
                    f"Cannot move incident from '{current.status.value}' "
                    f"back to '{proposed.value}'"
                )
            result.ignored.append("status")
            proposed = None

    if "severity" in edits and edits["severity"] not in VALID_SEVERITIES:
        raise InvalidInputError(f"severity must be one of {VALID_SEVERITIES}")
    if "title" in edits and not edits["title"]:
        raise InvalidInputError("title cannot be empty")

    actor_name = _label(actor_id, names)

    # 1. acknowledge
    if proposed is IncidentStatus.ACKNOWLEDGED and current.status is not IncidentStatus.ACKNOWLEDGED:
        result.changes["acknowledged_at"] = now
        result.changes["acknowledged_by_id"] = actor_id
        result.acknowledged_via = AckChannel(channel)
        result.updates.append(PendingUpdate(
            UpdateType.ACKNOWLEDGMENT,
            f"Incident acknowledged by {actor_name} via {AckChannel(channel).value}",
        ))

    # 2. resolve
    if proposed is IncidentStatus.RESOLVED and current.status is not IncidentStatus.RESOLVED:
        resolved_at = ensure_utc(edits.get("resolved_at")) or now
        result.changes["resolved_at"] = resolved_at
        result.updates.append(PendingUpdate(
            UpdateType.RESOLUTION, f"Incident resolved by {actor_name}",
        ))

    # 3. status diff
    if proposed is not None and proposed is not current.status:
        result.changes["status"] = proposed
        result.updates.append(PendingUpdate(
            UpdateType.STATUS_CHANGE,
            f"Status changed from {current.status.value} to {proposed.value}",
        ))

    # 4. assignee diff
    if "assignee_id" in edits and edits["assignee_id"] != current.assignee_id:
        result.updates.append(PendingUpdate(
            UpdateType.ASSIGNMENT_CHANGE,
            f"Assignee changed from {_label(current.assignee_id, names)} "
            f"to {_label(edits['assignee_id'], names)}",
        ))

    # 5. plain field edits
    for key in _PLAIN_EDITS:
        if key in edits and edits[key] != getattr(current, key):
            result.changes[key] = edits[key]

    if result.changes:
        result.changes["updated_at"] = now
    return result
