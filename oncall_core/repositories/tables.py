# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Table definitions shared by every repository."""
from enum import Enum
from typing import Any, Dict

from sqlalchemy import (
    JSON, Column, Date, DateTime, ForeignKey, Index, Integer, MetaData, String,
    Table, Text,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

schedules = Table(
    "schedules", metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("team_id", String(255), nullable=False, index=True),
    Column("frequency", Integer, nullable=False),
    Column("unit", String(20), nullable=False),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date),
    Column("timezone", String(64), nullable=False, default="UTC"),
    Column("members", JSON, nullable=False, default=list),
    Column("rotation_anchor", Date),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True)),
)

# No unique constraint on (schedule_id, date): readers pick the latest row.
assignments = Table(
    "assignments", metadata,
    Column("id", String(36), primary_key=True),
    Column("schedule_id", String(36),
           ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False),
    Column("member_id", String(255), nullable=False),
    Column("date", Date, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_assignments_schedule_date", "schedule_id", "date"),
)

incidents = Table(
    "incidents", metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(500), nullable=False),
    Column("description", Text),
    Column("severity", String(20), nullable=False, default="unknown"),
    Column("status", String(20), nullable=False, default="open"),
    Column("team_id", String(255), nullable=False, index=True),
    Column("service_id", String(255)),
    Column("created_by_id", String(255), nullable=False),
    Column("assignee_id", String(255)),
    Column("acknowledged_by_id", String(255)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True)),
    Column("acknowledged_at", DateTime(timezone=True)),
    Column("resolved_at", DateTime(timezone=True)),
)

incident_updates = Table(
    "incident_updates", metadata,
    Column("id", String(36), primary_key=True),
    Column("incident_id", String(36),
           ForeignKey("incidents.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("member_id", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("type", String(32), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

incident_acknowledgments = Table(
    "incident_acknowledgments", metadata,
    Column("id", String(36), primary_key=True),
    Column("incident_id", String(36),
           ForeignKey("incidents.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("member_id", String(255), nullable=False),
    Column("channel", String(16), nullable=False),
    Column("acknowledged_at", DateTime(timezone=True), nullable=False),
)

# Owned by the paging subsystem.
notification_logs = Table(
    "notification_logs", metadata,
    Column("id", String(36), primary_key=True),
    Column("incident_id", String(36), nullable=False, index=True),
    Column("member_id", String(255)),
    Column("channel", String(32), nullable=False),
    Column("status", String(32), nullable=False),
    Column("sent_at", DateTime(timezone=True), nullable=False),
)

escalation_logs = Table(
    "escalation_logs", metadata,
    Column("id", String(36), primary_key=True),
    Column("incident_id", String(36), nullable=False, index=True),
    Column("level", Integer, nullable=False),
    Column("target_id", String(255)),
    Column("target_type", String(32)),
    Column("status", String(32), nullable=False),
    Column("triggered_at", DateTime(timezone=True), nullable=False),
)


def init_schema(engine: Engine) -> None:
    metadata.create_all(engine)


def to_row(values: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten enum members to their stored string values."""
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in values.items()}
