# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Repository package — re-exports the table-backed repositories."""
from oncall_core.repositories.assignment_repository import AssignmentRepository
from oncall_core.repositories.incident_repository import IncidentRepository
from oncall_core.repositories.schedule_repository import ScheduleRepository

__all__ = ["AssignmentRepository", "IncidentRepository", "ScheduleRepository"]
