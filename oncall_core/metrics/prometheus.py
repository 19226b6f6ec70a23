# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics — single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "oncall_core_requests_total",
    "Total HTTP requests to the on-call core service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "oncall_core_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "oncall_core_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Rotation Metrics ──
SCHEDULES_CREATED = Counter(
    "oncall_core_schedules_created_total",
    "Total schedules created",
)
ASSIGNMENTS_GENERATED = Counter(
    "oncall_core_assignments_generated_total",
    "Total rotation assignments written by generation",
    ["trigger"],
)
ASSIGNMENT_SOFT_FAILURES = Counter(
    "oncall_core_assignment_soft_failures_total",
    "Assignment generation failures after the schedule change committed",
    ["trigger"],
)

# ── Incident Metrics ──
INCIDENTS_CREATED = Counter(
    "oncall_core_incidents_created_total",
    "Total incidents created",
    ["severity"],
)
INCIDENT_TRANSITIONS = Counter(
    "oncall_core_incident_transitions_total",
    "Incident status transitions",
    ["from_status", "to_status"],
)
ACKNOWLEDGMENTS = Counter(
    "oncall_core_acknowledgments_total",
    "Incident acknowledgments recorded",
    ["channel"],
)
AUTHORIZATION_FAILURES = Counter(
    "oncall_core_ack_authorization_failures_total",
    "Acknowledgment requests rejected for missing proof",
    ["proof"],
)
TIME_TO_ACKNOWLEDGE = Histogram(
    "oncall_core_time_to_acknowledge_seconds",
    "Seconds from incident creation to first acknowledgment",
    buckets=[30, 60, 120, 300, 600, 1800, 3600],
)
TIME_TO_RESOLVE = Histogram(
    "oncall_core_time_to_resolve_seconds",
    "Seconds from incident creation to resolution",
    buckets=[60, 300, 600, 1800, 3600, 7200, 14400],
)
