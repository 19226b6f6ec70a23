# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
HTTP tests for the On-Call Core Service.
The auth and directory services are replaced by in-process fakes through
FastAPI dependency overrides; the database is a fresh in-memory SQLite
schema per test.
"""

import json
import logging
from datetime import timedelta
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from main import app
from oncall_core.core.clock import today
from oncall_core.core.config import settings
from oncall_core.core.database import engine
from oncall_core.core.dependencies import (
    get_auth_client, get_incident_service, get_schedule_service,
)
from oncall_core.core.logging import (
    JSONFormatter, RequestIDFilter, bind_request_id, reset_request_id,
)
from oncall_core.models.domain import Identity
from oncall_core.repositories import (
    AssignmentRepository, IncidentRepository, ScheduleRepository,
)
from oncall_core.repositories.tables import metadata
from oncall_core.services.incident_service import IncidentService
from oncall_core.services.reconciler import AssignmentReconciler
from oncall_core.services.schedule_service import ScheduleService


class FakeAuthClient:
    SESSIONS = {
        "Bearer alice-session": Identity(member_id="alice", email="alice@company.com"),
        "Bearer bob-session": Identity(member_id="bob", email="bob@company.com"),
        "Bearer carol-session": Identity(member_id="carol", email="carol@company.com"),
    }

    def verify(self, authorization):
        return self.SESSIONS.get(authorization)


class FakeDirectory:
    NAMES = {"alice": "Alice Martin", "bob": "Bob Dupont", "carol": "Carol Chen"}
    ROLES = {("team-1", "alice"): "admin", ("team-1", "bob"): "member"}

    def display_name(self, member_id):
        return self.NAMES.get(member_id)

    def team_role(self, team_id, member_id):
        return self.ROLES.get((team_id, member_id))

    def team_ids_for(self, member_id):
        return [t for t, m in self.ROLES if m == member_id]


ALICE = {"Authorization": "Bearer alice-session"}
BOB = {"Authorization": "Bearer bob-session"}
CAROL = {"Authorization": "Bearer carol-session"}

_assignment_repo = AssignmentRepository(engine)
_schedule_service = ScheduleService(
    ScheduleRepository(engine), _assignment_repo, AssignmentReconciler(_assignment_repo),
    FakeDirectory(), horizon_days=30,
)
_incident_service = IncidentService(IncidentRepository(engine), FakeDirectory(),
                                    strict_transitions=True)

app.dependency_overrides[get_auth_client] = FakeAuthClient
app.dependency_overrides[get_schedule_service] = lambda: _schedule_service
app.dependency_overrides[get_incident_service] = lambda: _incident_service

client = TestClient(app)


# ============================================
# Fixtures
# ============================================
@pytest.fixture(autouse=True)
def reset_state():
    """Fresh schema before each test."""
    metadata.drop_all(engine)
    metadata.create_all(engine)
    yield


def create_schedule(**overrides):
    payload = {
        "name": "Primary",
        "team_id": "team-1",
        "frequency": 1,
        "unit": "weekly",
        "start_date": "2024-01-01",
        "end_date": "2024-01-31",
        "members": ["alice", "bob"],
    }
    payload.update(overrides)
    return client.post("/api/v1/schedules", json=payload, headers=ALICE)


def create_incident(headers=BOB, **overrides):
    payload = {"title": "Checkout latency", "team_id": "team-1", "severity": "high"}
    payload.update(overrides)
    response = client.post("/api/v1/incidents", json=payload, headers=headers)
    return response


# ============================================
# Health & Metrics
# ============================================
class TestHealth:
    def test_health_ok(self):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == settings.SERVICE_NAME
        assert data["version"] == settings.SERVICE_VERSION

    def test_readiness_ok(self):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    def test_readiness_fails_when_db_down(self):
        with patch.object(IncidentRepository, "verify_connection",
                          side_effect=RuntimeError("db down")):
            response = client.get("/health/ready")
        assert response.status_code == 503

    def test_metrics_endpoint(self):
        client.get("/api/v1/schedules", headers=ALICE)
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "oncall_core_requests_total" in response.text

    def test_request_id_propagated(self):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self):
        assert client.get("/health").headers.get("X-Request-ID")


# ============================================
# Structured logging
# ============================================
class _Collector(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestLogging:
    def test_bound_request_id_in_json_line(self):
        record = logging.LogRecord("oncall_core", logging.INFO, __file__, 1,
                                   "Schedule created", None, None)
        token = bind_request_id("req-42")
        try:
            RequestIDFilter().filter(record)
        finally:
            reset_request_id(token)
        line = json.loads(JSONFormatter().format(record))
        assert line["request_id"] == "req-42"
        assert line["message"] == "Schedule created"

    def test_unbound_record_has_no_request_id(self):
        record = logging.LogRecord("oncall_core", logging.INFO, __file__, 1, "x", None, None)
        RequestIDFilter().filter(record)
        assert "request_id" not in json.loads(JSONFormatter().format(record))

    def test_service_logs_carry_request_header(self):
        collector = _Collector()
        collector.addFilter(RequestIDFilter())
        service_logger = logging.getLogger("oncall_core.services.schedule_service")
        service_logger.addHandler(collector)
        try:
            response = client.post("/api/v1/schedules",
                                   headers={**ALICE, "X-Request-ID": "req-77"},
                                   json={"name": "Primary", "team_id": "team-1",
                                         "start_date": "2024-01-01", "end_date": "2024-01-07",
                                         "members": ["alice"]})
        finally:
            service_logger.removeHandler(collector)
        assert response.status_code == 201
        created = [r for r in collector.records if r.getMessage().startswith("Schedule created")]
        assert len(created) == 1
        assert created[0].request_id == "req-77"
        assert created[0].schedule_id == response.json()["schedule"]["id"]


# ============================================
# Authentication
# ============================================
class TestAuthentication:
    @pytest.mark.parametrize("method,path", [
        ("get", "/api/v1/schedules"),
        ("post", "/api/v1/schedules"),
        ("get", "/api/v1/schedules/s-1"),
        ("patch", "/api/v1/schedules/s-1"),
        ("delete", "/api/v1/schedules/s-1"),
        ("get", "/api/v1/schedules/s-1/oncall"),
        ("get", "/api/v1/assignments?schedule_id=s-1"),
        ("post", "/api/v1/assignments"),
        ("delete", "/api/v1/assignments/a-1"),
        ("get", "/api/v1/incidents"),
        ("post", "/api/v1/incidents"),
        ("get", "/api/v1/incidents/i-1"),
        ("patch", "/api/v1/incidents/i-1"),
        ("delete", "/api/v1/incidents/i-1"),
        ("get", "/api/v1/incidents/i-1/audit"),
    ])
    def test_session_required(self, method, path):
        response = client.request(method.upper(), path)
        assert response.status_code == 401

    def test_unknown_session_rejected(self):
        response = client.get("/api/v1/schedules",
                              headers={"Authorization": "Bearer forged"})
        assert response.status_code == 401


# ============================================
# Schedules
# ============================================
class TestSchedules:
    def test_create_schedule(self):
        response = create_schedule()
        assert response.status_code == 201
        data = response.json()
        assert data["schedule"]["name"] == "Primary"
        assert data["schedule"]["members"] == ["alice", "bob"]
        assert data["assignments_status"] == {"state": "ok", "generated": 31, "reason": None}

    def test_create_without_members_skips(self):
        response = create_schedule(members=None)
        assert response.status_code == 201
        assert response.json()["assignments_status"]["state"] == "skipped"

    def test_create_requires_admin(self):
        response = client.post("/api/v1/schedules", headers=BOB, json={
            "name": "x", "team_id": "team-1", "start_date": "2024-01-01",
        })
        assert response.status_code == 403

    @pytest.mark.parametrize("overrides", [
        {"name": ""},
        {"unit": "hourly"},
        {"frequency": 0},
        {"end_date": "2023-12-01"},
        {"members": ["alice", " "]},
    ])
    def test_create_validation_422(self, overrides):
        assert create_schedule(**overrides).status_code == 422

    def test_unit_is_normalised(self):
        response = create_schedule(unit=" Daily ")
        assert response.json()["schedule"]["unit"] == "daily"

    def test_list_and_filter(self):
        create_schedule()
        create_schedule(name="Secondary")
        assert len(client.get("/api/v1/schedules", headers=ALICE).json()) == 2
        assert client.get("/api/v1/schedules?team_id=team-9", headers=ALICE).json() == []

    def test_get_schedule(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.get(f"/api/v1/schedules/{schedule_id}", headers=BOB)
        assert response.status_code == 200
        assert response.json()["id"] == schedule_id

    def test_get_missing_schedule(self):
        assert client.get("/api/v1/schedules/nope", headers=ALICE).status_code == 404

    def test_patch_metadata_skips_regeneration(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.patch(f"/api/v1/schedules/{schedule_id}", headers=ALICE,
                                json={"description": "Follow the sun"})
        assert response.status_code == 200
        data = response.json()
        assert data["schedule"]["description"] == "Follow the sun"
        assert data["assignments_status"]["state"] == "skipped"

    def test_patch_roster_regenerates_future(self):
        start = today()
        schedule_id = create_schedule(
            unit="daily", start_date=start.isoformat(),
            end_date=(start + timedelta(days=3)).isoformat(), members=["alice"],
        ).json()["schedule"]["id"]
        response = client.patch(f"/api/v1/schedules/{schedule_id}", headers=ALICE,
                                json={"members": ["bob"]})
        assert response.json()["assignments_status"] == {
            "state": "ok", "generated": 4, "reason": None,
        }
        rows = client.get(f"/api/v1/assignments?schedule_id={schedule_id}",
                          headers=ALICE).json()
        assert {r["member_id"] for r in rows} == {"bob"}

    def test_patch_requires_admin(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.patch(f"/api/v1/schedules/{schedule_id}", headers=BOB,
                                json={"name": "Mine"})
        assert response.status_code == 403

    def test_patch_missing(self):
        response = client.patch("/api/v1/schedules/nope", headers=ALICE, json={"name": "x"})
        assert response.status_code == 404

    def test_delete_schedule(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.delete(f"/api/v1/schedules/{schedule_id}", headers=ALICE)
        assert response.status_code == 200
        assert response.json()["assignments_removed"] == 31
        assert client.get(f"/api/v1/schedules/{schedule_id}", headers=ALICE).status_code == 404

    def test_oncall_from_assignment(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.get(f"/api/v1/schedules/{schedule_id}/oncall?on=2024-01-08",
                              headers=BOB)
        assert response.status_code == 200
        assert response.json() == {"schedule_id": schedule_id, "date": "2024-01-08",
                                   "member_id": "bob", "source": "assignment"}

    def test_oncall_outside_schedule(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.get(f"/api/v1/schedules/{schedule_id}/oncall?on=2025-01-01",
                              headers=BOB)
        assert response.json()["member_id"] is None

    def test_oncall_missing_schedule(self):
        assert client.get("/api/v1/schedules/nope/oncall", headers=BOB).status_code == 404

    def test_patch_shortened_window_drops_later_rows(self):
        start = today()
        schedule_id = create_schedule(start_date=start.isoformat(),
                                      end_date=None).json()["schedule"]["id"]
        end = start + timedelta(days=3)
        response = client.patch(f"/api/v1/schedules/{schedule_id}", headers=ALICE,
                                json={"unit": "daily", "end_date": end.isoformat()})
        assert response.status_code == 200
        rows = client.get(f"/api/v1/assignments?schedule_id={schedule_id}",
                          headers=ALICE).json()
        assert len(rows) == 4
        assert rows[-1]["date"] == end.isoformat()
        later = (start + timedelta(days=8)).isoformat()
        oncall = client.get(f"/api/v1/schedules/{schedule_id}/oncall?on={later}",
                            headers=BOB).json()
        assert oncall["member_id"] is None

    def test_patch_roster_moves_rotation_anchor(self):
        start = today() - timedelta(days=1)
        schedule_id = create_schedule(unit="daily", start_date=start.isoformat(),
                                      end_date=None).json()["schedule"]["id"]
        response = client.patch(f"/api/v1/schedules/{schedule_id}", headers=ALICE,
                                json={"members": ["alice", "bob", "carol"]})
        assert response.json()["schedule"]["rotation_anchor"] == today().isoformat()
        day = (today() + timedelta(days=31)).isoformat()
        oncall = client.get(f"/api/v1/schedules/{schedule_id}/oncall?on={day}",
                            headers=BOB).json()
        assert oncall["source"] == "rotation"
        assert oncall["member_id"] == "bob"

    @pytest.mark.parametrize("field", ["name", "timezone", "frequency", "unit", "start_date"])
    def test_patch_null_field_422(self, field):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.patch(f"/api/v1/schedules/{schedule_id}", headers=ALICE,
                                json={field: None})
        assert response.status_code == 422

    def test_patch_end_before_start(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.patch(f"/api/v1/schedules/{schedule_id}", headers=ALICE,
                                json={"end_date": "2023-12-01"})
        assert response.status_code == 400
        both = client.patch(f"/api/v1/schedules/{schedule_id}", headers=ALICE,
                            json={"start_date": "2024-02-01", "end_date": "2024-01-15"})
        assert both.status_code == 422
        current = client.get(f"/api/v1/schedules/{schedule_id}", headers=ALICE).json()
        assert current["end_date"] == "2024-01-31"

    def test_list_by_member_and_range(self):
        create_schedule()
        create_schedule(name="Secondary", unit="daily", end_date="2024-01-03",
                        members=["bob"])
        rows = client.get(
            "/api/v1/schedules?member_id=bob&start=2024-01-01&end=2024-01-07",
            headers=ALICE,
        ).json()
        assert [s["name"] for s in rows] == ["Secondary"]
        assert len(client.get("/api/v1/schedules?member_id=bob", headers=ALICE).json()) == 2

    def test_list_inverted_range(self):
        response = client.get("/api/v1/schedules?start=2024-01-10&end=2024-01-01",
                              headers=ALICE)
        assert response.status_code == 400


# ============================================
# Assignments
# ============================================
class TestAssignments:
    def test_list_assignments(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.get(f"/api/v1/assignments?schedule_id={schedule_id}",
                              headers=ALICE)
        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 31
        assert rows[0]["date"] == "2024-01-01"
        assert rows[0]["member_id"] == "alice"

    def test_list_range(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        rows = client.get(
            f"/api/v1/assignments?schedule_id={schedule_id}&start=2024-01-08&end=2024-01-14",
            headers=ALICE,
        ).json()
        assert [r["member_id"] for r in rows] == ["bob"] * 7

    def test_list_requires_a_filter(self):
        assert client.get("/api/v1/assignments", headers=ALICE).status_code == 400

    def test_list_by_member(self):
        create_schedule()
        create_schedule(name="Secondary", unit="daily", end_date="2024-01-03",
                        members=["bob"])
        rows = client.get("/api/v1/assignments?member_id=bob", headers=ALICE).json()
        assert len(rows) == 17
        assert {r["member_id"] for r in rows} == {"bob"}
        assert len({r["schedule_id"] for r in rows}) == 2

    def test_list_by_member_unknown_schedule(self):
        response = client.get("/api/v1/assignments?schedule_id=nope&member_id=bob",
                              headers=ALICE)
        assert response.status_code == 404

    def test_list_inverted_range(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.get(
            f"/api/v1/assignments?schedule_id={schedule_id}&start=2024-01-10&end=2024-01-01",
            headers=ALICE,
        )
        assert response.status_code == 400

    def test_upsert_replaces_day(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.post("/api/v1/assignments", headers=ALICE, json={
            "schedule_id": schedule_id, "member_id": "carol", "date": "2024-01-02",
        })
        assert response.status_code == 201
        assert response.json()["member_id"] == "carol"
        rows = client.get(
            f"/api/v1/assignments?schedule_id={schedule_id}&start=2024-01-02&end=2024-01-02",
            headers=ALICE,
        ).json()
        assert [r["member_id"] for r in rows] == ["carol"]

    def test_upsert_requires_admin(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        response = client.post("/api/v1/assignments", headers=BOB, json={
            "schedule_id": schedule_id, "member_id": "bob", "date": "2024-01-02",
        })
        assert response.status_code == 403

    def test_upsert_unknown_schedule(self):
        response = client.post("/api/v1/assignments", headers=ALICE, json={
            "schedule_id": "nope", "member_id": "bob", "date": "2024-01-02",
        })
        assert response.status_code == 404

    def test_delete_assignment(self):
        schedule_id = create_schedule().json()["schedule"]["id"]
        first = client.get(f"/api/v1/assignments?schedule_id={schedule_id}",
                           headers=ALICE).json()[0]
        response = client.delete(f"/api/v1/assignments/{first['id']}", headers=ALICE)
        assert response.status_code == 200
        again = client.delete(f"/api/v1/assignments/{first['id']}", headers=ALICE)
        assert again.status_code == 404


# ============================================
# Incidents
# ============================================
class TestIncidents:
    def test_create_incident(self):
        response = create_incident()
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "open"
        assert data["severity"] == "high"
        assert data["created_by_id"] == "bob"

    def test_create_default_severity(self):
        response = create_incident(severity="UNKNOWN")
        assert response.json()["severity"] == "unknown"

    def test_create_requires_membership(self):
        assert create_incident(headers=CAROL).status_code == 403

    @pytest.mark.parametrize("overrides", [{"title": ""}, {"severity": "sev1"}])
    def test_create_validation_422(self, overrides):
        assert create_incident(**overrides).status_code == 422

    def test_list_incidents(self):
        create_incident()
        create_incident()
        assert len(client.get("/api/v1/incidents", headers=ALICE).json()) == 2
        assert client.get("/api/v1/incidents", headers=CAROL).json() == []

    def test_list_invalid_status(self):
        response = client.get("/api/v1/incidents?status=closed", headers=ALICE)
        assert response.status_code == 400

    def test_get_missing(self):
        assert client.get("/api/v1/incidents/nope", headers=ALICE).status_code == 404

    def test_patch_acknowledge(self):
        incident_id = create_incident().json()["id"]
        response = client.patch(f"/api/v1/incidents/{incident_id}", headers=ALICE,
                                json={"status": "acknowledged"})
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "acknowledged"
        assert data["acknowledged_by_id"] == "alice"
        assert data["acknowledged_at"] is not None

    def test_patch_resolve_from_open(self):
        incident_id = create_incident().json()["id"]
        response = client.patch(f"/api/v1/incidents/{incident_id}", headers=ALICE,
                                json={"status": "resolved"})
        data = response.json()
        assert data["status"] == "resolved"
        assert data["resolved_at"] is not None
        assert data["acknowledged_at"] is None

    def test_patch_backward_409(self):
        incident_id = create_incident().json()["id"]
        client.patch(f"/api/v1/incidents/{incident_id}", headers=ALICE,
                     json={"status": "resolved"})
        response = client.patch(f"/api/v1/incidents/{incident_id}", headers=ALICE,
                                json={"status": "open"})
        assert response.status_code == 409

    def test_patch_invalid_status_422(self):
        incident_id = create_incident().json()["id"]
        response = client.patch(f"/api/v1/incidents/{incident_id}", headers=ALICE,
                                json={"status": "in_progress"})
        assert response.status_code == 422

    def test_patch_ignores_unknown_fields(self):
        incident_id = create_incident().json()["id"]
        response = client.patch(f"/api/v1/incidents/{incident_id}", headers=ALICE,
                                json={"team_id": "team-9", "created_by_id": "alice"})
        assert response.status_code == 200
        assert response.json()["team_id"] == "team-1"
        assert response.json()["created_by_id"] == "bob"

    def test_patch_reassign(self):
        incident_id = create_incident().json()["id"]
        response = client.patch(f"/api/v1/incidents/{incident_id}", headers=ALICE,
                                json={"assignee_id": "alice"})
        assert response.json()["assignee_id"] == "alice"

    def test_patch_missing(self):
        response = client.patch("/api/v1/incidents/nope", headers=ALICE,
                                json={"status": "resolved"})
        assert response.status_code == 404

    def test_delete_incident(self):
        incident_id = create_incident().json()["id"]
        assert client.delete(f"/api/v1/incidents/{incident_id}", headers=ALICE).status_code == 200
        assert client.get(f"/api/v1/incidents/{incident_id}", headers=ALICE).status_code == 404


# ============================================
# Acknowledgment
# ============================================
class TestAcknowledge:
    def _ack(self, incident_id, json=None, headers=None):
        return client.post(f"/api/v1/incidents/{incident_id}/acknowledge",
                           json=json, headers=headers or {})

    def test_session_acknowledge(self):
        incident_id = create_incident().json()["id"]
        response = self._ack(incident_id, headers=ALICE)
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Incident acknowledged"
        assert data["already_acknowledged"] is False
        assert data["incident"]["acknowledged_by_id"] == "alice"

    def test_repeat_acknowledge(self):
        incident_id = create_incident().json()["id"]
        self._ack(incident_id, headers=ALICE)
        response = self._ack(incident_id, headers=BOB)
        assert response.status_code == 200
        assert response.json()["already_acknowledged"] is True
        assert response.json()["message"] == "Incident already acknowledged"
        assert response.json()["incident"]["acknowledged_by_id"] == "alice"

    def test_token_acknowledge_without_session(self):
        incident_id = create_incident().json()["id"]
        response = self._ack(incident_id, json={
            "token": "sms-ack-123", "member_id": "bob", "channel": "sms",
        })
        assert response.status_code == 200
        assert response.json()["incident"]["acknowledged_by_id"] == "bob"

    def test_token_without_member_401(self):
        incident_id = create_incident().json()["id"]
        response = self._ack(incident_id, json={"token": "sms-ack-123"})
        assert response.status_code == 401

    def test_no_proof_401(self):
        incident_id = create_incident().json()["id"]
        assert self._ack(incident_id).status_code == 401

    def test_invalid_channel_400(self):
        incident_id = create_incident().json()["id"]
        response = self._ack(incident_id, json={"channel": "pager"}, headers=ALICE)
        assert response.status_code == 400

    def test_missing_incident_404(self):
        response = self._ack("nope", json={"token": "t", "member_id": "bob"})
        assert response.status_code == 404

    def test_resolved_incident_409(self):
        incident_id = create_incident().json()["id"]
        client.patch(f"/api/v1/incidents/{incident_id}", headers=ALICE,
                     json={"status": "resolved"})
        assert self._ack(incident_id, headers=ALICE).status_code == 409


# ============================================
# Audit trail
# ============================================
class TestAudit:
    def test_audit_after_acknowledgment(self):
        incident_id = create_incident().json()["id"]
        client.post(f"/api/v1/incidents/{incident_id}/acknowledge",
                    json={"channel": "slack"}, headers=ALICE)
        response = client.get(f"/api/v1/incidents/{incident_id}/audit", headers=BOB)
        assert response.status_code == 200
        data = response.json()
        assert data["incident"]["status"] == "acknowledged"
        types = sorted(e["type"] for e in data["audit_log"])
        assert types == ["acknowledgment", "update", "update", "update"]
        ack = next(e for e in data["audit_log"] if e["type"] == "acknowledgment")
        assert ack["data"]["channel"] == "slack"
        messages = [e["data"].get("message") for e in data["audit_log"]]
        assert "Incident acknowledged by Alice Martin via slack" in messages
        assert "Incident created by Bob Dupont" in messages

    def test_audit_newest_first(self):
        incident_id = create_incident().json()["id"]
        client.patch(f"/api/v1/incidents/{incident_id}", headers=ALICE,
                     json={"status": "resolved"})
        log = client.get(f"/api/v1/incidents/{incident_id}/audit", headers=BOB).json()["audit_log"]
        timestamps = [e["timestamp"] for e in log]
        assert timestamps == sorted(timestamps, reverse=True)
        assert log[-1]["data"]["type"] == "CREATED"

    def test_audit_missing(self):
        assert client.get("/api/v1/incidents/nope/audit", headers=BOB).status_code == 404


# ============================================
# Error handling
# ============================================
class TestErrorHandling:
    def test_database_error_returns_500(self):
        with patch.object(ScheduleRepository, "list",
                          side_effect=OperationalError("SELECT", {}, Exception("db down"))):
            response = client.get("/api/v1/schedules", headers=ALICE)
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
