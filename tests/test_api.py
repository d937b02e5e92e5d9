"""
Tests for FastAPI endpoints.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from leaveflow.exceptions import StoreUnavailable
from leaveflow.main import app
from leaveflow.models import LeaveStatus, Tier

STAFF = {"X-Staff-Id": "S001", "X-Role": "staff"}
HOD = {"X-Staff-Id": "H001", "X-Role": "hod"}
DIRECTOR = {"X-Staff-Id": "D001", "X-Role": "dir"}
PRINCIPAL = {"X-Staff-Id": "P001", "X-Role": "princi"}
ADMIN = {"X-Staff-Id": "A001", "X-Role": "admin"}

CASUAL = {
    "type": "Casual Leave",
    "fromDate": "2024-03-01",
    "toDate": "2024-03-03",
    "reason": "Family function",
}


class TestMonitoringEndpoints:
    """Test root, health and metrics."""

    def test_root_endpoint(self, test_client):
        response = test_client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert "Leave Workflow API" in data["message"]
        assert "version" in data

    def test_health_endpoint(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "environment" in data
        assert "store_circuit_breaker" in data

    def test_ready_endpoint(self, test_client):
        assert test_client.get("/ready").json() == {"status": "ready"}

    def test_metrics_counts_requests(self, test_client):
        test_client.post("/leaves", json=CASUAL, headers=STAFF)

        data = test_client.get("/metrics").json()

        assert data["leave_requests"]["total"] == 1
        assert data["leave_requests"]["pending"] == 1
        assert "circuit_breaker" in data

    def test_openapi_docs_available(self, test_client):
        assert test_client.get("/openapi.json").status_code == 200
        assert test_client.get("/docs").status_code == 200


class TestIdentity:
    def test_missing_headers(self, test_client):
        response = test_client.post("/leaves", json=CASUAL)
        assert response.status_code == 422

    def test_unknown_role(self, test_client):
        response = test_client.get("/leaves/history", headers={"X-Staff-Id": "S001", "X-Role": "dean"})
        assert response.status_code == 401

    def test_unknown_caller(self, test_client):
        response = test_client.get("/leaves/history", headers={"X-Staff-Id": "X9", "X-Role": "staff"})
        assert response.status_code == 401


class TestLeaveEndpoints:
    """Test submission, review and queues over HTTP."""

    def test_submit_leave(self, test_client):
        response = test_client.post("/leaves", json=CASUAL, headers=STAFF)

        assert response.status_code == 201
        data = response.json()
        assert data["leaveValue"] == 3.0
        assert data["status"] == "Pending"
        assert data["staffId"] == "S001"

    def test_submit_invalid_range(self, test_client):
        response = test_client.post(
            "/leaves", json={**CASUAL, "fromDate": "2024-03-05"}, headers=STAFF
        )

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidDateRange"

    def test_submit_for_other_staff_forbidden(self, test_client):
        response = test_client.post("/leaves", json={**CASUAL, "staffId": "S002"}, headers=STAFF)
        assert response.status_code == 403

    def test_compensatory_chain_over_http(self, test_client, store):
        created = test_client.post(
            "/leaves", json={**CASUAL, "type": "Compensatory Leave"}, headers=STAFF
        ).json()
        leave_id = created["id"]

        early = test_client.post(
            f"/leaves/{leave_id}/actions", json={"action": "Approve"}, headers=PRINCIPAL
        )
        assert early.status_code == 403

        for headers in (HOD, DIRECTOR):
            response = test_client.post(
                f"/leaves/{leave_id}/actions", json={"action": "Recommend"}, headers=headers
            )
            assert response.status_code == 200

        response = test_client.post(
            f"/leaves/{leave_id}/actions", json={"action": "Approve"}, headers=PRINCIPAL
        )
        assert response.status_code == 200
        assert response.json()["status"] == "Approved"
        assert store.get_leave(leave_id).recommended_by == Tier.DIRECTOR

    def test_action_on_missing_leave(self, test_client):
        response = test_client.post(
            "/leaves/missing/actions", json={"action": "Approve"}, headers=PRINCIPAL
        )
        assert response.status_code == 404
        assert response.json()["error"] == "LeaveNotFound"

    def test_invalid_action(self, test_client):
        response = test_client.post(
            "/leaves/any/actions", json={"action": "Escalate"}, headers=PRINCIPAL
        )
        assert response.status_code == 422

    def test_queue_and_history(self, test_client):
        test_client.post("/leaves", json=CASUAL, headers=STAFF)
        test_client.post("/leaves", json={**CASUAL, "fromDate": "2024-04-01", "toDate": "2024-04-01"}, headers=STAFF)

        history = test_client.get("/leaves/history", headers=STAFF).json()
        assert [leave["fromDate"] for leave in history] == ["2024-04-01", "2024-03-01"]

        assert len(test_client.get("/leaves/queue", headers=HOD).json()) == 2
        assert test_client.get("/leaves/queue", headers=STAFF).json() == []

    def test_hod_request_skips_hod_queue(self, test_client):
        test_client.post("/leaves", json=CASUAL, headers=HOD)

        assert test_client.get("/leaves/queue", headers=HOD).json() == []
        [queued] = test_client.get("/leaves/queue", headers=DIRECTOR).json()
        assert queued["status"] == LeaveStatus.RECOMMENDED.value
        assert queued["recommendedBy"] == "HOD"

    def test_stats_scoped_for_staff(self, test_client):
        test_client.post("/leaves", json=CASUAL, headers=STAFF)
        test_client.post("/leaves", json=CASUAL, headers=HOD)

        assert test_client.get("/leaves/stats", headers=STAFF).json()["total"] == 1
        assert test_client.get("/leaves/stats", headers=PRINCIPAL).json()["total"] == 2
        assert test_client.get("/leaves/stats?staff_id=S002", headers=STAFF).status_code == 403


class TestBalanceEndpoints:
    def test_balance_after_admin_entry(self, test_client):
        test_client.post("/leaves", json={**CASUAL, "staffId": "S001"}, headers=ADMIN)

        response = test_client.get(
            "/staff/S001/balances/Casual%20Leave?year=2024", headers=STAFF
        )

        assert response.status_code == 200
        assert response.json()["used"] == 3.0
        assert response.json()["remaining"] == 12.0

    def test_balance_summary(self, test_client):
        response = test_client.get("/staff/S001/balances?year=2024", headers=PRINCIPAL)

        assert response.status_code == 200
        data = response.json()
        assert data["total_used"] == 0
        assert len(data["balances"]) == 5

    def test_staff_cannot_read_other_balances(self, test_client):
        response = test_client.get("/staff/S002/balances", headers=STAFF)
        assert response.status_code == 403

    def test_unknown_leave_type(self, test_client):
        response = test_client.get("/staff/S001/balances/Sick%20Leave", headers=STAFF)
        assert response.status_code == 422

    def test_unknown_staff(self, test_client):
        response = test_client.get("/staff/X999/balances", headers=PRINCIPAL)
        assert response.status_code == 404


class TestBulkEndpoint:
    ROW = {
        "Email": "anita.menon@college.edu",
        "Leave Type": "Casual Leave",
        "From Date": 45292,
        "To Date": 45293,
    }

    def test_bulk_import(self, test_client, store):
        rows = [self.ROW, {**self.ROW, "Leave Type": "Sick Leave"}]

        response = test_client.post("/leaves/bulk", json={"rows": rows}, headers=ADMIN)

        assert response.status_code == 200
        data = response.json()
        assert data["success_count"] == 1
        assert data["entries"][1]["code"] == "UnknownLeaveType"
        assert len(store.query_leaves()) == 1

    def test_bulk_import_requires_admin(self, test_client):
        response = test_client.post("/leaves/bulk", json={"rows": [self.ROW]}, headers=PRINCIPAL)
        assert response.status_code == 403


class TestErrorMapping:
    @pytest.fixture
    def client(self, test_client):
        return TestClient(app, raise_server_exceptions=False)

    def test_store_unavailable_is_503(self, client, store):
        with patch.object(store, "query_leaves", side_effect=StoreUnavailable("down")):
            response = client.get("/leaves/history", headers=STAFF)

        assert response.status_code == 503
        assert response.json()["error"] == "StoreUnavailable"

    def test_unexpected_error_is_500(self, client, store):
        with patch.object(store, "query_leaves", side_effect=RuntimeError("boom")):
            response = client.get("/leaves/history", headers=STAFF)

        assert response.status_code == 500
        assert "boom" not in response.text
