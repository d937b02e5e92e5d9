"""
Pytest configuration and fixtures.
Shared test utilities and seed data.
"""

from datetime import date, datetime, timezone
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from leaveflow.models import Actor, LeaveRequest, LeaveStatus, LeaveType, Role
from leaveflow.store import InMemoryLeaveStore, get_store, new_record_id


@pytest.fixture
def store():
    """Fresh in-memory store seeded with the mock staff directory."""
    return InMemoryLeaveStore()


@pytest.fixture
def staff_actor():
    return Actor(staff_id="S001", role=Role.STAFF, department="Computer Science & Engineering")


@pytest.fixture
def hod_actor():
    return Actor(staff_id="H001", role=Role.HOD, department="Computer Science & Engineering")


@pytest.fixture
def director_actor():
    return Actor(staff_id="D001", role=Role.DIRECTOR, department="Basic Science & Humanities")


@pytest.fixture
def principal_actor():
    return Actor(staff_id="P001", role=Role.PRINCIPAL)


@pytest.fixture
def admin_actor():
    return Actor(staff_id="A001", role=Role.ADMIN)


@pytest.fixture
def make_leave():
    """Factory for leave records with sensible defaults."""

    def _make(**overrides) -> LeaveRequest:
        fields = {
            "id": new_record_id(),
            "staff_id": "S001",
            "staff_email": "anita.menon@college.edu",
            "leave_type": LeaveType.CASUAL,
            "from_date": date(2024, 3, 1),
            "to_date": date(2024, 3, 1),
            "leave_value": 1.0,
            "reason": "Personal",
            "status": LeaveStatus.PENDING,
            "created_at": datetime(2024, 2, 20, 9, 0, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        return LeaveRequest(**fields)

    return _make


@pytest.fixture
def mock_snowflake_session():
    """Mock Snowflake session."""
    session = Mock()
    session.table = Mock()
    session.create_dataframe = Mock()
    return session


@pytest.fixture
def test_client(store):
    """FastAPI test client backed by the fixture store."""
    from leaveflow.main import app

    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
