"""
Pytest configuration and fixtures.
Shared stores, services and a fixed clock.
"""

from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient

from leave_service.employees import EmployeeService
from leave_service.lifecycle import LeaveRequestService
from leave_service.models import Employee, LeaveRequest, LeaveStatus
from leave_service.store import InMemoryStore

# All tests run on 2025-06-01 (UTC).
NOW = datetime(2025, 6, 1, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()


def fixed_clock():
    return NOW


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def employee_service(store):
    return EmployeeService(store, clock=fixed_clock)


@pytest.fixture
def leave_service(store):
    return LeaveRequestService(store, clock=fixed_clock)


@pytest.fixture
def employee(store):
    """Employee with the default 20-day balance, joined 2020-01-01."""
    return store.add_employee(
        Employee(
            name="John Doe",
            email="john.doe@company.com",
            department="Engineering",
            joining_date=date(2020, 1, 1),
            leave_balance=20,
        )
    )


@pytest.fixture
def add_request(store):
    """Insert a request directly, bypassing the submission rules."""

    def _add(employee_id, start, end, status=LeaveStatus.PENDING, **fields):
        return store.add_request(
            LeaveRequest(
                employee_id=employee_id,
                start_date=start,
                end_date=end,
                reason=fields.pop("reason", "Planned leave"),
                status=status,
                **fields,
            )
        )

    return _add


@pytest.fixture
def test_client(store):
    """FastAPI test client wired to the test store and the fixed clock."""
    from leave_service.dependencies import get_clock, get_store
    from leave_service.main import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    yield TestClient(app)
    app.dependency_overrides.clear()
