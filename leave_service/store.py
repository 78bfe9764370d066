"""
Record keeping for employees and leave requests.

``LeaveStore`` is the interface the services talk to. ``InMemoryStore`` is
the default backend for development and tests; ``leave_service.sql_store``
provides the SQLAlchemy one. ``build_store`` picks between them from settings.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from leave_service.errors import ConflictError
from leave_service.models import Employee, LeaveRequest, LeaveStatus, utcnow

logger = logging.getLogger(__name__)


class LeaveStore(ABC):
    """CRUD surface consumed by the employee and leave-request services."""

    kind = "abstract"

    @abstractmethod
    def add_employee(self, employee: Employee) -> Employee:
        """Insert ``employee``. Raises ``ConflictError`` when its email is taken."""

    @abstractmethod
    def get_employee(self, employee_id: str) -> Employee | None: ...

    @abstractmethod
    def get_employees(self, employee_ids: Iterable[str]) -> dict[str, Employee]:
        """Known employees among ``employee_ids``, keyed by id. Unknown ids are skipped."""

    @abstractmethod
    def get_employee_by_email(self, email: str) -> Employee | None: ...

    @abstractmethod
    def list_employees(self) -> list[Employee]:
        """All employees, newest first."""

    @abstractmethod
    def update_employee(self, employee_id: str, changes: dict[str, Any]) -> Employee | None:
        """Apply ``changes``. Raises ``ConflictError`` when a new email is taken."""

    @abstractmethod
    def delete_employee(self, employee_id: str) -> bool:
        """Delete the employee and every request it owns."""

    @abstractmethod
    def add_request(self, leave_request: LeaveRequest) -> LeaveRequest: ...

    @abstractmethod
    def get_request(self, request_id: str) -> LeaveRequest | None: ...

    @abstractmethod
    def list_requests(
        self,
        employee_id: str | None = None,
        statuses: set[LeaveStatus] | None = None,
    ) -> list[LeaveRequest]:
        """Requests matching the filters, most recently applied first."""

    @abstractmethod
    def page_requests(
        self,
        employee_id: str | None,
        status: LeaveStatus | None,
        offset: int,
        limit: int,
    ) -> tuple[list[LeaveRequest], int]:
        """One page of requests plus the total number of matches."""

    @abstractmethod
    def update_request_if_pending(
        self, request_id: str, changes: dict[str, Any]
    ) -> LeaveRequest | None:
        """
        Apply ``changes`` only if the request is still PENDING, atomically.

        Returns the updated request, or None when it is gone or already reviewed.
        """

    @abstractmethod
    def delete_request_if_pending(self, request_id: str) -> bool:
        """Delete the request only if it is still PENDING, atomically."""

    def close(self) -> None:
        """Release backend resources."""


class InMemoryStore(LeaveStore):
    """
    Process-local store guarded by a single lock.

    Records are copied in and out so callers never hold a reference to the
    stored object. Requests are indexed by employee id.
    """

    kind = "memory"

    def __init__(self, seed: list[dict[str, Any]] | None = None):
        self._lock = threading.RLock()
        self._employees: dict[str, Employee] = {}
        self._requests: dict[str, LeaveRequest] = {}
        self._requests_by_employee: dict[str, set[str]] = {}

        for record in seed or []:
            self.add_employee(Employee(**record))
        if seed:
            logger.info(f"In-memory store seeded with {len(seed)} employees")

    # Employees

    def _email_taken(self, email: str, employee_id: str) -> bool:
        return any(e.email == email and e.id != employee_id for e in self._employees.values())

    def add_employee(self, employee: Employee) -> Employee:
        with self._lock:
            if self._email_taken(employee.email, employee.id):
                raise ConflictError("Employee with this email already exists")
            self._employees[employee.id] = copy.copy(employee)
            self._requests_by_employee.setdefault(employee.id, set())
            return copy.copy(employee)

    def get_employee(self, employee_id: str) -> Employee | None:
        with self._lock:
            employee = self._employees.get(employee_id)
            return copy.copy(employee) if employee else None

    def get_employees(self, employee_ids: Iterable[str]) -> dict[str, Employee]:
        with self._lock:
            return {
                employee_id: copy.copy(self._employees[employee_id])
                for employee_id in set(employee_ids)
                if employee_id in self._employees
            }

    def get_employee_by_email(self, email: str) -> Employee | None:
        with self._lock:
            for employee in self._employees.values():
                if employee.email == email:
                    return copy.copy(employee)
            return None

    def list_employees(self) -> list[Employee]:
        with self._lock:
            employees = [copy.copy(e) for e in self._employees.values()]
        return sorted(employees, key=lambda e: e.created_at, reverse=True)

    def update_employee(self, employee_id: str, changes: dict[str, Any]) -> Employee | None:
        with self._lock:
            employee = self._employees.get(employee_id)
            if employee is None:
                return None
            if "email" in changes and self._email_taken(changes["email"], employee_id):
                raise ConflictError("Email already exists for another employee")
            for key, value in changes.items():
                setattr(employee, key, value)
            employee.updated_at = utcnow()
            return copy.copy(employee)

    def delete_employee(self, employee_id: str) -> bool:
        with self._lock:
            if self._employees.pop(employee_id, None) is None:
                return False
            for request_id in self._requests_by_employee.pop(employee_id, set()):
                self._requests.pop(request_id, None)
            return True

    # Leave requests

    def add_request(self, leave_request: LeaveRequest) -> LeaveRequest:
        with self._lock:
            if leave_request.employee_id not in self._employees:
                raise KeyError(f"Unknown employee {leave_request.employee_id}")
            self._requests[leave_request.id] = copy.copy(leave_request)
            self._requests_by_employee[leave_request.employee_id].add(leave_request.id)
            return copy.copy(leave_request)

    def get_request(self, request_id: str) -> LeaveRequest | None:
        with self._lock:
            leave_request = self._requests.get(request_id)
            return copy.copy(leave_request) if leave_request else None

    def list_requests(
        self,
        employee_id: str | None = None,
        statuses: set[LeaveStatus] | None = None,
    ) -> list[LeaveRequest]:
        with self._lock:
            if employee_id is None:
                candidates = list(self._requests.values())
            else:
                ids = self._requests_by_employee.get(employee_id, set())
                candidates = [r for r in self._requests.values() if r.id in ids]
            matches = [
                copy.copy(r) for r in candidates if statuses is None or r.status in statuses
            ]
        return sorted(matches, key=lambda r: r.applied_at, reverse=True)

    def page_requests(
        self,
        employee_id: str | None,
        status: LeaveStatus | None,
        offset: int,
        limit: int,
    ) -> tuple[list[LeaveRequest], int]:
        matches = self.list_requests(employee_id, {status} if status else None)
        return matches[offset : offset + limit], len(matches)

    def update_request_if_pending(
        self, request_id: str, changes: dict[str, Any]
    ) -> LeaveRequest | None:
        with self._lock:
            leave_request = self._requests.get(request_id)
            if leave_request is None or leave_request.status != LeaveStatus.PENDING:
                return None
            for key, value in changes.items():
                setattr(leave_request, key, value)
            return copy.copy(leave_request)

    def delete_request_if_pending(self, request_id: str) -> bool:
        with self._lock:
            leave_request = self._requests.get(request_id)
            if leave_request is None or leave_request.status != LeaveStatus.PENDING:
                return False
            del self._requests[request_id]
            self._requests_by_employee[leave_request.employee_id].discard(request_id)
            return True


def build_store(settings) -> LeaveStore:
    """SQL store when DATABASE_URL is set, otherwise the in-memory store."""
    if settings.database_url:
        from leave_service.sql_store import SqlStore

        return SqlStore(
            settings.database_url,
            failure_threshold=settings.circuit_breaker_failure_threshold,
            timeout=settings.circuit_breaker_timeout,
        )

    seed = None
    if settings.seed_demo_data:
        from data.seed_data import get_demo_employees

        seed = get_demo_employees()
    return InMemoryStore(seed=seed)
