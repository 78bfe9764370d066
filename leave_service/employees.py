"""
Employee records and their leave balance.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from leave_service.balance import display_balance, used_days
from leave_service.days import parse_date, today_in
from leave_service.errors import ConflictError, NotFoundError, ValidationError
from leave_service.models import Employee, LeaveStatus, utcnow
from leave_service.observability import trace_span
from leave_service.store import LeaveStore
from leave_service.validation import (
    validate_email,
    validate_joining_date,
    validate_leave_balance,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "email", "department", "joining_date", "leave_balance")


class EmployeeService:
    """CRUD for employees plus balance reads and administrative balance edits."""

    def __init__(
        self,
        store: LeaveStore,
        clock: Callable[[], datetime] = utcnow,
        tz_name: str = "UTC",
        default_leave_balance: int = 20,
    ):
        self.store = store
        self.clock = clock
        self.tz_name = tz_name
        self.default_leave_balance = default_leave_balance

    def _get(self, employee_id: str) -> Employee:
        employee = self.store.get_employee(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")
        return employee

    def create(
        self,
        name: str | None,
        email: str | None,
        department: str | None,
        joining_date,
        leave_balance: int | None = None,
    ) -> Employee:
        with trace_span("create_employee", email=email):
            required = (name, email, department)
            if not all(v and v.strip() for v in required) or not joining_date:
                raise ValidationError(
                    "Missing required fields: name, email, department, joining_date"
                )
            if not validate_email(email):
                raise ValidationError("Invalid email format")

            parsed_joining_date = self._parse_joining_date(joining_date)
            validate_joining_date(parsed_joining_date, today_in(self.clock(), self.tz_name))

            if leave_balance is None:
                leave_balance = self.default_leave_balance
            validate_leave_balance(leave_balance)

            if self.store.get_employee_by_email(email):
                raise ConflictError("Employee with this email already exists")

            now = self.clock()
            employee = self.store.add_employee(
                Employee(
                    name=name.strip(),
                    email=email,
                    department=department.strip(),
                    joining_date=parsed_joining_date,
                    leave_balance=leave_balance,
                    created_at=now,
                    updated_at=now,
                )
            )
            logger.info(f"Employee {employee.id} created ({employee.department})")
            return employee

    def _parse_joining_date(self, value):
        try:
            return parse_date(value)
        except ValidationError as e:
            raise ValidationError("Invalid joining date format") from e

    def get(self, employee_id: str) -> dict[str, Any]:
        """The employee together with all of its leave requests."""
        employee = self._get(employee_id)
        return {
            "employee": employee,
            "leave_requests": self.store.list_requests(employee_id),
        }

    def list_employees(self) -> list[Employee]:
        return self.store.list_employees()

    def update(self, employee_id: str, **fields) -> Employee:
        """
        Partial update. Keys set to None are treated as absent.

        Raises:
            NotFoundError: unknown employee
            ValidationError: empty name/department, bad email, future joining
                date, negative balance
            ConflictError: email already used by another employee
        """
        with trace_span("update_employee", employee=employee_id):
            self._get(employee_id)

            unknown = set(fields) - set(UPDATABLE_FIELDS)
            if unknown:
                raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

            changes: dict[str, Any] = {}

            name = fields.get("name")
            if name is not None:
                if not name.strip():
                    raise ValidationError("Name cannot be empty")
                changes["name"] = name.strip()

            email = fields.get("email")
            if email is not None:
                if not validate_email(email):
                    raise ValidationError("Invalid email format")
                other = self.store.get_employee_by_email(email)
                if other is not None and other.id != employee_id:
                    raise ConflictError("Email already exists for another employee")
                changes["email"] = email

            department = fields.get("department")
            if department is not None:
                if not department.strip():
                    raise ValidationError("Department cannot be empty")
                changes["department"] = department.strip()

            joining_date = fields.get("joining_date")
            if joining_date is not None:
                parsed = self._parse_joining_date(joining_date)
                validate_joining_date(parsed, today_in(self.clock(), self.tz_name))
                changes["joining_date"] = parsed

            leave_balance = fields.get("leave_balance")
            if leave_balance is not None:
                validate_leave_balance(leave_balance)
                changes["leave_balance"] = leave_balance

            employee = self.store.update_employee(employee_id, changes)
            if employee is None:
                raise NotFoundError("Employee not found")
            logger.info(f"Employee {employee_id} updated: {sorted(changes)}")
            return employee

    def delete(self, employee_id: str) -> None:
        """Delete the employee; its leave requests go with it."""
        with trace_span("delete_employee", employee=employee_id):
            if not self.store.delete_employee(employee_id):
                raise NotFoundError("Employee not found")
            logger.info(f"Employee {employee_id} deleted")

    def get_balance(self, employee_id: str) -> dict[str, Any]:
        """Balance summary for display; ``available_balance`` is floored at zero."""
        employee = self._get(employee_id)
        approved = self.store.list_requests(employee_id, {LeaveStatus.APPROVED})
        return {
            "employee_id": employee.id,
            "employee_name": employee.name,
            "employee_email": employee.email,
            "total_leave_balance": employee.leave_balance,
            "used_leave_days": used_days(approved),
            "available_balance": display_balance(employee, approved),
            "approved_leave_requests": len(approved),
        }

    def set_balance(
        self, employee_id: str, new_balance: int, reason: str | None = None
    ) -> dict[str, Any]:
        """Administrative edit of the annual entitlement."""
        with trace_span("set_employee_balance", employee=employee_id):
            validate_leave_balance(new_balance)
            previous = self._get(employee_id)
            updated = self.store.update_employee(employee_id, {"leave_balance": new_balance})
            if updated is None:
                raise NotFoundError("Employee not found")
            logger.info(
                f"Leave balance of {employee_id} changed "
                f"{previous.leave_balance} -> {updated.leave_balance}"
            )
            return {
                "employee_id": updated.id,
                "employee_name": updated.name,
                "previous_balance": previous.leave_balance,
                "new_balance": updated.leave_balance,
                "reason": reason or "Balance updated by HR",
            }
