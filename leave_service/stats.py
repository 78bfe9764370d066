"""
Yearly leave statistics, for one employee or for the whole company.

Only requests whose start date falls inside the calendar year are counted.
"""

import math
from collections import Counter, defaultdict
from datetime import date
from typing import Any

from leave_service.balance import used_days
from leave_service.errors import NotFoundError, ValidationError
from leave_service.models import LeaveRequest, LeaveStatus
from leave_service.observability import trace_span
from leave_service.store import LeaveStore


def _in_year(requests: list[LeaveRequest], year: int) -> list[LeaveRequest]:
    first, last = date(year, 1, 1), date(year, 12, 31)
    return [r for r in requests if first <= r.start_date <= last]


def _average(total: int, count: int) -> int:
    # Halves round up: 2.5 -> 3.
    return math.floor(total / count + 0.5) if count > 0 else 0


def get_leave_stats(store: LeaveStore, year: int, employee_id: str | None = None) -> dict[str, Any]:
    """
    Aggregate counts and approved day totals for ``year``.

    With ``employee_id``: the employee's balance, used days, floored remaining
    balance and per-status counts. Without it: company totals plus a
    per-department breakdown.
    """
    if not 1 <= year <= 9999:
        raise ValidationError("Invalid year")

    with trace_span("get_leave_stats", year=year, employee=employee_id or "all"):
        if employee_id:
            employee = store.get_employee(employee_id)
            if employee is None:
                raise NotFoundError("Employee not found")

            requests = _in_year(store.list_requests(employee_id), year)
            counts = Counter(r.status for r in requests)
            used = used_days(requests)
            return {
                "employee_id": employee.id,
                "employee_name": employee.name,
                "year": year,
                "total_leave_balance": employee.leave_balance,
                "used_leave_days": used,
                "remaining_balance": max(0, employee.leave_balance - used),
                "pending_requests": counts[LeaveStatus.PENDING],
                "approved_requests": counts[LeaveStatus.APPROVED],
                "rejected_requests": counts[LeaveStatus.REJECTED],
            }

        employees = store.list_employees()
        department_of = {e.id: e.department for e in employees}
        requests = _in_year(store.list_requests(), year)
        counts = Counter(r.status for r in requests)
        approved = [r for r in requests if r.status == LeaveStatus.APPROVED]
        total_approved_days = used_days(approved)

        headcount = Counter(e.department for e in employees)
        approved_by_department: dict[str, list[LeaveRequest]] = defaultdict(list)
        for r in approved:
            approved_by_department[department_of.get(r.employee_id)].append(r)

        department_stats = []
        for department, employee_count in sorted(headcount.items()):
            dept_approved = approved_by_department.get(department, [])
            dept_days = used_days(dept_approved)
            department_stats.append(
                {
                    "department": department,
                    "employee_count": employee_count,
                    "approved_leave_requests": len(dept_approved),
                    "total_leave_days": dept_days,
                    "average_leave_days_per_employee": _average(dept_days, employee_count),
                }
            )

        return {
            "year": year,
            "total_employees": len(employees),
            "pending_requests": counts[LeaveStatus.PENDING],
            "approved_requests": counts[LeaveStatus.APPROVED],
            "rejected_requests": counts[LeaveStatus.REJECTED],
            "total_approved_leave_days": total_approved_days,
            "average_leave_days_per_employee": _average(total_approved_days, len(employees)),
            "department_stats": department_stats,
        }
