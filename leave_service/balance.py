"""
Leave balance accounting.

Used and available days are derived from APPROVED requests on every call.
The raw available figure gates approvals and may be negative after an
administrative balance cut; ``display_balance`` floors it for read endpoints.
"""

from collections.abc import Iterable

from leave_service.days import inclusive_days
from leave_service.models import Employee, LeaveRequest, LeaveStatus


def used_days(requests: Iterable[LeaveRequest], exclude_id: str | None = None) -> int:
    return sum(
        inclusive_days(r.start_date, r.end_date)
        for r in requests
        if r.status == LeaveStatus.APPROVED and r.id != exclude_id
    )


def available_balance(
    employee: Employee, requests: Iterable[LeaveRequest], exclude_id: str | None = None
) -> int:
    """``leave_balance - used_days``, unfloored. ``exclude_id`` skips the request under review."""
    return employee.leave_balance - used_days(requests, exclude_id=exclude_id)


def display_balance(employee: Employee, requests: Iterable[LeaveRequest]) -> int:
    return max(0, available_balance(employee, requests))
