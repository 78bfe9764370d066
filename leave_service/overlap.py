"""
Overlap detection between a candidate date range and existing requests.
"""

from collections.abc import Collection, Iterable
from datetime import date

from leave_service.models import LeaveRequest, LeaveStatus

# Statuses that hold calendar days at submission time.
ACTIVE_STATUSES = frozenset({LeaveStatus.PENDING, LeaveStatus.APPROVED})


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Inclusive bounds: ranges that only touch at an endpoint still overlap."""
    return start_a <= end_b and end_a >= start_b


def find_overlaps(
    start_date: date,
    end_date: date,
    existing: Iterable[LeaveRequest],
    statuses: Collection[LeaveStatus] = ACTIVE_STATUSES,
    exclude_id: str | None = None,
) -> list[LeaveRequest]:
    """
    Return the requests in ``existing`` that clash with ``start_date``..``end_date``.

    Args:
        start_date: candidate start
        end_date: candidate end
        existing: the employee's requests
        statuses: only requests in these statuses are compared
        exclude_id: request to ignore (the one under review)
    """
    return [
        r
        for r in existing
        if r.status in statuses
        and r.id != exclude_id
        and ranges_overlap(start_date, end_date, r.start_date, r.end_date)
    ]
