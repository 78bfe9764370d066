"""
Leave request lifecycle.

States: PENDING (initial), APPROVED and REJECTED (terminal). Cancelling a
PENDING request deletes it. ``next_status`` is the only place that decides
whether an action is legal; the service methods below orchestrate the
validation, balance and overlap checks around it.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any

from leave_service.balance import available_balance
from leave_service.days import inclusive_days, parse_date, today_in
from leave_service.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from leave_service.models import LeaveRequest, LeaveStatus, utcnow
from leave_service.observability import trace_span
from leave_service.overlap import ACTIVE_STATUSES, find_overlaps
from leave_service.store import LeaveStore
from leave_service.validation import validate_leave_application

logger = logging.getLogger(__name__)


class LeaveAction(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"


_TRANSITIONS: dict[tuple[LeaveStatus, LeaveAction], LeaveStatus | None] = {
    (LeaveStatus.PENDING, LeaveAction.APPROVE): LeaveStatus.APPROVED,
    (LeaveStatus.PENDING, LeaveAction.REJECT): LeaveStatus.REJECTED,
    (LeaveStatus.PENDING, LeaveAction.CANCEL): None,
}

REVIEW_ACTIONS = {
    LeaveStatus.APPROVED: LeaveAction.APPROVE,
    LeaveStatus.REJECTED: LeaveAction.REJECT,
}


def next_status(current: LeaveStatus, action: LeaveAction) -> LeaveStatus | None:
    """
    Resolve ``action`` applied to a request in ``current`` state.

    Returns the new status, or None when the request is to be deleted.

    Raises:
        InvalidTransitionError: reviewing a request that was already reviewed
        ValidationError: cancelling a request that is not PENDING
    """
    key = (current, action)
    if key in _TRANSITIONS:
        return _TRANSITIONS[key]
    if action == LeaveAction.CANCEL:
        raise ValidationError(f"Cannot cancel {current.value.lower()} request")
    raise InvalidTransitionError(f"Leave request is already {current.value.lower()}")


def _already_reviewed(leave_request: LeaveRequest | None) -> InvalidTransitionError:
    if leave_request is None or not leave_request.status.is_terminal:
        return InvalidTransitionError("Leave request is already reviewed")
    return InvalidTransitionError(
        f"Leave request is already {leave_request.status.value.lower()}"
    )


class LeaveRequestService:
    """
    Submit, review, cancel and read leave requests.

    Args:
        store: record keeper
        clock: returns the current time; "today" is its calendar day in ``tz_name``
        tz_name: IANA timezone used to decide what "today" is
    """

    def __init__(
        self,
        store: LeaveStore,
        clock: Callable[[], datetime] = utcnow,
        tz_name: str = "UTC",
    ):
        self.store = store
        self.clock = clock
        self.tz_name = tz_name

    def today(self):
        return today_in(self.clock(), self.tz_name)

    def _get_request(self, request_id: str) -> LeaveRequest:
        leave_request = self.store.get_request(request_id)
        if leave_request is None:
            raise NotFoundError("Leave request not found")
        return leave_request

    def submit(
        self,
        employee_id: str | None,
        start_date,
        end_date,
        reason: str | None,
    ) -> dict[str, Any]:
        """
        Create a PENDING leave request after all rules pass.

        Returns:
            Dictionary with the created ``leave_request``, the ``requested_days``
            and the balance left once it is approved (``remaining_after``).
        """
        with trace_span("submit_leave_request", employee=employee_id):
            if not employee_id or not start_date or not end_date or reason is None:
                raise ValidationError(
                    "Missing required fields: employee_id, start_date, end_date, reason"
                )
            if not reason.strip():
                raise ValidationError("Reason cannot be empty")

            start = parse_date(start_date)
            end = parse_date(end_date)

            employee = self.store.get_employee(employee_id)
            if employee is None:
                raise NotFoundError("Employee not found")

            existing = self.store.list_requests(employee_id, ACTIVE_STATUSES)
            requested_days = inclusive_days(start, end)
            available = available_balance(employee, existing)

            validate_leave_application(
                start, end, employee.joining_date, requested_days, available, self.today()
            )

            overlapping = find_overlaps(start, end, existing, ACTIVE_STATUSES)
            if overlapping:
                logger.info(
                    f"Submission for employee {employee_id} overlaps "
                    f"{[r.id for r in overlapping]}"
                )
                raise ConflictError(
                    "Leave request overlaps with existing pending or approved leave",
                    conflicts=[r.summary() for r in overlapping],
                )

            leave_request = self.store.add_request(
                LeaveRequest(
                    employee_id=employee_id,
                    start_date=start,
                    end_date=end,
                    reason=reason.strip(),
                    applied_at=self.clock(),
                )
            )
            logger.info(
                f"Leave request {leave_request.id} submitted: employee={employee_id}, "
                f"{start}..{end} ({requested_days} days)"
            )
            return {
                "leave_request": leave_request,
                "employee": employee.summary(),
                "requested_days": requested_days,
                "remaining_after": available - requested_days,
            }

    def review(
        self,
        request_id: str,
        status: LeaveStatus | str | None,
        reviewed_by: str | None,
        comments: str | None = None,
    ) -> LeaveRequest:
        """Move a PENDING request to APPROVED or REJECTED. Irrevocable."""
        with trace_span("review_leave_request", request=request_id, status=status):
            try:
                target = LeaveStatus(status)
            except ValueError:
                target = None
            if target not in REVIEW_ACTIONS:
                raise ValidationError("Status must be either APPROVED or REJECTED")
            if not reviewed_by or not reviewed_by.strip():
                raise ValidationError("reviewed_by field is required")

            leave_request = self._get_request(request_id)
            new_status = next_status(leave_request.status, REVIEW_ACTIONS[target])

            if new_status == LeaveStatus.APPROVED:
                self._check_approvable(leave_request)

            updated = self.store.update_request_if_pending(
                request_id,
                {
                    "status": new_status,
                    "reviewed_by": reviewed_by.strip(),
                    "reviewed_at": self.clock(),
                    "comments": comments.strip() if comments and comments.strip() else None,
                },
            )
            if updated is None:
                # Another reviewer or a cancellation got there first.
                current = self.store.get_request(request_id)
                logger.warning(f"Lost review race on leave request {request_id}")
                raise _already_reviewed(current)

            logger.info(
                f"Leave request {request_id} {new_status.value.lower()} by {updated.reviewed_by}"
            )
            return updated

    def _check_approvable(self, leave_request: LeaveRequest) -> None:
        employee = self.store.get_employee(leave_request.employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")

        approved = self.store.list_requests(employee.id, {LeaveStatus.APPROVED})
        requested_days = inclusive_days(leave_request.start_date, leave_request.end_date)
        available = available_balance(employee, approved, exclude_id=leave_request.id)
        if requested_days > available:
            raise ValidationError(
                f"Cannot approve: Insufficient leave balance. Available: {available} days, "
                f"Requested: {requested_days} days"
            )

        overlapping = find_overlaps(
            leave_request.start_date,
            leave_request.end_date,
            approved,
            statuses={LeaveStatus.APPROVED},
            exclude_id=leave_request.id,
        )
        if overlapping:
            raise ConflictError(
                "Cannot approve: Leave request overlaps with existing approved leave",
                conflicts=[r.summary() for r in overlapping],
            )

    def cancel(self, request_id: str) -> None:
        """Delete a PENDING request."""
        with trace_span("cancel_leave_request", request=request_id):
            leave_request = self._get_request(request_id)
            next_status(leave_request.status, LeaveAction.CANCEL)

            if not self.store.delete_request_if_pending(request_id):
                current = self.store.get_request(request_id)
                if current is None:
                    raise NotFoundError("Leave request not found")
                next_status(current.status, LeaveAction.CANCEL)
                raise ConflictError("Leave request changed while cancelling")
            logger.info(f"Leave request {request_id} cancelled")

    def employee_summaries(self, requests: list[LeaveRequest]) -> dict[str, dict[str, Any]]:
        """Owner summaries for ``requests`` from a single store lookup."""
        employees = self.store.get_employees(r.employee_id for r in requests)
        return {employee_id: e.summary() for employee_id, e in employees.items()}

    def get(self, request_id: str) -> dict[str, Any]:
        leave_request = self._get_request(request_id)
        return {
            "leave_request": leave_request,
            "employee": self.employee_summaries([leave_request]).get(leave_request.employee_id),
            "leave_days": inclusive_days(leave_request.start_date, leave_request.end_date),
        }

    def list_requests(
        self,
        employee_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict[str, Any]:
        """
        One page of requests, most recently applied first.

        ``employees`` maps each owner id on the page to its summary. Unknown
        status values are ignored rather than rejected.
        """
        if employee_id and self.store.get_employee(employee_id) is None:
            raise NotFoundError("Employee not found")
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive integers")

        try:
            status_filter = LeaveStatus(status) if status else None
        except ValueError:
            status_filter = None

        items, total = self.store.page_requests(
            employee_id or None, status_filter, (page - 1) * limit, limit
        )
        return {
            "leave_requests": items,
            "employees": self.employee_summaries(items),
            "pagination": {
                "page": page,
                "limit": limit,
                "total_count": total,
                "total_pages": -(-total // limit),
            },
        }
