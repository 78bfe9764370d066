"""
Tests for the leave request lifecycle: submit, review, cancel, list.
"""

from datetime import date
from unittest.mock import patch

import pytest

from leave_service.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from leave_service.lifecycle import LeaveAction, next_status
from leave_service.models import LeaveStatus
from tests.conftest import NOW


class TestStateMachine:
    """Test the transition function."""

    def test_pending_transitions(self):
        assert next_status(LeaveStatus.PENDING, LeaveAction.APPROVE) == LeaveStatus.APPROVED
        assert next_status(LeaveStatus.PENDING, LeaveAction.REJECT) == LeaveStatus.REJECTED
        assert next_status(LeaveStatus.PENDING, LeaveAction.CANCEL) is None

    @pytest.mark.parametrize("current", [LeaveStatus.APPROVED, LeaveStatus.REJECTED])
    @pytest.mark.parametrize("action", [LeaveAction.APPROVE, LeaveAction.REJECT])
    def test_reviewed_requests_cannot_be_reviewed_again(self, current, action):
        with pytest.raises(InvalidTransitionError, match=f"already {current.value.lower()}"):
            next_status(current, action)

    @pytest.mark.parametrize("current", [LeaveStatus.APPROVED, LeaveStatus.REJECTED])
    def test_reviewed_requests_cannot_be_cancelled(self, current):
        with pytest.raises(ValidationError, match=f"Cannot cancel {current.value.lower()} request"):
            next_status(current, LeaveAction.CANCEL)


class TestSubmit:
    """Test leave submission."""

    def test_scenario_a_successful_submission(self, leave_service, employee_service, employee):
        """Balance 20, 3-day request: created as PENDING, 17 days left after it."""
        result = leave_service.submit(employee.id, "2025-06-10", "2025-06-12", "  Family trip  ")

        leave_request = result["leave_request"]
        assert leave_request.status == LeaveStatus.PENDING
        assert leave_request.reason == "Family trip"
        assert leave_request.applied_at == NOW
        assert leave_request.reviewed_by is None
        assert result["requested_days"] == 3
        assert result["remaining_after"] == 17

    def test_scenario_b_overlap_with_approved(self, leave_service, employee, add_request):
        existing = add_request(
            employee.id, date(2025, 6, 11), date(2025, 6, 13), status=LeaveStatus.APPROVED
        )

        with pytest.raises(ConflictError) as exc_info:
            leave_service.submit(employee.id, "2025-06-12", "2025-06-14", "Trip")

        assert exc_info.value.status_code == 409
        assert exc_info.value.conflicts == [
            {
                "id": existing.id,
                "start_date": "2025-06-11",
                "end_date": "2025-06-13",
                "status": "APPROVED",
            }
        ]

    def test_overlap_with_pending(self, leave_service, employee, add_request):
        add_request(employee.id, date(2025, 6, 14), date(2025, 6, 16))

        with pytest.raises(ConflictError, match="overlaps"):
            leave_service.submit(employee.id, "2025-06-12", "2025-06-14", "Trip")

    def test_rejected_requests_do_not_block(self, leave_service, employee, add_request):
        add_request(employee.id, date(2025, 6, 12), date(2025, 6, 14), status=LeaveStatus.REJECTED)

        result = leave_service.submit(employee.id, "2025-06-12", "2025-06-14", "Trip")
        assert result["leave_request"].status == LeaveStatus.PENDING

    def test_scenario_c_insufficient_balance(self, leave_service, employee_service, employee):
        employee_service.set_balance(employee.id, 5)

        with pytest.raises(ValidationError) as exc_info:
            leave_service.submit(employee.id, "2025-06-10", "2025-06-15", "Trip")

        assert "Available: 5 days, Requested: 6 days" in exc_info.value.message

    def test_balance_accounts_for_approved_requests(self, leave_service, employee, add_request):
        add_request(employee.id, date(2025, 3, 1), date(2025, 3, 18), status=LeaveStatus.APPROVED)

        with pytest.raises(ValidationError, match="Available: 2 days, Requested: 3 days"):
            leave_service.submit(employee.id, "2025-06-10", "2025-06-12", "Trip")

    def test_before_joining_date(self, leave_service, employee_service):
        recent = employee_service.create("New Hire", "new@company.com", "Ops", "2025-06-01")
        with pytest.raises(ValidationError, match="before joining date"):
            leave_service.submit(recent.id, "2025-05-30", "2025-06-03", "Trip")

    def test_in_the_past(self, leave_service, employee):
        with pytest.raises(ValidationError, match="in the past"):
            leave_service.submit(employee.id, "2025-05-20", "2025-06-03", "Trip")

    def test_same_day_request_rejected(self, leave_service, employee):
        with pytest.raises(ValidationError, match="End date must be after start date"):
            leave_service.submit(employee.id, "2025-06-10", "2025-06-10", "Trip")

    def test_unknown_employee(self, leave_service):
        with pytest.raises(NotFoundError, match="Employee not found"):
            leave_service.submit("missing", "2025-06-10", "2025-06-12", "Trip")

    def test_blank_reason(self, leave_service, employee):
        with pytest.raises(ValidationError, match="Reason cannot be empty"):
            leave_service.submit(employee.id, "2025-06-10", "2025-06-12", "   ")

    def test_missing_fields(self, leave_service, employee):
        with pytest.raises(ValidationError, match="Missing required fields"):
            leave_service.submit(employee.id, None, "2025-06-12", "Trip")

    def test_bad_date(self, leave_service, employee):
        with pytest.raises(ValidationError, match="Invalid date format"):
            leave_service.submit(employee.id, "soon", "2025-06-12", "Trip")

    def test_partial_end_date_rejected(self, leave_service, employee):
        """A bare day number is not completed from today's month and year."""
        with pytest.raises(ValidationError, match="Invalid date format"):
            leave_service.submit(employee.id, "2025-06-10", "30", "Trip")

    def test_failed_submission_creates_nothing(self, leave_service, store, employee):
        with pytest.raises(ValidationError):
            leave_service.submit(employee.id, "2025-05-20", "2025-06-03", "Trip")
        assert store.list_requests(employee.id) == []


class TestReview:
    """Test approving and rejecting."""

    def test_approve_sets_review_fields(self, leave_service, employee, add_request):
        pending = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12))

        updated = leave_service.review(pending.id, "APPROVED", "  HR Manager ", "  Enjoy  ")

        assert updated.status == LeaveStatus.APPROVED
        assert updated.reviewed_by == "HR Manager"
        assert updated.reviewed_at == NOW
        assert updated.comments == "Enjoy"
        assert updated.applied_at == pending.applied_at

    def test_blank_comments_stored_as_none(self, leave_service, employee, add_request):
        pending = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12))

        updated = leave_service.review(pending.id, LeaveStatus.REJECTED, "HR", "   ")

        assert updated.status == LeaveStatus.REJECTED
        assert updated.comments is None

    def test_scenario_d_already_approved(self, leave_service, store, employee, add_request):
        approved = add_request(
            employee.id,
            date(2025, 6, 10),
            date(2025, 6, 12),
            status=LeaveStatus.APPROVED,
            reviewed_by="HR",
            reviewed_at=NOW,
        )

        with pytest.raises(InvalidTransitionError, match="already approved"):
            leave_service.review(approved.id, "REJECTED", "Someone else")

        unchanged = store.get_request(approved.id)
        assert unchanged.status == LeaveStatus.APPROVED
        assert unchanged.reviewed_by == "HR"

    def test_overlapping_requests_cannot_both_be_approved(
        self, leave_service, employee, add_request
    ):
        first = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12))
        second = add_request(employee.id, date(2025, 6, 12), date(2025, 6, 14))

        leave_service.review(first.id, "APPROVED", "HR")
        with pytest.raises(ConflictError) as exc_info:
            leave_service.review(second.id, "APPROVED", "HR")

        assert [c["id"] for c in exc_info.value.conflicts] == [first.id]
        assert "Cannot approve" in exc_info.value.message

    def test_overlap_ignored_for_rejection(self, leave_service, employee, add_request):
        add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12), status=LeaveStatus.APPROVED)
        pending = add_request(employee.id, date(2025, 6, 11), date(2025, 6, 12))

        updated = leave_service.review(pending.id, "REJECTED", "HR")
        assert updated.status == LeaveStatus.REJECTED

    def test_approval_balance_excludes_self(self, leave_service, employee_service, employee, add_request):
        employee_service.set_balance(employee.id, 3)
        pending = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12))

        updated = leave_service.review(pending.id, "APPROVED", "HR")
        assert updated.status == LeaveStatus.APPROVED

    def test_approval_insufficient_balance(
        self, leave_service, employee_service, employee, add_request
    ):
        pending = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12))
        employee_service.set_balance(employee.id, 2)

        with pytest.raises(ValidationError) as exc_info:
            leave_service.review(pending.id, "APPROVED", "HR")

        assert "Available: 2 days, Requested: 3 days" in exc_info.value.message

    def test_approval_gate_uses_raw_negative_balance(
        self, leave_service, employee_service, employee, add_request
    ):
        add_request(employee.id, date(2025, 3, 1), date(2025, 3, 5), status=LeaveStatus.APPROVED)
        pending = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 11))
        employee_service.set_balance(employee.id, 3)

        with pytest.raises(ValidationError, match="Available: -2 days, Requested: 2 days"):
            leave_service.review(pending.id, "APPROVED", "HR")

    @pytest.mark.parametrize("status", [None, "PENDING", "approved-ish", "CANCELLED"])
    def test_invalid_target_status(self, leave_service, employee, add_request, status):
        pending = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12))
        with pytest.raises(ValidationError, match="APPROVED or REJECTED"):
            leave_service.review(pending.id, status, "HR")

    def test_reviewer_required(self, leave_service, employee, add_request):
        pending = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12))
        with pytest.raises(ValidationError, match="reviewed_by"):
            leave_service.review(pending.id, "APPROVED", "  ")

    def test_unknown_request(self, leave_service):
        with pytest.raises(NotFoundError, match="Leave request not found"):
            leave_service.review("missing", "APPROVED", "HR")

    def test_lost_race_reports_already_reviewed(
        self, leave_service, store, employee, add_request
    ):
        """A concurrent reviewer wins between our read and our write."""
        pending = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12))
        original_update = store.update_request_if_pending

        def racing_update(request_id, changes):
            original_update(request_id, {"status": LeaveStatus.REJECTED, "reviewed_by": "Other"})
            return original_update(request_id, changes)

        with patch.object(store, "update_request_if_pending", side_effect=racing_update):
            with pytest.raises(InvalidTransitionError, match="already rejected"):
                leave_service.review(pending.id, "APPROVED", "HR")

        assert store.get_request(pending.id).reviewed_by == "Other"


class TestCancel:
    """Test cancellation of pending requests."""

    def test_cancel_pending_deletes(self, leave_service, store, employee, add_request):
        pending = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12))

        leave_service.cancel(pending.id)

        assert store.get_request(pending.id) is None

    @pytest.mark.parametrize("status", [LeaveStatus.APPROVED, LeaveStatus.REJECTED])
    def test_cancel_reviewed_fails_and_keeps_record(
        self, leave_service, store, employee, add_request, status
    ):
        reviewed = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 12), status=status)

        with pytest.raises(ValidationError, match=f"Cannot cancel {status.value.lower()} request"):
            leave_service.cancel(reviewed.id)

        assert store.get_request(reviewed.id) is not None

    def test_cancel_unknown(self, leave_service):
        with pytest.raises(NotFoundError):
            leave_service.cancel("missing")

    def test_cancelled_dates_can_be_requested_again(self, leave_service, employee):
        first = leave_service.submit(employee.id, "2025-06-10", "2025-06-12", "Trip")
        leave_service.cancel(first["leave_request"].id)

        again = leave_service.submit(employee.id, "2025-06-10", "2025-06-12", "Trip")
        assert again["leave_request"].status == LeaveStatus.PENDING


class TestReadOperations:
    """Test get and list."""

    def test_get_includes_leave_days(self, leave_service, employee, add_request):
        pending = add_request(employee.id, date(2025, 6, 10), date(2025, 6, 14))

        result = leave_service.get(pending.id)

        assert result["leave_request"].id == pending.id
        assert result["leave_days"] == 5
        assert result["employee"]["name"] == "John Doe"

    def test_list_pagination(self, leave_service, employee, add_request):
        for day in range(1, 26, 2):
            add_request(employee.id, date(2025, 7, day), date(2025, 7, day + 1))

        result = leave_service.list_requests(page=2, limit=5)

        assert len(result["leave_requests"]) == 5
        assert result["pagination"] == {
            "page": 2,
            "limit": 5,
            "total_count": 13,
            "total_pages": 3,
        }
        assert list(result["employees"]) == [employee.id]

    def test_list_filters_by_status(self, leave_service, employee, add_request):
        add_request(employee.id, date(2025, 7, 1), date(2025, 7, 2))
        add_request(employee.id, date(2025, 7, 5), date(2025, 7, 6), status=LeaveStatus.APPROVED)

        result = leave_service.list_requests(status="APPROVED")

        assert [r.status for r in result["leave_requests"]] == [LeaveStatus.APPROVED]

    def test_unknown_status_filter_is_ignored(self, leave_service, employee, add_request):
        add_request(employee.id, date(2025, 7, 1), date(2025, 7, 2))
        result = leave_service.list_requests(status="WHATEVER")
        assert result["pagination"]["total_count"] == 1

    def test_list_unknown_employee(self, leave_service):
        with pytest.raises(NotFoundError):
            leave_service.list_requests(employee_id="missing")
