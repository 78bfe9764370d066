from fastapi import APIRouter, Depends, Query, status

from leave_service.config import settings
from leave_service.dependencies import get_leave_request_service, get_store
from leave_service.days import inclusive_days
from leave_service.lifecycle import LeaveRequestService
from leave_service.models import LeaveRequest
from leave_service.schemas import LeaveRequestCreate, LeaveReview
from leave_service.stats import get_leave_stats
from leave_service.store import LeaveStore

router = APIRouter(
    prefix="/leave-requests",
    tags=["Leave Requests"],
)


def _present(leave_request: LeaveRequest, employees: dict) -> dict:
    """Request record with its day count and owner summary."""
    data = leave_request.to_dict()
    data["leave_days"] = inclusive_days(leave_request.start_date, leave_request.end_date)
    data["employee"] = employees.get(leave_request.employee_id)
    return data


@router.get("")
def list_leave_requests(
    employee_id: str | None = None,
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_limit, ge=1, le=settings.max_page_limit),
    service: LeaveRequestService = Depends(get_leave_request_service),
):
    """
    Page through leave requests, most recently applied first.

    Example:
    GET /leave-requests?employee_id=3f2a...&status=PENDING&page=1&limit=10
    """
    result = service.list_requests(
        employee_id=employee_id, status=status_filter, page=page, limit=limit
    )
    return {
        "success": True,
        "data": {
            "leave_requests": [
                _present(r, result["employees"]) for r in result["leave_requests"]
            ],
            "pagination": result["pagination"],
        },
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def submit_leave_request(
    payload: LeaveRequestCreate,
    service: LeaveRequestService = Depends(get_leave_request_service),
):
    """
    Apply for leave.

    Fails with 400 when a rule is broken (before joining date, in the past,
    end not after start, insufficient balance), 404 for an unknown employee
    and 409 when the dates overlap a pending or approved request.
    """
    result = service.submit(
        employee_id=payload.employee_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
    )
    return {
        "success": True,
        "data": {
            "leave_request": _present(
                result["leave_request"], {result["employee"]["id"]: result["employee"]}
            ),
            "requested_days": result["requested_days"],
            "available_balance": result["remaining_after"],
        },
        "message": "Leave request submitted successfully",
    }


@router.get("/stats")
def leave_stats(
    employee_id: str | None = None,
    year: int | None = None,
    store: LeaveStore = Depends(get_store),
    service: LeaveRequestService = Depends(get_leave_request_service),
):
    """Yearly statistics; company-wide with a department breakdown unless employee_id is given."""
    year = year if year is not None else service.today().year
    return {"success": True, "data": get_leave_stats(store, year, employee_id)}


@router.get("/{request_id}")
def get_leave_request(
    request_id: str,
    service: LeaveRequestService = Depends(get_leave_request_service),
):
    result = service.get(request_id)
    leave_request = result["leave_request"]
    return {
        "success": True,
        "data": _present(leave_request, {leave_request.employee_id: result["employee"]}),
    }


@router.put("/{request_id}")
def review_leave_request(
    request_id: str,
    payload: LeaveReview,
    service: LeaveRequestService = Depends(get_leave_request_service),
):
    """Approve or reject a pending request. Reviewed requests cannot be reviewed again."""
    leave_request = service.review(
        request_id,
        status=payload.status,
        reviewed_by=payload.reviewed_by,
        comments=payload.comments,
    )
    return {
        "success": True,
        "data": _present(leave_request, service.employee_summaries([leave_request])),
        "message": f"Leave request {leave_request.status.value.lower()} successfully",
    }


@router.delete("/{request_id}")
def cancel_leave_request(
    request_id: str,
    service: LeaveRequestService = Depends(get_leave_request_service),
):
    """Cancel a pending request. Approved or rejected requests cannot be cancelled."""
    service.cancel(request_id)
    return {"success": True, "message": "Leave request cancelled successfully"}
