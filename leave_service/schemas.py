"""
Request bodies for the HTTP API.

Business fields are optional at this layer so that a missing or empty value
reaches the service and comes back as a 400 with a readable reason, instead
of a generic 422.
"""

from pydantic import BaseModel, ConfigDict, Field


class EmployeeCreate(BaseModel):
    """Body of POST /employees."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Asha Verma",
                "email": "asha.verma@company.com",
                "department": "Engineering",
                "joining_date": "2022-01-15",
                "leave_balance": 20,
            }
        }
    )

    name: str | None = None
    email: str | None = None
    department: str | None = None
    joining_date: str | None = Field(None, description="YYYY-MM-DD")
    leave_balance: int | None = Field(None, description="Annual entitlement, defaults to 20")


class EmployeeUpdate(BaseModel):
    """Body of PUT /employees/{id}. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    email: str | None = None
    department: str | None = None
    joining_date: str | None = None
    leave_balance: int | None = None


class BalanceUpdate(BaseModel):
    """Body of PUT /employees/{id}/balance."""

    leave_balance: int | None = Field(None, description="New annual entitlement")
    reason: str | None = None


class LeaveRequestCreate(BaseModel):
    """Body of POST /leave-requests."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "employee_id": "3f2a9c0d4e5b4a6f8e7d6c5b4a3f2e1d",
                "start_date": "2025-06-10",
                "end_date": "2025-06-12",
                "reason": "Family event",
            }
        }
    )

    employee_id: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    reason: str | None = None


class LeaveReview(BaseModel):
    """Body of PUT /leave-requests/{id}."""

    status: str | None = Field(None, description="APPROVED or REJECTED")
    reviewed_by: str | None = None
    comments: str | None = None
