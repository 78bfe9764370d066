"""
Domain records: employees and their leave requests.

A request points at its employee through ``employee_id`` only; stores keep
whatever index they need to answer "requests of employee X".
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


class LeaveStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not LeaveStatus.PENDING


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Employee:
    name: str
    email: str
    department: str
    joining_date: date
    leave_balance: int = 20
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def summary(self) -> dict[str, Any]:
        """Owner details embedded in leave request responses."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "department": self.department,
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class LeaveRequest:
    employee_id: str
    start_date: date
    end_date: date
    reason: str
    status: LeaveStatus = LeaveStatus.PENDING
    id: str = field(default_factory=new_id)
    applied_at: datetime = field(default_factory=utcnow)
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    comments: str | None = None

    def summary(self) -> dict[str, Any]:
        """Identifier and date range, as reported in conflict errors."""
        return {
            "id": self.id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status.value,
        }

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data
