"""
Validation rules for employees and leave applications.

Every rule raises ``ValidationError`` with a message meant for the HR user;
nothing here touches the store or the clock, ``today`` is always passed in.
"""

import re
from datetime import date

from leave_service.errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def validate_date_range(start_date: date, end_date: date) -> None:
    # Strict: a leave application must span at least two calendar days.
    if start_date >= end_date:
        raise ValidationError("End date must be after start date")


def validate_joining_date(joining_date: date, today: date) -> None:
    """Employee create/update only. Not applied when leave is submitted."""
    if joining_date > today:
        raise ValidationError("Joining date cannot be in the future")


def validate_leave_balance(leave_balance) -> None:
    if isinstance(leave_balance, bool) or not isinstance(leave_balance, int):
        raise ValidationError("Leave balance must be a non-negative number")
    if leave_balance < 0:
        raise ValidationError("Leave balance cannot be negative")


def validate_leave_application(
    start_date: date,
    end_date: date,
    joining_date: date,
    requested_days: int,
    available_balance: int,
    today: date,
) -> None:
    """
    Check a leave application, stopping at the first failed rule.

    Order:
    1. start on or after the joining date
    2. start today or later
    3. end strictly after start
    4. requested days within the available balance

    Raises:
        ValidationError: describing the first rule that failed
    """
    if start_date < joining_date:
        raise ValidationError("Cannot apply for leave before joining date")

    if start_date < today:
        raise ValidationError("Cannot apply for leave in the past")

    validate_date_range(start_date, end_date)

    if requested_days > available_balance:
        raise ValidationError(
            f"Insufficient leave balance. Available: {available_balance} days, "
            f"Requested: {requested_days} days"
        )
