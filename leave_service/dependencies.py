"""
FastAPI dependencies: the shared store, the clock, and the services built on them.

Tests swap the store or the clock through ``app.dependency_overrides``.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from fastapi import Depends

from leave_service.config import settings
from leave_service.employees import EmployeeService
from leave_service.lifecycle import LeaveRequestService
from leave_service.models import utcnow
from leave_service.store import LeaveStore, build_store

logger = logging.getLogger(__name__)

_store: LeaveStore | None = None


def get_store() -> LeaveStore:
    """Process-wide store, built from settings on first use."""
    global _store
    if _store is None:
        _store = build_store(settings)
        logger.info(f"Store initialized: {_store.kind}")
    return _store


def close_store() -> None:
    global _store
    if _store is not None:
        _store.close()
        _store = None


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_employee_service(
    store: LeaveStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> EmployeeService:
    return EmployeeService(
        store,
        clock=clock,
        tz_name=settings.timezone,
        default_leave_balance=settings.default_leave_balance,
    )


def get_leave_request_service(
    store: LeaveStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> LeaveRequestService:
    return LeaveRequestService(store, clock=clock, tz_name=settings.timezone)
