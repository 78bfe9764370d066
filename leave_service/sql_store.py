"""
SQLAlchemy-backed store with circuit breaker protection.

Works with any SQLAlchemy URL (SQLite for local runs, MySQL/PostgreSQL in
deployment). Tables are created on startup if missing.
"""

import logging
from collections.abc import Iterable
from contextlib import contextmanager
from typing import Any

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from leave_service.circuit_breaker import CircuitBreaker, with_circuit_breaker
from leave_service.errors import ConflictError
from leave_service.models import Employee, LeaveRequest, LeaveStatus, utcnow
from leave_service.observability import trace_span
from leave_service.store import LeaveStore

logger = logging.getLogger(__name__)

Base = declarative_base()


class EmployeeRow(Base):
    __tablename__ = "employees"

    id = Column(String(32), primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    department = Column(String(100), nullable=False)
    joining_date = Column(Date, nullable=False)
    leave_balance = Column(Integer, nullable=False, default=20)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class LeaveRequestRow(Base):
    __tablename__ = "leave_requests"

    id = Column(String(32), primary_key=True)
    employee_id = Column(
        String(32), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=LeaveStatus.PENDING.value, index=True)
    applied_at = Column(DateTime(timezone=True), nullable=False)
    reviewed_by = Column(String(200), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    comments = Column(Text, nullable=True)


EMPLOYEE_FIELDS = (
    "id",
    "name",
    "email",
    "department",
    "joining_date",
    "leave_balance",
    "created_at",
    "updated_at",
)
REQUEST_FIELDS = (
    "id",
    "employee_id",
    "start_date",
    "end_date",
    "reason",
    "applied_at",
    "reviewed_by",
    "reviewed_at",
    "comments",
)


def _to_employee(row: EmployeeRow) -> Employee:
    return Employee(**{f: getattr(row, f) for f in EMPLOYEE_FIELDS})


def _to_request(row: LeaveRequestRow) -> LeaveRequest:
    return LeaveRequest(
        status=LeaveStatus(row.status), **{f: getattr(row, f) for f in REQUEST_FIELDS}
    )


def _request_columns(changes: dict[str, Any]) -> dict[str, Any]:
    values = dict(changes)
    if "status" in values:
        values["status"] = LeaveStatus(values["status"]).value
    return values


class SqlStore(LeaveStore):
    """
    Relational store.

    Every public method runs in its own transaction and is routed through the
    circuit breaker; only ``SQLAlchemyError`` counts as a breaker failure.
    Unique-email violations are translated to ``ConflictError`` inside the
    call, so they never count against the breaker.
    """

    kind = "sql"

    def __init__(self, database_url: str, failure_threshold: int = 5, timeout: int = 60):
        engine_kwargs: dict[str, Any] = {"future": True}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url or database_url in ("sqlite://", "sqlite+pysqlite://"):
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(database_url, **engine_kwargs)
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            timeout=timeout,
            name="SqlStoreCircuitBreaker",
            tracked_exceptions=(SQLAlchemyError,),
        )

        Base.metadata.create_all(self.engine)
        logger.info(f"SQL store initialized ({self.engine.dialect.name})")

    @contextmanager
    def session(self):
        """Transaction scope: commit on success, roll back on any error."""
        session: Session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # Employees

    @with_circuit_breaker
    def add_employee(self, employee: Employee) -> Employee:
        try:
            with trace_span("sql_add_employee", employee=employee.id), self.session() as s:
                s.add(EmployeeRow(**{f: getattr(employee, f) for f in EMPLOYEE_FIELDS}))
        except IntegrityError as e:
            # Lost a race with a concurrent create using the same email.
            raise ConflictError("Employee with this email already exists") from e
        return employee

    @with_circuit_breaker
    def get_employee(self, employee_id: str) -> Employee | None:
        with self.session() as s:
            row = s.get(EmployeeRow, employee_id)
            return _to_employee(row) if row else None

    @with_circuit_breaker
    def get_employees(self, employee_ids: Iterable[str]) -> dict[str, Employee]:
        ids = set(employee_ids)
        if not ids:
            return {}
        with self.session() as s:
            rows = s.execute(select(EmployeeRow).where(EmployeeRow.id.in_(ids))).scalars()
            return {r.id: _to_employee(r) for r in rows}

    @with_circuit_breaker
    def get_employee_by_email(self, email: str) -> Employee | None:
        with self.session() as s:
            row = s.execute(
                select(EmployeeRow).where(EmployeeRow.email == email)
            ).scalar_one_or_none()
            return _to_employee(row) if row else None

    @with_circuit_breaker
    def list_employees(self) -> list[Employee]:
        with self.session() as s:
            rows = s.execute(select(EmployeeRow).order_by(EmployeeRow.created_at.desc())).scalars()
            return [_to_employee(r) for r in rows]

    @with_circuit_breaker
    def update_employee(self, employee_id: str, changes: dict[str, Any]) -> Employee | None:
        try:
            with trace_span("sql_update_employee", employee=employee_id), self.session() as s:
                row = s.get(EmployeeRow, employee_id)
                if row is None:
                    return None
                for key, value in changes.items():
                    setattr(row, key, value)
                row.updated_at = utcnow()
                s.flush()
                return _to_employee(row)
        except IntegrityError as e:
            raise ConflictError("Email already exists for another employee") from e

    @with_circuit_breaker
    def delete_employee(self, employee_id: str) -> bool:
        with trace_span("sql_delete_employee", employee=employee_id), self.session() as s:
            row = s.get(EmployeeRow, employee_id)
            if row is None:
                return False
            # Explicit cascade: SQLite does not enforce foreign keys by default.
            s.execute(delete(LeaveRequestRow).where(LeaveRequestRow.employee_id == employee_id))
            s.delete(row)
            return True

    # Leave requests

    @with_circuit_breaker
    def add_request(self, leave_request: LeaveRequest) -> LeaveRequest:
        with trace_span("sql_add_request", request=leave_request.id), self.session() as s:
            s.add(
                LeaveRequestRow(
                    status=leave_request.status.value,
                    **{f: getattr(leave_request, f) for f in REQUEST_FIELDS},
                )
            )
        return leave_request

    @with_circuit_breaker
    def get_request(self, request_id: str) -> LeaveRequest | None:
        with self.session() as s:
            row = s.get(LeaveRequestRow, request_id)
            return _to_request(row) if row else None

    def _filtered(self, stmt, employee_id, statuses):
        if employee_id is not None:
            stmt = stmt.where(LeaveRequestRow.employee_id == employee_id)
        if statuses:
            stmt = stmt.where(LeaveRequestRow.status.in_([s.value for s in statuses]))
        return stmt

    @with_circuit_breaker
    def list_requests(
        self,
        employee_id: str | None = None,
        statuses: set[LeaveStatus] | None = None,
    ) -> list[LeaveRequest]:
        with self.session() as s:
            stmt = self._filtered(select(LeaveRequestRow), employee_id, statuses)
            rows = s.execute(stmt.order_by(LeaveRequestRow.applied_at.desc())).scalars()
            return [_to_request(r) for r in rows]

    @with_circuit_breaker
    def page_requests(
        self,
        employee_id: str | None,
        status: LeaveStatus | None,
        offset: int,
        limit: int,
    ) -> tuple[list[LeaveRequest], int]:
        statuses = {status} if status else None
        with self.session() as s:
            count_stmt = self._filtered(
                select(func.count()).select_from(LeaveRequestRow), employee_id, statuses
            )
            total = s.execute(count_stmt).scalar_one()
            stmt = self._filtered(select(LeaveRequestRow), employee_id, statuses)
            rows = s.execute(
                stmt.order_by(LeaveRequestRow.applied_at.desc()).offset(offset).limit(limit)
            ).scalars()
            return [_to_request(r) for r in rows], total

    @with_circuit_breaker
    def update_request_if_pending(
        self, request_id: str, changes: dict[str, Any]
    ) -> LeaveRequest | None:
        with trace_span("sql_review_request", request=request_id), self.session() as s:
            result = s.execute(
                update(LeaveRequestRow)
                .where(
                    LeaveRequestRow.id == request_id,
                    LeaveRequestRow.status == LeaveStatus.PENDING.value,
                )
                .values(**_request_columns(changes))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None
            row = s.get(LeaveRequestRow, request_id, populate_existing=True)
            return _to_request(row)

    @with_circuit_breaker
    def delete_request_if_pending(self, request_id: str) -> bool:
        with trace_span("sql_cancel_request", request=request_id), self.session() as s:
            result = s.execute(
                delete(LeaveRequestRow)
                .where(
                    LeaveRequestRow.id == request_id,
                    LeaveRequestRow.status == LeaveStatus.PENDING.value,
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def close(self) -> None:
        self.engine.dispose()
        logger.info("SQL store closed")
