"""
FastAPI application serving the leave management API.
Provides REST endpoints for employees, leave requests and statistics.
"""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from leave_service.api import employees, leave_requests
from leave_service.config import settings
from leave_service.dependencies import close_store, get_store
from leave_service.errors import LeaveServiceError
from leave_service.store import LeaveStore

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

GENERIC_ERROR = "An unexpected error occurred"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    environment: str
    store: str
    store_circuit_breaker: dict | None = None


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting Leave Management API")
    logger.info(f"Environment: {settings.environment}")

    store = get_store()
    logger.info(f"Using {store.kind} store")

    yield

    logger.info("Shutting down Leave Management API")
    close_store()


app = FastAPI(
    title="Leave Management API",
    description="Employee records, leave requests and the approval workflow for HR staff",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LeaveServiceError)
async def leave_service_error_handler(request: Request, exc: LeaveServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code, content={"success": False, "error": GENERIC_ERROR}
        )
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings get the same 400 envelope as rule violations."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    message = first.get("msg", "Invalid request")
    error = f"{field}: {message}" if field else message
    logger.info(f"{request.method} {request.url.path} -> 400: {error}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"success": False, "error": error}
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": GENERIC_ERROR},
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {"message": "Leave Management API", "version": "1.0.0", "docs": "/docs"}


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check(store: LeaveStore = Depends(get_store)):
    """
    Health check endpoint.
    Returns the active store and, for the SQL store, its circuit breaker state.
    """
    breaker = getattr(store, "circuit_breaker", None)
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        store=store.kind,
        store_circuit_breaker=breaker.get_state() if breaker else None,
    )


app.include_router(employees.router)
app.include_router(leave_requests.router)


if __name__ == "__main__":
    uvicorn.run(
        "leave_service.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8080)),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
