"""
FastAPI application serving the leave workflow.
Provides REST API endpoints for submission, review, balances, bulk import
and monitoring.

Callers are identified by the ``X-Staff-Id`` and ``X-Role`` headers set by the
identity provider in front of this service.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from leaveflow.balance import compute_balance, summarize_balances
from leaveflow.bulk_import import BulkImportReport, BulkLeaveImporter
from leaveflow.config import settings
from leaveflow.exceptions import (
    IllegalTransition,
    LeaveError,
    LeaveValidationError,
    NotFoundError,
    StaffNotFound,
    StaleRecord,
    StoreError,
)
from leaveflow.models import (
    Actor,
    BalanceSummary,
    LeaveBalance,
    LeaveRequest,
    ReviewAction,
    Role,
)
from leaveflow.reports import leave_stats, newest_first, review_queue
from leaveflow.review import review_leave
from leaveflow.store import LeaveStore, get_store
from leaveflow.submission import LeaveSubmission, submit_leave
from leaveflow.validation import parse_leave_type

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Most specific class first; StaleRecord is also a StoreError
ERROR_STATUS = (
    (LeaveValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (IllegalTransition, status.HTTP_403_FORBIDDEN),
    (StaleRecord, status.HTTP_409_CONFLICT),
    (StoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


# Pydantic models for API
class ReviewRequest(BaseModel):
    """Request model for reviewer actions."""

    model_config = ConfigDict(json_schema_extra={"example": {"action": "Recommend"}})

    action: ReviewAction = Field(..., description="Recommend, Approve or Reject")


class BulkImportRequest(BaseModel):
    """Rows already extracted from the uploaded sheet, keyed by header."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "rows": [
                    {
                        "Email": "anita.menon@college.edu",
                        "Leave Type": "Casual Leave",
                        "From Date": "2024-05-10",
                        "To Date": "2024-05-11",
                        "Session": "Full Day",
                        "Reason": "Family function",
                        "Status": "Approved",
                    }
                ]
            }
        }
    )

    rows: list[dict[str, Any]] = Field(..., description="Sheet rows in order, header row excluded")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    environment: str
    store_circuit_breaker: dict | None


# Exception handlers


def _status_for(error: LeaveError) -> int:
    for error_class, code in ERROR_STATUS:
        if isinstance(error, error_class):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def _leave_error_handler(request: Request, exc: LeaveError) -> JSONResponse:
    code = _status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} refused: {exc.code} {exc.message}")
    return JSONResponse(status_code=code, content={"error": exc.code, "detail": exc.message})


async def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "InternalError", "detail": "An unexpected error occurred."},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the domain error mapping to the app."""
    app.add_exception_handler(LeaveError, _leave_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)


# Dependencies


def get_actor(
    x_staff_id: str = Header(..., description="Authenticated staff id"),
    x_role: str = Header(..., description="Role granted by the identity provider"),
    store: LeaveStore = Depends(get_store),
) -> Actor:
    """Resolve the caller from identity headers and the staff directory."""
    try:
        role = Role(x_role.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Unknown role '{x_role}'"
        ) from None

    try:
        staff = store.get_staff(x_staff_id)
    except StaffNotFound:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Caller is not in the staff directory"
        ) from None

    return Actor(staff_id=staff.id, role=role, department=staff.department)


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != Role.ADMIN:
        raise IllegalTransition("Administrator role required")
    return actor


def _check_balance_access(actor: Actor, staff_id: str) -> None:
    if actor.role == Role.STAFF and actor.staff_id != staff_id:
        raise IllegalTransition("Staff may only view their own balances")


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    logger.info("Starting Leave Workflow API")
    logger.info(f"Environment: {settings.environment}")

    store = None
    try:
        store = get_store()
        logger.info(f"Leave store ready: {type(store).__name__}")
    except StoreError as e:
        logger.error(f"Failed to initialize leave store: {e}")

    yield

    # Shutdown
    logger.info("Shutting down Leave Workflow API")
    if store is not None:
        store.close()


# Create FastAPI app
app = FastAPI(
    title="Leave Workflow API",
    description="Leave requests, multi-tier approval and leave-balance accounting",
    version=API_VERSION,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# API Endpoints


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {"message": "Leave Workflow API", "version": API_VERSION, "docs": "/docs"}


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(store: LeaveStore = Depends(get_store)):
    """
    Health check endpoint.
    Returns service status and circuit breaker state.
    """
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        store_circuit_breaker=store.get_circuit_breaker_state(),
    )


@app.get("/ready", tags=["Health"])
def ready():
    return {"status": "ready"}


@app.get("/metrics", tags=["Monitoring"])
def metrics(store: LeaveStore = Depends(get_store)):
    """
    Monitoring endpoint.

    Returns:
    - Circuit breaker state
    - Leave request counts by status
    """
    return {
        "circuit_breaker": store.get_circuit_breaker_state(),
        "leave_requests": leave_stats(store.query_leaves()),
        "environment": settings.environment,
    }


@app.post(
    "/leaves",
    response_model=LeaveRequest,
    status_code=status.HTTP_201_CREATED,
    tags=["Leaves"],
)
def create_leave(
    submission: LeaveSubmission,
    actor: Actor = Depends(get_actor),
    store: LeaveStore = Depends(get_store),
):
    """
    Submit a leave request.

    Staff, directors and the principal submit for themselves and start Pending.
    An HOD's own request starts Recommended at HOD level. Administrators enter
    leave for the staff member named in ``staffId``; such entries are created
    Approved.
    """
    return submit_leave(store, actor, submission)


@app.post("/leaves/bulk", response_model=BulkImportReport, tags=["Leaves"])
def bulk_import(
    request: BulkImportRequest,
    actor: Actor = Depends(require_admin),
    store: LeaveStore = Depends(get_store),
):
    """Import historical leave rows. Invalid rows are reported and skipped."""
    logger.info(f"Bulk import of {len(request.rows)} rows by {actor.staff_id}")
    return BulkLeaveImporter(store).run(request.rows)


@app.get("/leaves/queue", response_model=list[LeaveRequest], tags=["Leaves"])
def leave_queue(actor: Actor = Depends(get_actor), store: LeaveStore = Depends(get_store)):
    """Requests the caller can act on now, newest first."""
    directory = {member.id: member for member in store.list_staff()}
    return review_queue(store.query_leaves(), actor, directory)


@app.get("/leaves/history", response_model=list[LeaveRequest], tags=["Leaves"])
def leave_history(actor: Actor = Depends(get_actor), store: LeaveStore = Depends(get_store)):
    """The caller's own requests, newest first."""
    return newest_first(store.query_leaves(staff_id=actor.staff_id))


@app.get("/leaves/stats", tags=["Leaves"])
def leave_statistics(
    staff_id: str | None = None,
    actor: Actor = Depends(get_actor),
    store: LeaveStore = Depends(get_store),
):
    """Dashboard counts for one staff member, or the whole institution when omitted."""
    if actor.role == Role.STAFF:
        if staff_id not in (None, actor.staff_id):
            raise IllegalTransition("Staff may only view their own statistics")
        staff_id = actor.staff_id
    return leave_stats(store.query_leaves(staff_id=staff_id))


@app.post("/leaves/{leave_id}/actions", response_model=LeaveRequest, tags=["Leaves"])
def act_on_leave(
    leave_id: str,
    request: ReviewRequest,
    actor: Actor = Depends(get_actor),
    store: LeaveStore = Depends(get_store),
):
    """
    Recommend, approve or reject a leave request.

    Returns 403 when the caller's role may not take the action in the
    request's current state, and 409 when the request changed underneath.
    """
    return review_leave(store, actor, leave_id, request.action)


@app.get("/staff/{staff_id}/balances", response_model=BalanceSummary, tags=["Balances"])
def staff_balances(
    staff_id: str,
    year: int | None = None,
    actor: Actor = Depends(get_actor),
    store: LeaveStore = Depends(get_store),
):
    """Balances for every leave type plus total days used in the year."""
    _check_balance_access(actor, staff_id)
    store.get_staff(staff_id)
    return summarize_balances(store, staff_id, year)


@app.get(
    "/staff/{staff_id}/balances/{leave_type}", response_model=LeaveBalance, tags=["Balances"]
)
def staff_balance(
    staff_id: str,
    leave_type: str,
    year: int | None = None,
    actor: Actor = Depends(get_actor),
    store: LeaveStore = Depends(get_store),
):
    """Consumed and remaining days of one leave type."""
    _check_balance_access(actor, staff_id)
    store.get_staff(staff_id)
    return compute_balance(store, staff_id, parse_leave_type(leave_type), year)


if __name__ == "__main__":
    uvicorn.run(
        "leaveflow.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8080)),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
