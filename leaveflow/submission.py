"""
Leave request submission.

Validates a request, computes its leave value and creates it in the initial
state the workflow assigns to the submitting role:

- staff, director, principal: Pending
- HOD on their own behalf: Recommended by HOD
- director's own Compensatory Leave: Recommended by Director
- administrator on behalf of a chosen staff member: Approved, stamped as an
  administrative entry
"""

import logging
from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from leaveflow.exceptions import IllegalTransition, InvalidDateRange, MissingField
from leaveflow.leave_value import calculate_leave_value
from leaveflow.models import Actor, LeaveRequest, Role
from leaveflow.observability import trace_span
from leaveflow.store import LeaveStore, new_record_id
from leaveflow.validation import check_date_range, parse_leave_type, parse_session
from leaveflow.workflow import initial_state

logger = logging.getLogger(__name__)

ADMIN_APPROVER = "Admin"


class LeaveSubmission(BaseModel):
    """A leave request as entered by the caller."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "type": "Casual Leave",
                "session": "Full Day",
                "fromDate": "2024-03-01",
                "toDate": "2024-03-03",
                "reason": "Family function",
            }
        },
    )

    leave_type: str = Field(..., alias="type", description="Leave type name")
    session: str = Field("Full Day", description="Full Day, Forenoon/Morning or Afternoon")
    from_date: date = Field(..., alias="fromDate")
    to_date: date | None = Field(None, alias="toDate", description="Ignored for half-day sessions")
    reason: str = ""
    description: str = ""
    staff_id: str | None = Field(
        None, alias="staffId", description="Staff member the entry is for (administrators only)"
    )


def submit_leave(store: LeaveStore, actor: Actor, submission: LeaveSubmission) -> LeaveRequest:
    """
    Validate and persist a new leave request.

    Raises:
        UnknownLeaveType, InvalidSession, InvalidDateRange, MissingField: bad input
        IllegalTransition: a non-administrator submitting for someone else
        StaffNotFound: the owning staff member is not in the directory
    """
    with trace_span("submit_leave", staff=actor.staff_id, role=actor.role.value):
        leave_type = parse_leave_type(submission.leave_type)
        session = parse_session(submission.session)

        reason = submission.reason.strip()
        if not reason:
            raise MissingField("Reason is required")

        to_date = submission.to_date
        if session.is_half_day:
            to_date = submission.from_date
        elif to_date is None:
            raise MissingField("To Date is required for a full-day leave")
        check_date_range(submission.from_date, to_date)

        leave_value, to_date = calculate_leave_value(session, submission.from_date, to_date)
        if leave_value <= 0:
            raise InvalidDateRange("Leave must cover at least half a day")

        owner_id = _resolve_owner(actor, submission)
        owner = store.get_staff(owner_id)

        state = initial_state(actor.role, leave_type)
        now = datetime.now(timezone.utc)
        leave = LeaveRequest(
            id=new_record_id(),
            staff_id=owner.id,
            staff_email=owner.email,
            leave_type=leave_type,
            session=session,
            from_date=submission.from_date,
            to_date=to_date,
            leave_value=leave_value,
            reason=reason,
            description=submission.description.strip(),
            status=state.status,
            recommended_by=state.recommended_by,
            created_at=now,
        )
        if actor.role == Role.ADMIN:
            leave = leave.model_copy(
                update={"is_admin_entry": True, "approved_by": ADMIN_APPROVER, "approved_at": now}
            )

        store.create_leave(leave)

    logger.info(
        f"Leave {leave.id} submitted by {actor.role.value} {actor.staff_id}: "
        f"{leave_type.value} {leave.from_date}..{leave.to_date} value={leave_value} "
        f"status={leave.status.value}"
    )
    return leave


def _resolve_owner(actor: Actor, submission: LeaveSubmission) -> str:
    if actor.role == Role.ADMIN:
        if not submission.staff_id:
            raise MissingField("Select the staff member the leave is for")
        return submission.staff_id

    if submission.staff_id and submission.staff_id != actor.staff_id:
        raise IllegalTransition("Only administrators may enter leave for another staff member")
    return actor.staff_id
