"""
Reviewer actions on existing leave requests.

The workflow engine decides the next state first; only a legal transition
reaches the store, and the write is conditional on the request still being in
the state it was read in.
"""

import logging
from datetime import datetime, timezone

from leaveflow.exceptions import IllegalTransition, LeaveError
from leaveflow.models import Actor, LeaveRequest, LeaveStatus, ReviewAction, Role
from leaveflow.observability import trace_span
from leaveflow.store import LeaveStore
from leaveflow.submission import ADMIN_APPROVER
from leaveflow.workflow import WorkflowState, apply_action

logger = logging.getLogger(__name__)


def review_leave(store: LeaveStore, actor: Actor, leave_id: str, action: ReviewAction) -> LeaveRequest:
    """
    Recommend, approve or reject a leave request.

    Raises:
        LeaveNotFound: No such request
        IllegalTransition: The actor may not take this action now
        StaleRecord: Someone else acted on the request first
        StoreUnavailable: The store could not be reached
    """
    with trace_span("review_leave", leave=leave_id, action=action.value, role=actor.role.value):
        leave = store.get_leave(leave_id)

        if actor.role == Role.HOD:
            owner = store.get_staff(leave.staff_id)
            if actor.department is None or owner.department != actor.department:
                logger.warning(
                    f"HOD {actor.staff_id} refused on leave {leave_id}: "
                    f"staff department {owner.department}"
                )
                raise IllegalTransition("HODs may only review requests from their own department")

        current = WorkflowState.of(leave)
        next_state = apply_action(current, leave.leave_type, actor.role, action)

        changes = {"status": next_state.status, "recommended_by": next_state.recommended_by}
        if actor.role == Role.ADMIN and next_state.status == LeaveStatus.APPROVED:
            changes["approved_by"] = ADMIN_APPROVER
            changes["approved_at"] = datetime.now(timezone.utc)

        try:
            updated = store.update_leave(
                leave_id,
                changes,
                expected={"status": current.status, "recommended_by": current.recommended_by},
            )
        except LeaveError as e:
            logger.error(f"Failed to apply {action.value} on leave {leave_id}: {e}")
            raise

    logger.info(
        f"Leave {leave_id}: {current.status.value} -> {updated.status.value} "
        f"by {actor.role.value} {actor.staff_id}"
    )
    return updated
