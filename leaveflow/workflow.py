"""
Leave approval workflow engine.

A pure state machine over ``(status, recommendedBy)``. Given the leave type,
the acting role and an action it either returns the next state or raises
``IllegalTransition``; it never touches the store, so callers can validate a
transition before any write and re-run it safely on every snapshot.

Two variants, chosen by leave type:

- Standard (every type except Compensatory Leave):
  Pending -> Recommended (by a reviewing tier) -> Approved | Rejected by a
  higher tier, or Pending -> Approved | Rejected directly by a Director or
  the Principal. An HOD may only recommend or reject. A Recommended request
  is only actionable for tiers above the one that recommended it.

- Compensatory Leave, a strict three-tier chain:
  Pending -> Recommended{HOD} -> Recommended{Director} -> Approved | Rejected
  Each tier acts only when the marker names the tier directly below it, and
  only the Principal may approve.

Administrators sit outside the tier table: they may approve or reject any
non-terminal request, but never recommend.
"""

import logging
from dataclasses import dataclass

from leaveflow.exceptions import IllegalTransition
from leaveflow.models import LeaveRequest, LeaveStatus, LeaveType, ReviewAction, Role, Tier

logger = logging.getLogger(__name__)

# staff < hod < dir < princi; admin is an out-of-band override
ROLE_RANK = {
    Role.STAFF: 0,
    Role.HOD: 1,
    Role.DIRECTOR: 2,
    Role.PRINCIPAL: 3,
}

ROLE_TIER = {
    Role.HOD: Tier.HOD,
    Role.DIRECTOR: Tier.DIRECTOR,
    Role.PRINCIPAL: Tier.PRINCIPAL,
}

TIER_RANK = {tier: ROLE_RANK[role] for role, tier in ROLE_TIER.items()}

TOP_RANK = max(TIER_RANK.values())

# Lowest tier that may give final approval on a standard request
APPROVER_RANK = TIER_RANK[Tier.DIRECTOR]

# Compensatory chain: the marker each tier expects to find on the request
COMPENSATORY_PREDECESSOR = {
    Tier.HOD: None,
    Tier.DIRECTOR: Tier.HOD,
    Tier.PRINCIPAL: Tier.DIRECTOR,
}

COMPENSATORY_ACTIONS = {
    Tier.HOD: frozenset({ReviewAction.RECOMMEND, ReviewAction.REJECT}),
    Tier.DIRECTOR: frozenset({ReviewAction.RECOMMEND, ReviewAction.REJECT}),
    Tier.PRINCIPAL: frozenset({ReviewAction.APPROVE, ReviewAction.REJECT}),
}

ADMIN_ACTIONS = frozenset({ReviewAction.APPROVE, ReviewAction.REJECT})

NO_ACTIONS = frozenset()


@dataclass(frozen=True)
class WorkflowState:
    status: LeaveStatus
    recommended_by: Tier | None = None

    @classmethod
    def of(cls, leave: LeaveRequest) -> "WorkflowState":
        return cls(status=leave.status, recommended_by=leave.recommended_by)


def _standard_actions(state: WorkflowState, tier: Tier) -> frozenset:
    rank = TIER_RANK[tier]
    if state.status == LeaveStatus.RECOMMENDED:
        # Recommended requests belong to the tiers above the recommender
        if state.recommended_by is None or TIER_RANK[state.recommended_by] >= rank:
            return NO_ACTIONS

    actions = {ReviewAction.REJECT}
    if rank >= APPROVER_RANK:
        actions.add(ReviewAction.APPROVE)
    if rank < TOP_RANK:
        actions.add(ReviewAction.RECOMMEND)
    return frozenset(actions)


def _compensatory_actions(state: WorkflowState, tier: Tier) -> frozenset:
    expected = COMPENSATORY_PREDECESSOR[tier]
    if expected is None:
        matches = state.status == LeaveStatus.PENDING and state.recommended_by is None
    else:
        matches = state.status == LeaveStatus.RECOMMENDED and state.recommended_by == expected

    return COMPENSATORY_ACTIONS[tier] if matches else NO_ACTIONS


def allowed_actions(state: WorkflowState, leave_type: LeaveType, role: Role) -> frozenset:
    """Return the actions ``role`` may take on a request in ``state``."""
    if state.status.is_terminal:
        return NO_ACTIONS

    if role == Role.ADMIN:
        return ADMIN_ACTIONS

    tier = ROLE_TIER.get(role)
    if tier is None:
        return NO_ACTIONS

    if leave_type == LeaveType.COMPENSATORY:
        return _compensatory_actions(state, tier)
    return _standard_actions(state, tier)


def apply_action(
    state: WorkflowState, leave_type: LeaveType, role: Role, action: ReviewAction
) -> WorkflowState:
    """
    Compute the state that results from ``role`` taking ``action``.

    Raises:
        IllegalTransition: If the action is not permitted from this state.
    """
    if action not in allowed_actions(state, leave_type, role):
        if state.status.is_terminal:
            reason = f"request is already {state.status.value}"
        else:
            marker = state.recommended_by.value if state.recommended_by else "none"
            reason = (
                f"role '{role.value}' cannot {action.value.lower()} a {leave_type.value} "
                f"request in state {state.status.value} (recommendedBy={marker})"
            )
        logger.warning(f"Refused transition: {reason}")
        raise IllegalTransition(f"Action '{action.value}' refused: {reason}")

    if action == ReviewAction.RECOMMEND:
        return WorkflowState(status=LeaveStatus.RECOMMENDED, recommended_by=ROLE_TIER[role])
    if action == ReviewAction.APPROVE:
        return WorkflowState(status=LeaveStatus.APPROVED, recommended_by=state.recommended_by)
    return WorkflowState(status=LeaveStatus.REJECTED, recommended_by=state.recommended_by)


def is_actionable(leave: LeaveRequest, role: Role) -> bool:
    """True if ``role`` has at least one legal action on ``leave``."""
    return bool(allowed_actions(WorkflowState.of(leave), leave.leave_type, role))


def initial_state(role: Role, leave_type: LeaveType | None = None) -> WorkflowState:
    """
    State a newly submitted request starts in, by submitting role.

    An HOD's own request skips their own review and enters the chain already
    recommended at HOD level. A Director's own Compensatory Leave likewise
    starts recommended at Director level, so it goes straight to the
    Principal. The Principal has no tier above them: their own Compensatory
    Leave starts Pending and only an administrator can settle it.
    Administrator entries are created approved.
    """
    if role == Role.ADMIN:
        return WorkflowState(status=LeaveStatus.APPROVED)
    if role == Role.HOD:
        return WorkflowState(status=LeaveStatus.RECOMMENDED, recommended_by=Tier.HOD)
    if role == Role.DIRECTOR and leave_type == LeaveType.COMPENSATORY:
        return WorkflowState(status=LeaveStatus.RECOMMENDED, recommended_by=Tier.DIRECTOR)
    return WorkflowState(status=LeaveStatus.PENDING)
