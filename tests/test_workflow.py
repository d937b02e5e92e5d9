"""
Tests for the approval workflow engine.
"""

import pytest

from leaveflow.exceptions import IllegalTransition
from leaveflow.models import LeaveStatus, LeaveType, ReviewAction, Role, Tier
from leaveflow.workflow import (
    WorkflowState,
    allowed_actions,
    apply_action,
    initial_state,
    is_actionable,
)

PENDING = WorkflowState(LeaveStatus.PENDING)
REVIEWERS = [Role.HOD, Role.DIRECTOR, Role.PRINCIPAL, Role.ADMIN]


class TestStandardWorkflow:
    """Every leave type except Compensatory Leave."""

    def test_pending_is_actionable_by_every_tier(self):
        for role in (Role.HOD, Role.DIRECTOR, Role.PRINCIPAL):
            assert ReviewAction.REJECT in allowed_actions(PENDING, LeaveType.CASUAL, role)

    def test_director_and_principal_approve_directly(self):
        for role in (Role.DIRECTOR, Role.PRINCIPAL):
            result = apply_action(PENDING, LeaveType.CASUAL, role, ReviewAction.APPROVE)
            assert result.status == LeaveStatus.APPROVED

    def test_hod_cannot_give_final_approval(self):
        """An HOD recommends or rejects; approval is left to a senior tier."""
        assert allowed_actions(PENDING, LeaveType.CASUAL, Role.HOD) == frozenset(
            {ReviewAction.RECOMMEND, ReviewAction.REJECT}
        )
        with pytest.raises(IllegalTransition):
            apply_action(PENDING, LeaveType.CASUAL, Role.HOD, ReviewAction.APPROVE)

    def test_staff_cannot_review(self):
        assert allowed_actions(PENDING, LeaveType.CASUAL, Role.STAFF) == frozenset()
        with pytest.raises(IllegalTransition):
            apply_action(PENDING, LeaveType.CASUAL, Role.STAFF, ReviewAction.APPROVE)

    def test_recommend_records_tier(self):
        state = apply_action(PENDING, LeaveType.DUTY, Role.HOD, ReviewAction.RECOMMEND)
        assert state == WorkflowState(LeaveStatus.RECOMMENDED, Tier.HOD)

    def test_principal_cannot_recommend(self):
        """The top tier has no one to recommend to."""
        assert ReviewAction.RECOMMEND not in allowed_actions(
            PENDING, LeaveType.CASUAL, Role.PRINCIPAL
        )

    def test_recommended_only_visible_above_recommender(self):
        state = WorkflowState(LeaveStatus.RECOMMENDED, Tier.DIRECTOR)

        assert allowed_actions(state, LeaveType.VACATION, Role.HOD) == frozenset()
        assert allowed_actions(state, LeaveType.VACATION, Role.DIRECTOR) == frozenset()
        assert ReviewAction.APPROVE in allowed_actions(state, LeaveType.VACATION, Role.PRINCIPAL)

    def test_approve_keeps_recommendation_marker(self):
        state = WorkflowState(LeaveStatus.RECOMMENDED, Tier.HOD)
        result = apply_action(state, LeaveType.CASUAL, Role.DIRECTOR, ReviewAction.APPROVE)
        assert result == WorkflowState(LeaveStatus.APPROVED, Tier.HOD)

    def test_reject_from_pending(self):
        result = apply_action(PENDING, LeaveType.MATERNITY, Role.HOD, ReviewAction.REJECT)
        assert result.status == LeaveStatus.REJECTED


class TestCompensatoryWorkflow:
    """Strict HOD -> Director -> Principal chain."""

    def test_full_chain(self):
        """HOD recommends, Director recommends, Principal approves."""
        state = apply_action(PENDING, LeaveType.COMPENSATORY, Role.HOD, ReviewAction.RECOMMEND)
        assert state == WorkflowState(LeaveStatus.RECOMMENDED, Tier.HOD)

        state = apply_action(state, LeaveType.COMPENSATORY, Role.DIRECTOR, ReviewAction.RECOMMEND)
        assert state == WorkflowState(LeaveStatus.RECOMMENDED, Tier.DIRECTOR)

        state = apply_action(state, LeaveType.COMPENSATORY, Role.PRINCIPAL, ReviewAction.APPROVE)
        assert state == WorkflowState(LeaveStatus.APPROVED, Tier.DIRECTOR)

    def test_principal_cannot_skip_director(self):
        state = WorkflowState(LeaveStatus.RECOMMENDED, Tier.HOD)
        assert allowed_actions(state, LeaveType.COMPENSATORY, Role.PRINCIPAL) == frozenset()
        with pytest.raises(IllegalTransition):
            apply_action(state, LeaveType.COMPENSATORY, Role.PRINCIPAL, ReviewAction.APPROVE)

    def test_director_cannot_act_on_pending(self):
        assert allowed_actions(PENDING, LeaveType.COMPENSATORY, Role.DIRECTOR) == frozenset()

    def test_hod_cannot_approve(self):
        with pytest.raises(IllegalTransition):
            apply_action(PENDING, LeaveType.COMPENSATORY, Role.HOD, ReviewAction.APPROVE)

    def test_hod_cannot_act_twice(self):
        state = WorkflowState(LeaveStatus.RECOMMENDED, Tier.HOD)
        assert allowed_actions(state, LeaveType.COMPENSATORY, Role.HOD) == frozenset()

    def test_director_may_reject(self):
        state = WorkflowState(LeaveStatus.RECOMMENDED, Tier.HOD)
        result = apply_action(state, LeaveType.COMPENSATORY, Role.DIRECTOR, ReviewAction.REJECT)
        assert result.status == LeaveStatus.REJECTED


class TestAdministrator:
    def test_admin_may_approve_any_open_request(self):
        state = WorkflowState(LeaveStatus.RECOMMENDED, Tier.HOD)
        result = apply_action(state, LeaveType.COMPENSATORY, Role.ADMIN, ReviewAction.APPROVE)
        assert result.status == LeaveStatus.APPROVED

    def test_admin_never_recommends(self):
        with pytest.raises(IllegalTransition):
            apply_action(PENDING, LeaveType.CASUAL, Role.ADMIN, ReviewAction.RECOMMEND)


class TestTerminalStates:
    """Approved and Rejected never change again."""

    @pytest.mark.parametrize("status", [LeaveStatus.APPROVED, LeaveStatus.REJECTED])
    @pytest.mark.parametrize("leave_type", [LeaveType.CASUAL, LeaveType.COMPENSATORY])
    def test_no_action_from_terminal(self, status, leave_type):
        state = WorkflowState(status, Tier.DIRECTOR)
        for role in REVIEWERS:
            assert allowed_actions(state, leave_type, role) == frozenset()
            for action in ReviewAction:
                with pytest.raises(IllegalTransition):
                    apply_action(state, leave_type, role, action)

    def test_is_actionable_false_for_terminal(self, make_leave):
        leave = make_leave(status=LeaveStatus.APPROVED)
        assert not is_actionable(leave, Role.PRINCIPAL)
        assert not is_actionable(leave, Role.ADMIN)


class TestInitialState:
    def test_staff_starts_pending(self):
        assert initial_state(Role.STAFF) == WorkflowState(LeaveStatus.PENDING)
        assert initial_state(Role.PRINCIPAL) == WorkflowState(LeaveStatus.PENDING)

    def test_hod_starts_recommended(self):
        assert initial_state(Role.HOD) == WorkflowState(LeaveStatus.RECOMMENDED, Tier.HOD)

    def test_admin_starts_approved(self):
        assert initial_state(Role.ADMIN).status == LeaveStatus.APPROVED

    def test_director_compensatory_goes_to_principal(self):
        """A Director's own compensatory request is reachable by the Principal only."""
        state = initial_state(Role.DIRECTOR, LeaveType.COMPENSATORY)

        assert state == WorkflowState(LeaveStatus.RECOMMENDED, Tier.DIRECTOR)
        assert allowed_actions(state, LeaveType.COMPENSATORY, Role.HOD) == frozenset()
        assert ReviewAction.APPROVE in allowed_actions(
            state, LeaveType.COMPENSATORY, Role.PRINCIPAL
        )

    def test_director_standard_leave_starts_pending(self):
        assert initial_state(Role.DIRECTOR, LeaveType.CASUAL) == WorkflowState(LeaveStatus.PENDING)
