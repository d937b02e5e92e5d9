"""
Leave-balance accounting.

Balances are never stored. They are recomputed on every query from the
Approved requests, so an out-of-band edit to a leave can never leave a
running counter out of step. The annual limit is advisory: it is reported,
not enforced at submission.
"""

import logging
from collections.abc import Iterable
from datetime import date

from data.leave_policies import get_leave_limit
from leaveflow.models import BalanceSummary, LeaveBalance, LeaveRequest, LeaveStatus, LeaveType
from leaveflow.observability import trace_span
from leaveflow.store import LeaveStore

logger = logging.getLogger(__name__)


def year_bounds(year: int) -> tuple[date, date]:
    """First and last calendar day of ``year``."""
    return date(year, 1, 1), date(year, 12, 31)


def tally_usage(leaves: Iterable[LeaveRequest], year: int) -> dict[LeaveType, float]:
    """
    Sum leave values of Approved requests starting in ``year``, per leave type.

    Pure over its input: the same records always give the same totals.
    """
    year_start, year_end = year_bounds(year)
    usage: dict[LeaveType, float] = {}
    for leave in leaves:
        if leave.status != LeaveStatus.APPROVED:
            continue
        if not year_start <= leave.from_date <= year_end:
            continue
        usage[leave.leave_type] = usage.get(leave.leave_type, 0) + leave.leave_value
    return usage


def build_balance(staff_id: str, leave_type: LeaveType, year: int, used: float) -> LeaveBalance:
    limit = get_leave_limit(leave_type.value)
    return LeaveBalance(
        staff_id=staff_id,
        leave_type=leave_type,
        year=year,
        limit=limit,
        used=used,
        remaining=max(0, limit - used),
    )


def compute_balance(
    store: LeaveStore, staff_id: str, leave_type: LeaveType, year: int | None = None
) -> LeaveBalance:
    """
    Consumed and remaining days of one leave type for a staff member.

    Args:
        store: Leave record store
        staff_id: Staff member
        leave_type: Leave type to account
        year: Calendar year, defaults to the current year
    """
    year = year or date.today().year
    with trace_span("compute_balance", staff=staff_id, leave_type=leave_type.value, year=year):
        approved = store.query_leaves(
            staff_id=staff_id, status=LeaveStatus.APPROVED, leave_type=leave_type
        )
        used = tally_usage(approved, year).get(leave_type, 0)
        balance = build_balance(staff_id, leave_type, year, used)

    if balance.used > balance.limit:
        logger.warning(
            f"Staff {staff_id} has used {balance.used} of {balance.limit} days "
            f"of {leave_type.value} in {year}"
        )
    return balance


def summarize_balances(store: LeaveStore, staff_id: str, year: int | None = None) -> BalanceSummary:
    """Balances for every leave type plus total days used in the year."""
    year = year or date.today().year
    with trace_span("summarize_balances", staff=staff_id, year=year):
        approved = store.query_leaves(staff_id=staff_id, status=LeaveStatus.APPROVED)
        usage = tally_usage(approved, year)

    balances = [
        build_balance(staff_id, leave_type, year, usage.get(leave_type, 0))
        for leave_type in LeaveType
    ]
    return BalanceSummary(
        staff_id=staff_id,
        year=year,
        total_used=sum(usage.values()),
        balances=balances,
    )
