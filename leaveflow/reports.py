"""
Read-side views over leave records: review queues, history and dashboard counts.
All functions here are pure over the records they are given.
"""

from collections.abc import Iterable
from datetime import datetime, time, timezone

from leaveflow.models import Actor, LeaveRequest, LeaveStatus, Role, Staff
from leaveflow.workflow import is_actionable


def _sort_key(leave: LeaveRequest) -> datetime:
    if leave.created_at is not None:
        stamp = leave.created_at
    else:
        stamp = datetime.combine(leave.from_date, time.min)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def newest_first(leaves: Iterable[LeaveRequest]) -> list[LeaveRequest]:
    """Order by creation time, newest first; undated records fall back to their start date."""
    return sorted(leaves, key=_sort_key, reverse=True)


def review_queue(
    leaves: Iterable[LeaveRequest], actor: Actor, directory: dict[str, Staff]
) -> list[LeaveRequest]:
    """
    Requests the actor can act on right now, newest first.

    Requests the workflow gives the actor no action on are filtered out. An
    HOD additionally only sees requests from staff of their own department.
    """
    queue = []
    for leave in leaves:
        if not is_actionable(leave, actor.role):
            continue
        if actor.role == Role.HOD:
            owner = directory.get(leave.staff_id)
            if actor.department is None or owner is None or owner.department != actor.department:
                continue
        queue.append(leave)
    return newest_first(queue)


def leave_stats(leaves: Iterable[LeaveRequest]) -> dict[str, int]:
    """Request counts by status, plus the total."""
    stats = {"total": 0}
    for status in LeaveStatus:
        stats[status.value.lower()] = 0
    for leave in leaves:
        stats["total"] += 1
        stats[leave.status.value.lower()] += 1
    return stats
