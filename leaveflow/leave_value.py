"""
Leave value calculation: how many days a request deducts from the balance.
"""

from datetime import date

from leaveflow.models import LeaveSession

HALF_DAY_VALUE = 0.5


def calculate_leave_value(
    session: LeaveSession, from_date: date, to_date: date
) -> tuple[float, date]:
    """
    Compute the day value of a leave and its effective end date.

    Half-day sessions are always worth 0.5 and end on the day they start,
    whatever end date was supplied. Full days count inclusively, so a leave
    from the 1st to the 3rd is worth 3.

    Returns:
        (leave_value, effective_to_date)
    """
    if session.is_half_day:
        return HALF_DAY_VALUE, from_date

    days = (to_date - from_date).days + 1
    return float(max(days, 0)), to_date
