"""
Field-level parsing shared by submission and bulk import.
Each parser either returns a typed value or raises the matching domain error.
"""

import math
from datetime import date, datetime, timedelta
from typing import Any

from dateutil import parser
from dateutil.parser import ParserError

from leaveflow.exceptions import InvalidDate, InvalidDateRange, InvalidSession, UnknownLeaveType
from leaveflow.models import LeaveSession, LeaveType

# Day zero of spreadsheet date serials (1900 date system, leap-year bug included)
SPREADSHEET_EPOCH = date(1899, 12, 30)

# Two defaults that differ in year, month and day: a field the text leaves
# out shows up as a difference between the two parses
_PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2004, 2, 2))

# Sessions a spreadsheet row may name
IMPORT_SESSIONS = (LeaveSession.FULL_DAY, LeaveSession.FORENOON, LeaveSession.AFTERNOON)


def parse_leave_type(value: Any) -> LeaveType:
    text = str(value).strip() if value is not None else ""
    try:
        return LeaveType(text)
    except ValueError:
        raise UnknownLeaveType(f"Invalid or missing Leave Type '{text}'") from None


def parse_session(value: Any, allowed=tuple(LeaveSession)) -> LeaveSession:
    """Parse a session name; blank means a full day."""
    text = str(value).strip() if value is not None else ""
    if not text:
        return LeaveSession.FULL_DAY
    try:
        session = LeaveSession(text)
    except ValueError:
        session = None
    if session not in allowed:
        names = ", ".join(f"'{s.value}'" for s in allowed)
        raise InvalidSession(f"Invalid Session '{text}'. Must be one of {names}.")
    return session


def parse_date(value: Any) -> date:
    """
    Parse a date cell.

    Accepts date/datetime objects, spreadsheet serial numbers (days since
    1899-12-30) and calendar text such as ``2024-05-10`` or ``10 May 2024``.

    Raises:
        InvalidDate: If the value is empty, not a finite serial, or text
            that does not name a full day, month and year.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        raise InvalidDate(f"Invalid date: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value <= 0:
            raise InvalidDate(f"Invalid date serial: {value}")
        try:
            return SPREADSHEET_EPOCH + timedelta(days=int(value))
        except OverflowError:
            raise InvalidDate(f"Invalid date serial: {value}") from None

    text = str(value).strip() if value is not None else ""
    if not text:
        raise InvalidDate("Missing date")
    try:
        first, second = (parser.parse(text, default=d).date() for d in _PARSE_DEFAULTS)
    except (ParserError, ValueError, OverflowError):
        raise InvalidDate(f"Invalid date: {text}") from None
    if first != second:
        raise InvalidDate(f"Incomplete date: {text}. Give day, month and year.")
    return first


def check_date_range(from_date: date, to_date: date) -> None:
    if to_date < from_date:
        raise InvalidDateRange(
            f"'From Date' {from_date.isoformat()} cannot be after 'To Date' {to_date.isoformat()}"
        )
