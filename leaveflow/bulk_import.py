"""
Bulk import of leave records from spreadsheet rows.

Rows arrive already extracted from the sheet as loosely typed mappings keyed
by the sheet headers. Every field is treated as untrusted: each row is
validated on its own into a ``BulkLeaveRow``, failures are logged against the
row number and skipped, and valid rows are written in batches no larger than
the configured batch size.

Only the shared precondition, loading the staff directory, can abort a run
before any row is processed. A store failure while committing a batch is
fatal as well and propagates to the caller.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from leaveflow.config import settings
from leaveflow.exceptions import (
    InvalidStatus,
    LeaveError,
    LeaveValidationError,
    MissingField,
    NotFoundError,
    StaffNotFound,
)
from leaveflow.leave_value import calculate_leave_value
from leaveflow.models import LeaveRequest, LeaveSession, LeaveStatus, LeaveType
from leaveflow.observability import trace_span
from leaveflow.store import LeaveStore, WriteBatch, new_record_id
from leaveflow.validation import (
    IMPORT_SESSIONS,
    check_date_range,
    parse_date,
    parse_leave_type,
    parse_session,
)

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Bulk Upload"
BULK_APPROVER = "Admin Bulk Upload"

# Recommended is not importable: a sheet cannot say which tier recommended it
IMPORT_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED, LeaveStatus.REJECTED)

# Row 1 of the sheet is the header
FIRST_DATA_ROW = 2


@dataclass(frozen=True)
class BulkLeaveRow:
    """A spreadsheet row that passed validation."""

    row_number: int
    staff_id: str
    email: str
    leave_type: LeaveType
    session: LeaveSession
    from_date: date
    to_date: date
    leave_value: float
    reason: str
    status: LeaveStatus


class ImportLogEntry(BaseModel):
    row: int
    success: bool
    code: str | None = None
    message: str


class BulkImportReport(BaseModel):
    total_rows: int
    success_count: int = 0
    groups_committed: int = 0
    entries: list[ImportLogEntry] = Field(default_factory=list)

    @property
    def errors(self) -> list[ImportLogEntry]:
        return [entry for entry in self.entries if not entry.success]


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _parse_status(value: Any) -> LeaveStatus:
    text = _text(value)
    if not text:
        return LeaveStatus.APPROVED
    for status in IMPORT_STATUSES:
        if status.value.lower() == text.lower():
            return status
    raise InvalidStatus(f"Invalid Status '{text}'. Must be Pending, Approved or Rejected.")


def validate_row(raw: Mapping[str, Any], row_number: int, email_index: Mapping[str, str]) -> BulkLeaveRow:
    """
    Validate one sheet row, in the order staff, leave type, dates, date range,
    session, status.

    Raises:
        MissingField, StaffNotFound, UnknownLeaveType, InvalidDate,
        InvalidDateRange, InvalidSession, InvalidStatus
    """
    email = _text(raw.get("Email"))
    if not email:
        raise MissingField("Missing Email.")
    staff_id = email_index.get(email.lower())
    if staff_id is None:
        raise StaffNotFound(f"User not found for email '{email}'.")

    leave_type = parse_leave_type(raw.get("Leave Type"))

    from_date = parse_date(raw.get("From Date"))
    to_date = parse_date(raw.get("To Date"))
    check_date_range(from_date, to_date)

    session = parse_session(raw.get("Session"), allowed=IMPORT_SESSIONS)
    status = _parse_status(raw.get("Status"))

    leave_value, to_date = calculate_leave_value(session, from_date, to_date)

    return BulkLeaveRow(
        row_number=row_number,
        staff_id=staff_id,
        email=email,
        leave_type=leave_type,
        session=session,
        from_date=from_date,
        to_date=to_date,
        leave_value=leave_value,
        reason=_text(raw.get("Reason")) or DEFAULT_REASON,
        status=status,
    )


class BulkLeaveImporter:
    """
    Sequential importer for parsed spreadsheet rows.

    Args:
        store: Leave record store
        batch_size: Maximum writes per atomic group
        progress_every: Report progress every N rows
        on_progress: Called with (current_row, total_rows)
    """

    def __init__(
        self,
        store: LeaveStore,
        batch_size: int | None = None,
        progress_every: int | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ):
        self.store = store
        self.batch_size = batch_size or settings.bulk_import_batch_size
        self.progress_every = progress_every or settings.bulk_import_progress_every
        self.on_progress = on_progress

    def run(self, rows: Sequence[Mapping[str, Any]]) -> BulkImportReport:
        """
        Import ``rows`` and return the per-row log.

        Raises:
            MissingField: If there are no rows at all
            StoreError: If the staff directory cannot be loaded or a batch
                cannot be committed
        """
        if not rows:
            raise MissingField("No data found in the uploaded file.")

        total = len(rows)
        with trace_span("bulk_import", rows=total, batch_size=self.batch_size):
            directory = self.store.list_staff()
            email_index = {
                member.email.strip().lower(): member.id for member in directory if member.email
            }

            report = BulkImportReport(total_rows=total)
            now = datetime.now(timezone.utc)
            batch = self.store.batch()

            for index, raw in enumerate(rows):
                row_number = index + FIRST_DATA_ROW
                if index % self.progress_every == 0:
                    self._progress(index + 1, total)

                try:
                    row = validate_row(raw, row_number, email_index)
                except (LeaveValidationError, NotFoundError) as e:
                    logger.warning(f"Bulk import row {row_number} skipped: {e.code} {e.message}")
                    report.entries.append(
                        ImportLogEntry(
                            row=row_number,
                            success=False,
                            code=e.code,
                            message=f"Row {row_number}: {e.message}",
                        )
                    )
                    continue

                batch.create(self._to_leave(row, now))
                report.entries.append(
                    ImportLogEntry(
                        row=row_number,
                        success=True,
                        message=f"Row {row_number}: {row.leave_type.value} for {row.email} staged.",
                    )
                )

                if len(batch) >= self.batch_size:
                    self._commit(batch, report)
                    # a committed handle takes no more writes; start a new group
                    batch = self.store.batch()

            if len(batch) > 0:
                self._commit(batch, report)

            self._progress(total, total)

        logger.info(
            f"Bulk import finished: {report.success_count}/{total} rows imported "
            f"in {report.groups_committed} groups, {len(report.errors)} errors"
        )
        return report

    def _commit(self, batch: WriteBatch, report: BulkImportReport) -> None:
        try:
            written = batch.commit()
        except LeaveError as e:
            logger.error(
                f"Bulk import aborted after {report.success_count} rows: "
                f"commit of {len(batch)} writes failed: {e}"
            )
            raise
        report.groups_committed += 1
        report.success_count += written

    def _progress(self, current: int, total: int) -> None:
        if self.on_progress is not None:
            self.on_progress(current, total)

    @staticmethod
    def _to_leave(row: BulkLeaveRow, now: datetime) -> LeaveRequest:
        approved = row.status == LeaveStatus.APPROVED
        return LeaveRequest(
            id=new_record_id(),
            staff_id=row.staff_id,
            staff_email=row.email,
            leave_type=row.leave_type,
            session=row.session,
            from_date=row.from_date,
            to_date=row.to_date,
            leave_value=row.leave_value,
            reason=row.reason,
            status=row.status,
            created_at=now,
            is_admin_entry=True,
            approved_by=BULK_APPROVER if approved else None,
            approved_at=now if approved else None,
        )
