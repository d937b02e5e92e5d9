"""
Snowflake-backed leave record store with circuit breaker protection.
All queries go through the Snowpark DataFrame API; no SQL strings are built.
"""

import logging
from contextlib import contextmanager
from typing import Any

from snowflake.snowpark import Session
from snowflake.snowpark.exceptions import SnowparkSQLException
from snowflake.snowpark.functions import col
from snowflake.snowpark.types import BooleanType, DoubleType, StringType, StructField, StructType

from leaveflow.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from leaveflow.config import settings
from leaveflow.exceptions import LeaveError, StoreUnavailable
from leaveflow.models import LeaveRequest, Role, Staff
from leaveflow.observability import trace_span
from leaveflow.store import LeaveStore

logger = logging.getLogger(__name__)

LEAVES_TABLE = "LEAVES"
STAFF_TABLE = "STAFF"

# document field -> column
LEAVE_COLUMNS = {
    "id": "ID",
    "staffId": "STAFF_ID",
    "staffEmail": "STAFF_EMAIL",
    "type": "LEAVE_TYPE",
    "session": "SESSION",
    "fromDate": "FROM_DATE",
    "toDate": "TO_DATE",
    "leaveValue": "LEAVE_VALUE",
    "reason": "REASON",
    "description": "DESCRIPTION",
    "status": "STATUS",
    "recommendedBy": "RECOMMENDED_BY",
    "createdAt": "CREATED_AT",
    "isAdminEntry": "IS_ADMIN_ENTRY",
    "approvedBy": "APPROVED_BY",
    "approvedAt": "APPROVED_AT",
}

STAFF_COLUMNS = {
    "id": "ID",
    "email": "EMAIL",
    "displayName": "DISPLAY_NAME",
    "salutation": "SALUTATION",
    "department": "DEPARTMENT",
    "designation": "DESIGNATION",
    "role": "ROLE",
    "status": "STATUS",
    "dateOfJoining": "DATE_OF_JOINING",
    "appointmentNo": "APPOINTMENT_NO",
}

_COLUMN_TYPES = {"LEAVE_VALUE": DoubleType(), "IS_ADMIN_ENTRY": BooleanType()}


def _schema(columns: dict) -> StructType:
    return StructType(
        [StructField(column, _COLUMN_TYPES.get(column, StringType())) for column in columns.values()]
    )


def _to_row(document: dict, columns: dict) -> list[Any]:
    return [document.get(field) for field in columns]


def _from_row(row: dict, columns: dict) -> dict:
    return {field: row.get(column) for field, column in columns.items()}


class SnowflakeLeaveStore(LeaveStore):
    """
    Leave and staff tables in Snowflake.

    Every backend call runs through the circuit breaker. Backend failures and
    an open circuit surface as ``StoreUnavailable``; there is no fallback to
    mock data once the store is running.
    """

    def __init__(self, session: Session | None = None):
        super().__init__()
        self.session = session

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.circuit_breaker_failure_threshold,
            timeout=settings.circuit_breaker_timeout,
            name="SnowflakeCircuitBreaker",
        )

        if self.session is None:
            self._initialize_session()

    def _initialize_session(self):
        connection_params = {
            "account": settings.snowflake_account,
            "user": settings.snowflake_user,
            "password": settings.snowflake_password,
            "warehouse": settings.snowflake_warehouse,
            "database": settings.snowflake_database,
            "schema": settings.snowflake_schema,
        }
        try:
            self.session = Session.builder.configs(connection_params).create()
        except Exception as e:
            logger.error(f"Failed to initialize Snowflake session: {e}")
            raise StoreUnavailable("Could not connect to the leave store") from e
        logger.info("Snowflake session initialized successfully")

    @contextmanager
    def get_session(self):
        """Context manager for the Snowflake session."""
        if self.session is None:
            raise StoreUnavailable("Snowflake session not available")
        try:
            yield self.session
        except SnowparkSQLException as e:
            logger.error(f"Snowflake error: {e}")
            raise

    def _call(self, func, *args) -> Any:
        try:
            with trace_span(f"snowflake{func.__name__}"):
                return self.circuit_breaker.call(func, *args)
        except LeaveError:
            raise
        except CircuitBreakerOpenError as e:
            raise StoreUnavailable(str(e)) from e
        except Exception as e:
            raise StoreUnavailable(f"Leave store call failed: {e}") from e

    # Backend primitives

    def _insert_leaves(self, leaves: list[LeaveRequest]) -> None:
        rows = [_to_row(leave.to_document(), LEAVE_COLUMNS) for leave in leaves]
        self._call(self._write_rows, LEAVES_TABLE, rows, _schema(LEAVE_COLUMNS))
        logger.info(f"Inserted {len(rows)} leave rows via Snowpark")

    def _write_rows(self, table: str, rows: list[list[Any]], schema: StructType) -> None:
        with self.get_session() as session:
            frame = session.create_dataframe(rows, schema=schema)
            frame.write.mode("append").save_as_table(table)

    def _apply_update(self, leave_id: str, document: dict, precondition: dict) -> bool:
        assignments = {LEAVE_COLUMNS[field]: value for field, value in document.items()}
        result = self._call(self._run_update, leave_id, assignments, precondition)
        return result.rows_updated > 0

    def _run_update(self, leave_id: str, assignments: dict, precondition: dict):
        with self.get_session() as session:
            condition = col("ID") == leave_id
            for field, value in precondition.items():
                column = col(LEAVE_COLUMNS[field])
                condition = condition & (column.is_null() if value is None else column == value)
            return session.table(LEAVES_TABLE).update(assignments, condition)

    def _fetch_leaves(self, filters: dict) -> list[LeaveRequest]:
        rows = self._call(self._select, LEAVES_TABLE, LEAVE_COLUMNS, filters)
        return [LeaveRequest.model_validate(_from_row(row, LEAVE_COLUMNS)) for row in rows]

    def _fetch_staff(self, roles: list[Role] | None) -> list[Staff]:
        rows = self._call(self._select, STAFF_TABLE, STAFF_COLUMNS, {}, roles)
        return [Staff.model_validate(_from_row(row, STAFF_COLUMNS)) for row in rows]

    def _select(self, table: str, columns: dict, filters: dict, roles: list[Role] | None = None) -> list[dict]:
        with self.get_session() as session:
            frame = session.table(table).select(*columns.values())
            for field, value in filters.items():
                frame = frame.filter(col(columns[field]) == value)
            if roles is not None:
                frame = frame.filter(col("ROLE").in_([role.value for role in roles]))
            return [row.as_dict() for row in frame.collect()]

    def add_staff(self, staff: Staff) -> Staff:
        row = _to_row(staff.to_document(), STAFF_COLUMNS)
        self._call(self._write_rows, STAFF_TABLE, [row], _schema(STAFF_COLUMNS))
        return staff

    def get_circuit_breaker_state(self) -> dict:
        return self.circuit_breaker.get_state()

    def close(self):
        if self.session:
            self.session.close()
            logger.info("Snowflake session closed")
