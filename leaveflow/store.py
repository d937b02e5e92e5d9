"""
Leave record store.

``LeaveStore`` is the interface the services talk to. It owns the parts every
backend shares (write batches and the change feed) and leaves the actual I/O
to the backend primitives. Two backends exist: ``InMemoryLeaveStore`` for
development and tests, and ``SnowflakeLeaveStore`` for production.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable

from data.leave_policies import MOCK_STAFF
from leaveflow.config import settings
from leaveflow.exceptions import (
    BatchAlreadyCommitted,
    LeaveNotFound,
    StaffNotFound,
    StaleRecord,
    StoreError,
)
from leaveflow.models import LeaveRequest, LeaveStatus, LeaveType, Role, Staff

logger = logging.getLogger(__name__)


def new_record_id() -> str:
    return uuid.uuid4().hex


def _pick(document: dict, fields: dict) -> dict:
    """Subset of a stored document for the given model field names."""
    keys = {LeaveRequest.model_fields[name].alias or name for name in fields}
    return {key: value for key, value in document.items() if key in keys}


class WriteBatch:
    """
    A group of leave inserts committed atomically.

    A handle commits exactly once. Writing to or committing a handle that has
    already been committed raises ``BatchAlreadyCommitted``; callers that need
    another group must ask the store for a new batch.
    """

    def __init__(self, store: "LeaveStore"):
        self._store = store
        self._leaves: list[LeaveRequest] = []
        self.committed = False

    def create(self, leave: LeaveRequest) -> None:
        if self.committed:
            raise BatchAlreadyCommitted("Cannot add writes to a committed batch")
        self._leaves.append(leave)

    def __len__(self) -> int:
        return len(self._leaves)

    def commit(self) -> int:
        """Write every staged leave in one backend call. Returns the write count."""
        if self.committed:
            raise BatchAlreadyCommitted("Batch has already been committed")
        self._store._insert_leaves(list(self._leaves))
        self.committed = True
        self._store._publish()
        return len(self._leaves)


class Subscription:
    """A registered change-feed listener; call ``cancel()`` to stop deliveries."""

    def __init__(self, store: "LeaveStore", listener: Callable, on_error: Callable | None, filters: dict):
        self._store = store
        self.listener = listener
        self.on_error = on_error
        self.filters = filters

    def deliver(self) -> None:
        try:
            snapshot = self._store.query_leaves(**self.filters)
        except StoreError as e:
            logger.error(f"Snapshot delivery failed: {e}")
            if self.on_error is not None:
                self.on_error(e)
            return
        self.listener(snapshot)

    def cancel(self) -> None:
        self._store._unsubscribe(self)


class LeaveStore(ABC):
    """Interface to the persistent leave and staff records."""

    def __init__(self):
        self._subscriptions: list[Subscription] = []
        self._subscriptions_lock = threading.Lock()

    # Backend primitives

    @abstractmethod
    def _insert_leaves(self, leaves: list[LeaveRequest]) -> None:
        """Insert leaves atomically."""

    @abstractmethod
    def _apply_update(self, leave_id: str, document: dict, precondition: dict) -> bool:
        """Write changed fields; return False if no row matched the id and precondition."""

    @abstractmethod
    def _fetch_leaves(self, filters: dict) -> list[LeaveRequest]:
        """Return leaves matching exact-value filters keyed by document field."""

    @abstractmethod
    def _fetch_staff(self, roles: list[Role] | None) -> list[Staff]:
        """Return staff, optionally restricted to the given roles."""

    @abstractmethod
    def add_staff(self, staff: Staff) -> Staff:
        """Register a staff member in the directory."""

    def close(self) -> None:
        """Release backend resources."""

    def get_circuit_breaker_state(self) -> dict | None:
        return None

    # Leave records

    def create_leave(self, leave: LeaveRequest) -> LeaveRequest:
        self._insert_leaves([leave])
        logger.info(f"Created leave {leave.id} for staff {leave.staff_id} status={leave.status.value}")
        self._publish()
        return leave

    def batch(self) -> WriteBatch:
        """Return a fresh, empty write batch."""
        return WriteBatch(self)

    def update_leave(self, leave_id: str, changes: dict, expected: dict | None = None) -> LeaveRequest:
        """
        Apply a partial update to one leave.

        Args:
            leave_id: Leave to update
            changes: Model field names to new values
            expected: Model field names to the values they must still hold for
                the update to apply (optimistic precondition)

        Raises:
            LeaveNotFound: No leave with this id
            StaleRecord: A precondition field no longer holds its expected value
        """
        current = self.get_leave(leave_id)
        updated = current.model_copy(update=changes)
        partial = _pick(updated.to_document(), changes)
        precondition = _pick(current.model_copy(update=expected).to_document(), expected) if expected else {}

        if not self._apply_update(leave_id, partial, precondition):
            if precondition:
                logger.warning(f"Stale update on leave {leave_id}: expected {precondition}")
                raise StaleRecord(f"Leave {leave_id} changed since it was read")
            raise LeaveNotFound(f"Leave {leave_id} not found")

        self._publish()
        return updated

    def get_leave(self, leave_id: str) -> LeaveRequest:
        found = self._fetch_leaves({"id": leave_id})
        if not found:
            raise LeaveNotFound(f"Leave {leave_id} not found")
        return found[0]

    def query_leaves(
        self,
        staff_id: str | None = None,
        status: LeaveStatus | None = None,
        leave_type: LeaveType | None = None,
    ) -> list[LeaveRequest]:
        """One-shot filtered query; omitted filters match everything."""
        filters = {}
        if staff_id is not None:
            filters["staffId"] = staff_id
        if status is not None:
            filters["status"] = status.value
        if leave_type is not None:
            filters["type"] = leave_type.value
        return self._fetch_leaves(filters)

    # Staff directory

    def list_staff(self, roles: list[Role] | None = None) -> list[Staff]:
        return self._fetch_staff(roles)

    def get_staff(self, staff_id: str) -> Staff:
        for staff in self._fetch_staff(None):
            if staff.id == staff_id:
                return staff
        raise StaffNotFound(f"Staff {staff_id} not found")

    # Change feed

    def subscribe(
        self,
        listener: Callable[[list[LeaveRequest]], None],
        on_error: Callable[[Exception], None] | None = None,
        **filters,
    ) -> Subscription:
        """
        Deliver the current snapshot of ``query_leaves(**filters)`` to
        ``listener`` now and again after every write made through this store.

        Store errors go to ``on_error``; the subscription stays registered.
        """
        subscription = Subscription(self, listener, on_error, filters)
        with self._subscriptions_lock:
            self._subscriptions.append(subscription)
        subscription.deliver()
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._subscriptions_lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _publish(self) -> None:
        with self._subscriptions_lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            # a faulty listener must not turn a committed write into a failure
            try:
                subscription.deliver()
            except Exception:
                logger.exception("Change-feed listener raised; delivery skipped")


class InMemoryLeaveStore(LeaveStore):
    """Process-local store. Seeded with the mock directory unless told otherwise."""

    def __init__(self, staff: list[Staff] | None = None):
        super().__init__()
        self._lock = threading.RLock()
        self._leaves: dict[str, LeaveRequest] = {}
        self._staff: dict[str, Staff] = {}
        self.commit_count = 0

        seed = staff if staff is not None else [Staff.model_validate(s) for s in MOCK_STAFF.values()]
        for member in seed:
            self._staff[member.id] = member

    def _insert_leaves(self, leaves: list[LeaveRequest]) -> None:
        with self._lock:
            for leave in leaves:
                self._leaves[leave.id] = leave
            self.commit_count += 1

    def _apply_update(self, leave_id: str, document: dict, precondition: dict) -> bool:
        with self._lock:
            current = self._leaves.get(leave_id)
            if current is None:
                return False
            stored = current.to_document()
            if any(stored.get(key) != value for key, value in precondition.items()):
                return False
            merged = {**stored, **document}
            self._leaves[leave_id] = LeaveRequest.model_validate(merged)
            return True

    def _fetch_leaves(self, filters: dict) -> list[LeaveRequest]:
        with self._lock:
            leaves = list(self._leaves.values())
        return [
            leave
            for leave in leaves
            if all(leave.to_document().get(key) == value for key, value in filters.items())
        ]

    def _fetch_staff(self, roles: list[Role] | None) -> list[Staff]:
        with self._lock:
            staff = list(self._staff.values())
        if roles is None:
            return staff
        return [member for member in staff if member.role in roles]

    def add_staff(self, staff: Staff) -> Staff:
        with self._lock:
            self._staff[staff.id] = staff
        return staff


_store: LeaveStore | None = None


def create_store() -> LeaveStore:
    """Build the store selected by configuration."""
    if not settings.snowflake_account:
        logger.info("No Snowflake account configured; using in-memory leave store")
        return InMemoryLeaveStore()

    from leaveflow.snowflake_store import SnowflakeLeaveStore

    return SnowflakeLeaveStore()


def get_store() -> LeaveStore:
    """Return the process-wide store, creating it on first use."""
    global _store
    if _store is None:
        _store = create_store()
    return _store
