"""
Domain types for staff and leave requests.

Documents are stored with the camelCase field names the portal has always
used (``staffId``, ``fromDate`` ...); the models accept either spelling and
serialise back to the stored shape with ``to_document()``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from data.leave_policies import DEPARTMENTS


class Role(str, Enum):
    """Caller roles as supplied by the identity provider."""

    STAFF = "staff"
    HOD = "hod"
    DIRECTOR = "dir"
    PRINCIPAL = "princi"
    ADMIN = "admin"


class Tier(str, Enum):
    """Reviewing tiers, recorded in ``recommendedBy``."""

    HOD = "HOD"
    DIRECTOR = "Director"
    PRINCIPAL = "Principal"


class LeaveStatus(str, Enum):
    PENDING = "Pending"
    RECOMMENDED = "Recommended"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (LeaveStatus.APPROVED, LeaveStatus.REJECTED)


class LeaveType(str, Enum):
    CASUAL = "Casual Leave"
    DUTY = "Duty Leave"
    VACATION = "Vacation Leave"
    MATERNITY = "Maternity Leave"
    COMPENSATORY = "Compensatory Leave"


class LeaveSession(str, Enum):
    FULL_DAY = "Full Day"
    FORENOON = "Forenoon"
    MORNING = "Morning"  # older spelling of Forenoon
    AFTERNOON = "Afternoon"

    @property
    def is_half_day(self) -> bool:
        return self is not LeaveSession.FULL_DAY


class StaffStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ON_LEAVE = "On Leave"
    RESIGNED = "Resigned"


class ReviewAction(str, Enum):
    RECOMMEND = "Recommend"
    APPROVE = "Approve"
    REJECT = "Reject"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, trusted as supplied by the identity provider."""

    staff_id: str
    role: Role
    department: str | None = None


class Staff(BaseModel):
    """A member of the staff directory."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    display_name: str = Field(default="", alias="displayName")
    salutation: str | None = None
    department: str | None = None
    designation: str | None = None
    role: Role = Role.STAFF
    status: StaffStatus = StaffStatus.ACTIVE
    date_of_joining: str | None = Field(default=None, alias="dateOfJoining")
    appointment_no: str | None = Field(default=None, alias="appointmentNo")

    @field_validator("department", mode="before")
    @classmethod
    def _known_department(cls, value):
        # "-" is how the directory marks an unassigned department
        if value in (None, "", "-"):
            return None
        if value not in DEPARTMENTS:
            raise ValueError(f"Unknown department: {value}")
        return value

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class LeaveRequest(BaseModel):
    """A persisted leave request."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    staff_id: str = Field(..., alias="staffId")
    staff_email: str | None = Field(default=None, alias="staffEmail")
    leave_type: LeaveType = Field(..., alias="type")
    session: LeaveSession = LeaveSession.FULL_DAY
    from_date: date = Field(..., alias="fromDate")
    to_date: date = Field(..., alias="toDate")
    leave_value: float = Field(..., alias="leaveValue")
    reason: str
    description: str = ""
    status: LeaveStatus = LeaveStatus.PENDING
    recommended_by: Tier | None = Field(default=None, alias="recommendedBy")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    is_admin_entry: bool = Field(default=False, alias="isAdminEntry")
    approved_by: str | None = Field(default=None, alias="approvedBy")
    approved_at: datetime | None = Field(default=None, alias="approvedAt")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class LeaveBalance(BaseModel):
    """Consumed and remaining entitlement for one leave type in one year."""

    staff_id: str
    leave_type: LeaveType
    year: int
    limit: float
    used: float
    remaining: float


class BalanceSummary(BaseModel):
    staff_id: str
    year: int
    total_used: float
    balances: list[LeaveBalance]
