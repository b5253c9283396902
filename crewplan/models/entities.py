from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class AssignmentStatus(str, Enum):
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    CONFLICT = "conflict"
    NO_AVAILABILITY = "no_availability"


class StaffingStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    PENDING = "pending"
    EMPTY = "empty"


class BillingStatus(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    PAID = "paid"


@dataclass(frozen=True)
class Mission:
    id: str
    title: str
    start: datetime
    end: datetime
    required_people: int = 1
    forfeit: float = 0.0  # informational, copied onto billing rows
    location: Optional[str] = None
    mission_type: Optional[str] = None


@dataclass(frozen=True)
class Technician:
    id: str
    name: str
    is_validated: bool = False
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class Availability:
    id: str
    technician_id: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Unavailability:
    id: str
    technician_id: str
    start: datetime
    end: datetime
    reason: Optional[str] = None


@dataclass(frozen=True)
class Assignment:
    id: str
    mission_id: str
    technician_id: str
    status: AssignmentStatus
    assigned_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None


@dataclass(frozen=True)
class AcceptedBooking:
    """An accepted assignment resolved together with the mission it books."""
    assignment_id: str
    technician_id: str
    mission: Mission
    status: AssignmentStatus = AssignmentStatus.ACCEPTED


@dataclass(frozen=True)
class BillingEntry:
    id: str
    mission_id: str
    technician_id: str
    amount: float
    status: BillingStatus = BillingStatus.PENDING
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None
