from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from crewplan.engine.completion import StaffingSummary
from crewplan.engine.resolver import CandidateView
from crewplan.models.entities import (
    Assignment,
    AssignmentStatus,
    Availability,
    AvailabilityStatus,
    BillingEntry,
    BillingStatus,
    Mission,
    StaffingStatus,
    Technician,
    Unavailability,
)
from crewplan.services.orchestrator import ApplyReport
from crewplan.utils.timeparse import parse_window


class MissionIn(BaseModel):
    title: str = Field(..., min_length=1)
    start: str
    end: str
    required_people: int = 1
    forfeit: float = 0.0
    location: Optional[str] = None
    mission_type: Optional[str] = None

    @field_validator("required_people")
    @classmethod
    def validate_required_people(cls, v: int):
        """A mission needs at least one technician."""
        if v < 1:
            raise ValueError("required_people must be a positive integer")
        return v

    @field_validator("forfeit")
    @classmethod
    def validate_forfeit(cls, v: float):
        if v < 0:
            raise ValueError("forfeit cannot be negative")
        return v

    def to_domain(self, mission_id: str) -> Mission:
        start, end = parse_window(self.start, self.end)
        return Mission(
            id=mission_id,
            title=self.title,
            start=start,
            end=end,
            required_people=self.required_people,
            forfeit=self.forfeit,
            location=self.location,
            mission_type=self.mission_type,
        )


class MissionOut(BaseModel):
    id: str
    title: str
    start: datetime
    end: datetime
    required_people: int
    forfeit: float
    location: Optional[str] = None
    mission_type: Optional[str] = None

    @classmethod
    def from_domain(cls, m: Mission) -> "MissionOut":
        return cls(
            id=m.id, title=m.title, start=m.start, end=m.end, required_people=m.required_people,
            forfeit=m.forfeit, location=m.location, mission_type=m.mission_type,
        )


class TechnicianIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    is_validated: bool = False


class TechnicianOut(BaseModel):
    id: str
    name: str
    is_validated: bool
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_domain(cls, t: Technician) -> "TechnicianOut":
        return cls(id=t.id, name=t.name, is_validated=t.is_validated, email=t.email, phone=t.phone)


class ValidationUpdate(BaseModel):
    is_validated: bool


class WindowIn(BaseModel):
    start: str
    end: str


class UnavailabilityIn(WindowIn):
    reason: Optional[str] = None


class WindowOut(BaseModel):
    id: str
    technician_id: str
    start: datetime
    end: datetime
    reason: Optional[str] = None

    @classmethod
    def from_domain(cls, w) -> "WindowOut":
        return cls(
            id=w.id, technician_id=w.technician_id, start=w.start, end=w.end,
            reason=getattr(w, "reason", None),
        )


class AssignmentOut(BaseModel):
    id: str
    mission_id: str
    technician_id: str
    status: AssignmentStatus
    assigned_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, a: Assignment) -> "AssignmentOut":
        return cls(
            id=a.id, mission_id=a.mission_id, technician_id=a.technician_id, status=a.status,
            assigned_at=a.assigned_at, responded_at=a.responded_at,
        )


class CandidateOut(BaseModel):
    technician: TechnicianOut
    status: AvailabilityStatus
    selectable: bool
    assignment: Optional[AssignmentOut] = None
    conflicting_mission_ids: List[str] = []

    @classmethod
    def from_domain(cls, c: CandidateView) -> "CandidateOut":
        return cls(
            technician=TechnicianOut.from_domain(c.technician),
            status=c.status,
            selectable=c.selectable,
            assignment=None if c.assignment is None else AssignmentOut.from_domain(c.assignment),
            conflicting_mission_ids=[m.id for m in c.conflicting_missions],
        )


class RosterResponse(BaseModel):
    mission_id: str
    candidates: List[CandidateOut]
    selection: List[str] = []
    cached: bool = False


class ToggleRequest(BaseModel):
    technician_id: str
    selection: List[str] = []


class ToggleResponse(BaseModel):
    technician_id: str
    selection: List[str]
    changed: bool
    reason: Optional[str] = None


class SelectionRequest(BaseModel):
    technician_ids: List[str] = []


class ApplyReportOut(BaseModel):
    persisted: bool
    applied: int
    skipped: int
    notifications_failed: int = 0
    messages: List[str] = []

    @classmethod
    def from_domain(cls, r: ApplyReport) -> "ApplyReportOut":
        return cls(
            persisted=r.persisted,
            applied=len(r.applied),
            skipped=len(r.skipped),
            notifications_failed=r.notifications_failed,
            messages=r.messages,
        )


class CompletionOut(BaseModel):
    mission_id: str
    required: int
    accepted: int
    validated_accepted: int
    proposed: int
    status: StaffingStatus
    complete: bool

    @classmethod
    def from_domain(cls, s: StaffingSummary) -> "CompletionOut":
        return cls(
            mission_id=s.mission_id, required=s.required, accepted=s.accepted,
            validated_accepted=s.validated_accepted, proposed=s.proposed, status=s.status,
            complete=s.is_complete,
        )


class BillingOut(BaseModel):
    id: str
    mission_id: str
    technician_id: str
    amount: float
    status: BillingStatus
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_domain(cls, b: BillingEntry) -> "BillingOut":
        return cls(
            id=b.id,
            mission_id=b.mission_id,
            technician_id=b.technician_id,
            amount=b.amount,
            status=b.status,
            payment_date=b.payment_date,
            notes=b.notes,
        )


class BillingStatusUpdate(BaseModel):
    status: BillingStatus
    notes: Optional[str] = None


class PaymentRequest(BaseModel):
    entry_ids: List[str] = Field(..., min_length=1)
    payment_date: Optional[str] = None


# Stateless snapshot evaluation


class SnapshotMission(BaseModel):
    id: str
    start: str
    end: str
    title: str = ""
    required_people: int = 1

    def to_domain(self) -> Mission:
        start, end = parse_window(self.start, self.end)
        return Mission(id=self.id, title=self.title or self.id, start=start, end=end,
                       required_people=self.required_people)


class SnapshotTechnician(BaseModel):
    id: str
    name: str = ""
    is_validated: bool = False
    availabilities: List[WindowIn] = []
    unavailabilities: List[UnavailabilityIn] = []
    assignment_status: Optional[AssignmentStatus] = None

    def to_domain(self) -> Technician:
        return Technician(id=self.id, name=self.name or self.id, is_validated=self.is_validated)

    def availability_windows(self) -> List[Availability]:
        windows = []
        for i, w in enumerate(self.availabilities):
            start, end = parse_window(w.start, w.end)
            windows.append(Availability(id=f"{self.id}-a{i}", technician_id=self.id, start=start, end=end))
        return windows

    def unavailability_windows(self) -> List[Unavailability]:
        windows = []
        for i, w in enumerate(self.unavailabilities):
            start, end = parse_window(w.start, w.end)
            windows.append(Unavailability(id=f"{self.id}-u{i}", technician_id=self.id, start=start, end=end,
                                          reason=w.reason))
        return windows


class SnapshotBooking(BaseModel):
    technician_id: str
    mission: SnapshotMission


class EvaluateRequest(BaseModel):
    mission: SnapshotMission
    technicians: List[SnapshotTechnician]
    bookings: List[SnapshotBooking] = []
