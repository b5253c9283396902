import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, joinedload

from crewplan.models.entities import (
    AcceptedBooking,
    Assignment,
    AssignmentStatus,
    Availability,
    BillingEntry,
    BillingStatus,
    Mission,
    Technician,
    Unavailability,
)
from crewplan.storage.database import (
    AssignmentModel,
    AvailabilityModel,
    BillingModel,
    MissionModel,
    UnavailabilityModel,
    UserModel,
)
from crewplan.utils.timeparse import ensure_utc


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    return None if value is None else ensure_utc(value)


class MissionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, mission_id: str) -> Optional[Mission]:
        model = self.db.query(MissionModel).filter(MissionModel.id == mission_id).first()
        if not model:
            return None
        return self._model_to_mission(model)

    def list_all(self) -> List[Mission]:
        models = self.db.query(MissionModel).order_by(MissionModel.date_start).all()
        return [self._model_to_mission(m) for m in models]

    def save(self, mission: Mission) -> None:
        existing = self.db.query(MissionModel).filter(MissionModel.id == mission.id).first()
        if existing:
            existing.title = mission.title
            existing.type = mission.mission_type
            existing.location = mission.location
            existing.date_start = mission.start
            existing.date_end = mission.end
            existing.forfeit = mission.forfeit
            existing.required_people = mission.required_people
        else:
            model = MissionModel(
                id=mission.id,
                title=mission.title,
                type=mission.mission_type,
                location=mission.location,
                date_start=mission.start,
                date_end=mission.end,
                forfeit=mission.forfeit,
                required_people=mission.required_people,
            )
            self.db.add(model)
        self.db.commit()

    @staticmethod
    def _model_to_mission(model: MissionModel) -> Mission:
        return Mission(
            id=model.id,
            title=model.title,
            start=ensure_utc(model.date_start),
            end=ensure_utc(model.date_end),
            required_people=model.required_people,
            forfeit=model.forfeit,
            location=model.location,
            mission_type=model.type,
        )


class TechnicianRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, technician_id: str) -> Optional[Technician]:
        model = (
            self.db.query(UserModel)
            .filter(UserModel.id == technician_id, UserModel.role == "technician")
            .first()
        )
        if not model:
            return None
        return self._model_to_technician(model)

    def list_all(self) -> List[Technician]:
        models = self.db.query(UserModel).filter(UserModel.role == "technician").order_by(UserModel.name).all()
        return [self._model_to_technician(m) for m in models]

    def save(self, technician: Technician) -> None:
        existing = self.db.query(UserModel).filter(UserModel.id == technician.id).first()
        if existing:
            existing.name = technician.name
            existing.email = technician.email
            existing.phone = technician.phone
            existing.is_validated = technician.is_validated
        else:
            model = UserModel(
                id=technician.id,
                role="technician",
                name=technician.name,
                email=technician.email,
                phone=technician.phone,
                is_validated=technician.is_validated,
            )
            self.db.add(model)
        self.db.commit()

    def set_validated(self, technician_id: str, is_validated: bool) -> bool:
        updated = (
            self.db.query(UserModel)
            .filter(UserModel.id == technician_id, UserModel.role == "technician")
            .update({UserModel.is_validated: is_validated}, synchronize_session=False)
        )
        self.db.commit()
        return updated > 0

    @staticmethod
    def _model_to_technician(model: UserModel) -> Technician:
        return Technician(
            id=model.id,
            name=model.name,
            is_validated=bool(model.is_validated),
            email=model.email,
            phone=model.phone,
        )


class AvailabilityRepository:
    """Declared availability and unavailability windows."""

    def __init__(self, db: Session):
        self.db = db

    def list_availabilities(self, technician_id: Optional[str] = None) -> List[Availability]:
        query = self.db.query(AvailabilityModel)
        if technician_id is not None:
            query = query.filter(AvailabilityModel.technician_id == technician_id)
        return [
            Availability(
                id=m.id,
                technician_id=m.technician_id,
                start=ensure_utc(m.start_time),
                end=ensure_utc(m.end_time),
            )
            for m in query.order_by(AvailabilityModel.start_time).all()
        ]

    def list_unavailabilities(self, technician_id: Optional[str] = None) -> List[Unavailability]:
        query = self.db.query(UnavailabilityModel)
        if technician_id is not None:
            query = query.filter(UnavailabilityModel.technician_id == technician_id)
        return [
            Unavailability(
                id=m.id,
                technician_id=m.technician_id,
                start=ensure_utc(m.start_time),
                end=ensure_utc(m.end_time),
                reason=m.reason,
            )
            for m in query.order_by(UnavailabilityModel.start_time).all()
        ]

    def add_availability(self, window: Availability) -> None:
        self.db.add(AvailabilityModel(
            id=window.id,
            technician_id=window.technician_id,
            start_time=window.start,
            end_time=window.end,
        ))
        self.db.commit()

    def add_unavailability(self, window: Unavailability) -> None:
        self.db.add(UnavailabilityModel(
            id=window.id,
            technician_id=window.technician_id,
            start_time=window.start,
            end_time=window.end,
            reason=window.reason,
        ))
        self.db.commit()

    def delete_availability(self, window_id: str) -> bool:
        deleted = self.db.query(AvailabilityModel).filter(AvailabilityModel.id == window_id).delete()
        self.db.commit()
        return deleted > 0

    def delete_unavailability(self, window_id: str) -> bool:
        deleted = self.db.query(UnavailabilityModel).filter(UnavailabilityModel.id == window_id).delete()
        self.db.commit()
        return deleted > 0


class AssignmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, assignment_id: str) -> Optional[Assignment]:
        model = self.db.query(AssignmentModel).filter(AssignmentModel.id == assignment_id).first()
        if not model:
            return None
        return self._model_to_assignment(model)

    def list_for_mission(self, mission_id: str) -> List[Assignment]:
        models = (
            self.db.query(AssignmentModel)
            .filter(AssignmentModel.mission_id == mission_id)
            .order_by(AssignmentModel.assigned_at)
            .all()
        )
        return [self._model_to_assignment(m) for m in models]

    def list_for_technician(self, technician_id: str, status: Optional[AssignmentStatus] = None) -> List[Assignment]:
        query = self.db.query(AssignmentModel).filter(AssignmentModel.technician_id == technician_id)
        if status is not None:
            query = query.filter(AssignmentModel.status == status.value)
        return [self._model_to_assignment(m) for m in query.order_by(AssignmentModel.assigned_at.desc()).all()]

    def list_accepted_bookings(self, exclude_mission_id: Optional[str] = None) -> List[AcceptedBooking]:
        """Accepted assignments joined to their mission."""
        query = (
            self.db.query(AssignmentModel)
            .options(joinedload(AssignmentModel.mission))
            .filter(AssignmentModel.status == AssignmentStatus.ACCEPTED.value)
        )
        if exclude_mission_id is not None:
            query = query.filter(AssignmentModel.mission_id != exclude_mission_id)
        return [
            AcceptedBooking(
                assignment_id=m.id,
                technician_id=m.technician_id,
                mission=MissionRepository._model_to_mission(m.mission),
            )
            for m in query.all()
            if m.mission is not None
        ]

    def insert(self, mission_id: str, technician_ids: Iterable[str], status: AssignmentStatus) -> List[str]:
        ids = []
        for tid in technician_ids:
            model = AssignmentModel(
                id=str(uuid.uuid4()),
                mission_id=mission_id,
                technician_id=tid,
                status=status.value,
            )
            self.db.add(model)
            ids.append(model.id)
        self.db.commit()
        return ids

    def delete_proposed(self, mission_id: str, technician_ids: Iterable[str]) -> int:
        deleted = (
            self.db.query(AssignmentModel)
            .filter(
                AssignmentModel.mission_id == mission_id,
                AssignmentModel.status == AssignmentStatus.PROPOSED.value,
                AssignmentModel.technician_id.in_(list(technician_ids)),
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted

    def update_status(self, assignment_id: str, status: AssignmentStatus) -> bool:
        updated = (
            self.db.query(AssignmentModel)
            .filter(AssignmentModel.id == assignment_id)
            .update(
                {AssignmentModel.status: status.value, AssignmentModel.responded_at: datetime.now(timezone.utc)},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated > 0

    @staticmethod
    def _model_to_assignment(model: AssignmentModel) -> Assignment:
        return Assignment(
            id=model.id,
            mission_id=model.mission_id,
            technician_id=model.technician_id,
            status=AssignmentStatus(model.status),
            assigned_at=_utc(model.assigned_at),
            responded_at=_utc(model.responded_at),
        )


class BillingRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_pending(self, mission_id: str, technician_id: str, amount: float) -> BillingEntry:
        model = BillingModel(
            id=str(uuid.uuid4()),
            mission_id=mission_id,
            technician_id=technician_id,
            amount=amount,
            status=BillingStatus.PENDING.value,
        )
        self.db.add(model)
        self.db.commit()
        return self._model_to_entry(model)

    def get_by_id(self, entry_id: str) -> Optional[BillingEntry]:
        model = self.db.query(BillingModel).filter(BillingModel.id == entry_id).first()
        return self._model_to_entry(model) if model else None

    def update_status(self, entry_id: str, status: BillingStatus, notes: Optional[str] = None) -> Optional[BillingEntry]:
        model = self.db.query(BillingModel).filter(BillingModel.id == entry_id).first()
        if model is None:
            return None
        model.status = status.value
        if notes is not None:
            model.notes = notes
        self.db.commit()
        return self._model_to_entry(model)

    def mark_paid(self, entry_ids: Iterable[str], payment_date: datetime) -> int:
        """Bulk payment: every listed entry becomes paid on ``payment_date``."""
        ids = list(entry_ids)
        if not ids:
            return 0
        count = (
            self.db.query(BillingModel)
            .filter(BillingModel.id.in_(ids))
            .update(
                {BillingModel.status: BillingStatus.PAID.value, BillingModel.payment_date: payment_date},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return count

    def list_all(self, technician_id: Optional[str] = None) -> List[BillingEntry]:
        query = self.db.query(BillingModel)
        if technician_id is not None:
            query = query.filter(BillingModel.technician_id == technician_id)
        return [self._model_to_entry(m) for m in query.order_by(BillingModel.created_at).all()]

    @staticmethod
    def _model_to_entry(model: BillingModel) -> BillingEntry:
        return BillingEntry(
            id=model.id,
            mission_id=model.mission_id,
            technician_id=model.technician_id,
            amount=model.amount,
            status=BillingStatus(model.status),
            payment_date=_utc(model.payment_date),
            notes=model.notes,
        )
