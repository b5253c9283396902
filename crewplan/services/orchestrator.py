"""
Applies workflow side effects.

Writes run in order and each one commits on its own; when one fails the
remaining writes are skipped but earlier ones stay committed. Notifications
are sent only when every write succeeded, each independently, and a failed
notification never undoes a write. Nothing is retried: failures are logged
and reported back as messages for the acting user.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crewplan.models.effects import (
    CreateBillingEntry,
    DeleteProposedAssignments,
    Effect,
    InsertAssignments,
    Notify,
    PersistenceEffect,
    UpdateAssignmentStatus,
    split_effects,
)
from crewplan.notifications.mailer import NotificationError, Notifier
from crewplan.storage.repositories import (
    AssignmentRepository,
    BillingRepository,
    MissionRepository,
    TechnicianRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class ApplyReport:
    applied: List[Effect] = field(default_factory=list)
    skipped: List[Effect] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    persisted: bool = True
    failed_notifications: List[Notify] = field(default_factory=list)

    @property
    def notifications_failed(self) -> int:
        return len(self.failed_notifications)


class EffectApplier:
    def __init__(self, db: Session, notifier: Notifier):
        self.db = db
        self.notifier = notifier
        self.assignments = AssignmentRepository(db)
        self.billing = BillingRepository(db)
        self.missions = MissionRepository(db)
        self.technicians = TechnicianRepository(db)

    def apply(self, effects: List[Effect]) -> ApplyReport:
        report = ApplyReport()
        writes, notifications = split_effects(effects)

        for i, effect in enumerate(writes):
            try:
                self._write(effect)
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error(f"Persisting {type(effect).__name__} failed: {exc}")
                report.persisted = False
                report.messages.append(f"Saving changes failed: {type(effect).__name__}")
                report.skipped.extend(writes[i + 1:])
                report.skipped.extend(notifications)
                return report
            report.applied.append(effect)

        for note in notifications:
            if self._notify(note, report):
                report.applied.append(note)
            else:
                report.skipped.append(note)
                report.failed_notifications.append(note)
        return report

    def _write(self, effect: PersistenceEffect) -> None:
        if isinstance(effect, DeleteProposedAssignments):
            count = self.assignments.delete_proposed(effect.mission_id, effect.technician_ids)
            logger.info(f"Deleted {count} proposed assignment(s) on mission {effect.mission_id}")
        elif isinstance(effect, InsertAssignments):
            self.assignments.insert(effect.mission_id, effect.technician_ids, effect.status)
            logger.info(f"Created {len(effect.technician_ids)} {effect.status.value} assignment(s) on mission {effect.mission_id}")
        elif isinstance(effect, UpdateAssignmentStatus):
            self.assignments.update_status(effect.assignment_id, effect.status)
            logger.info(f"Assignment {effect.assignment_id} -> {effect.status.value}")
        elif isinstance(effect, CreateBillingEntry):
            self.billing.create_pending(effect.mission_id, effect.technician_id, effect.amount)
            logger.info(f"Pending billing {effect.amount:.2f} for technician {effect.technician_id} on mission {effect.mission_id}")
        else:
            raise TypeError(f"Unsupported effect: {effect!r}")

    def _notify(self, note: Notify, report: ApplyReport) -> bool:
        technician = self.technicians.get_by_id(note.technician_id)
        mission = self.missions.get_by_id(note.mission_id)
        if technician is None or mission is None:
            logger.warning(f"Skipping {note.kind.value} notification: technician or mission missing")
            report.messages.append(f"Notification not sent to {note.technician_id}: unknown recipient or mission")
            return False
        try:
            self.notifier.send(note.kind, technician, mission)
        except NotificationError as exc:
            logger.error(f"{note.kind.value} notification to {technician.id} failed: {exc}")
            report.messages.append(f"Notification to {technician.name} failed")
            return False
        return True
