import logging
from typing import Iterable, List

from sqlalchemy.orm import Session

from crewplan.engine import workflow
from crewplan.engine.completion import StaffingSummary, staffing_summary
from crewplan.engine.eligibility import SelectionChange, current_assignments, toggle_selection
from crewplan.engine.resolver import CandidateView, resolve_roster
from crewplan.models.entities import Mission
from crewplan.models.errors import NotFoundError
from crewplan.notifications.mailer import Notifier
from crewplan.services.orchestrator import ApplyReport, EffectApplier
from crewplan.storage.repositories import (
    AssignmentRepository,
    AvailabilityRepository,
    MissionRepository,
    TechnicianRepository,
)

logger = logging.getLogger(__name__)


class RosterService:
    """Loads point-in-time snapshots for the resolver and runs workflow commands."""

    def __init__(self, db: Session, notifier: Notifier):
        self.missions = MissionRepository(db)
        self.technicians = TechnicianRepository(db)
        self.windows = AvailabilityRepository(db)
        self.assignments = AssignmentRepository(db)
        self.applier = EffectApplier(db, notifier)

    def get_mission(self, mission_id: str) -> Mission:
        mission = self.missions.get_by_id(mission_id)
        if mission is None:
            raise NotFoundError("Mission", mission_id)
        return mission

    def load(self, mission_id: str) -> List[CandidateView]:
        mission = self.get_mission(mission_id)
        return resolve_roster(
            mission,
            self.technicians.list_all(),
            self.windows.list_availabilities(),
            self.windows.list_unavailabilities(),
            self.assignments.list_for_mission(mission.id),
            self.assignments.list_accepted_bookings(exclude_mission_id=mission.id),
        )

    def toggle(self, mission_id: str, selection: Iterable[str], technician_id: str) -> SelectionChange:
        roster = {c.technician.id: c for c in self.load(mission_id)}
        candidate = roster.get(technician_id)
        if candidate is None:
            raise NotFoundError("Technician", technician_id)
        return toggle_selection(selection, technician_id, candidate.assignment, candidate.status)

    def submit_selection(self, mission_id: str, selection: Iterable[str]) -> ApplyReport:
        mission = self.get_mission(mission_id)
        transition = workflow.submit_selection(
            mission, self.load(mission_id), selection, self.assignments.list_for_mission(mission_id)
        )
        logger.info(f"Submitting selection for mission {mission_id}: {len(transition.effects)} effect(s)")
        return self.applier.apply(transition.effects)

    def cancel_pending(self, mission_id: str) -> ApplyReport:
        mission = self.get_mission(mission_id)
        transition = workflow.cancel_pending(mission, self.assignments.list_for_mission(mission_id))
        if transition.is_noop:
            logger.info(f"No pending proposals to cancel on mission {mission_id}")
        return self.applier.apply(transition.effects)

    def respond(self, assignment_id: str, accept: bool) -> ApplyReport:
        assignment = self.assignments.get_by_id(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment", assignment_id)
        if accept:
            transition = workflow.accept(
                assignment,
                self.get_mission(assignment.mission_id),
                self.assignments.list_for_mission(assignment.mission_id),
            )
        else:
            transition = workflow.reject(assignment)
        return self.applier.apply(transition.effects)

    def completion(self, mission_id: str) -> StaffingSummary:
        mission = self.get_mission(mission_id)
        assignments = self.assignments.list_for_mission(mission_id)
        technicians = {}
        for tid in current_assignments(assignments):
            tech = self.technicians.get_by_id(tid)
            if tech is not None:
                technicians[tid] = tech
        return staffing_summary(mission, assignments, technicians)
