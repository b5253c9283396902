"""
Proposal / cancellation state machine.

Per (mission, technician) pair::

    none --propose--> proposed --accept--> accepted
                               --reject--> rejected
                               --cancel--> (row deleted)

Every function here is a pure decision: it validates the event against the
current state and returns a ``Transition`` listing the side effects to apply,
in order. Nothing is written and nothing is sent from this module.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from crewplan.engine.eligibility import refusal_reason
from crewplan.engine.resolver import CandidateView
from crewplan.models.effects import (
    CreateBillingEntry,
    DeleteProposedAssignments,
    Effect,
    InsertAssignments,
    NotificationKind,
    Notify,
    UpdateAssignmentStatus,
)
from crewplan.models.entities import Assignment, AssignmentStatus, Mission
from crewplan.models.errors import InvalidTransitionError, SelectionError


@dataclass(frozen=True)
class Transition:
    event: str
    mission_id: str
    effects: List[Effect] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.effects


def pending_technicians(mission_id: str, assignments: Iterable[Assignment]) -> List[str]:
    """Technicians with at least one proposed row on the mission, whatever their other rows."""
    return sorted({
        a.technician_id for a in assignments
        if a.mission_id == mission_id and a.status == AssignmentStatus.PROPOSED
    })


def submit_selection(
    mission: Mission,
    roster: Sequence[CandidateView],
    selection: Iterable[str],
    assignments: Iterable[Assignment],
) -> Transition:
    """
    Replace the mission's pending proposals with ``selection``.

    Every proposed row on the mission is deleted, including stale rows left
    beside an accepted one, and one proposed row is inserted per selected
    technician. Technicians who were already proposed may stay in the
    selection even if they have since become unavailable or conflicting; any
    newly added technician must pass the eligibility gate. Only newly added
    technicians are notified.
    """
    by_tech: Dict[str, CandidateView] = {c.technician.id: c for c in roster}
    previously_proposed = pending_technicians(mission.id, assignments)
    wanted = sorted(set(selection))

    refused: Dict[str, str] = {}
    for tid in wanted:
        candidate = by_tech.get(tid)
        if candidate is None:
            refused[tid] = "unknown technician"
            continue
        accepted = candidate.assignment is not None and candidate.assignment.status == AssignmentStatus.ACCEPTED
        if tid in previously_proposed and not accepted:
            continue
        reason = refusal_reason(candidate.assignment, candidate.status)
        if reason is not None:
            refused[tid] = reason
    if refused:
        raise SelectionError(mission.id, refused)

    effects: List[Effect] = []
    if previously_proposed:
        effects.append(DeleteProposedAssignments(mission.id, tuple(previously_proposed)))
    if wanted:
        effects.append(InsertAssignments(mission.id, tuple(wanted)))
    effects.extend(
        Notify(NotificationKind.PROPOSED, mission.id, tid)
        for tid in wanted if tid not in previously_proposed
    )
    return Transition("propose", mission.id, effects)


def _require_proposed(assignment: Assignment, event: str) -> None:
    if assignment.status != AssignmentStatus.PROPOSED:
        raise InvalidTransitionError(assignment.id, assignment.status.value, event)


def accept(assignment: Assignment, mission: Mission, siblings: Iterable[Assignment] = ()) -> Transition:
    """
    Technician accepts: status update, pending billing row for the forfeit, notification.

    ``siblings`` are the other rows on the mission; a technician who already
    accepted it cannot accept a second time through a stale proposal.
    """
    _require_proposed(assignment, "accept")
    if assignment.mission_id != mission.id:
        raise ValueError(f"assignment {assignment.id} does not belong to mission {mission.id}")
    for other in siblings:
        if (other.id != assignment.id and other.technician_id == assignment.technician_id
                and other.status == AssignmentStatus.ACCEPTED):
            raise InvalidTransitionError(assignment.id, "proposed (mission already accepted)", "accept")
    return Transition("accept", mission.id, [
        UpdateAssignmentStatus(assignment.id, AssignmentStatus.ACCEPTED),
        CreateBillingEntry(mission.id, assignment.technician_id, mission.forfeit),
        Notify(NotificationKind.ACCEPTED, mission.id, assignment.technician_id),
    ])


def reject(assignment: Assignment) -> Transition:
    _require_proposed(assignment, "reject")
    return Transition("reject", assignment.mission_id, [
        UpdateAssignmentStatus(assignment.id, AssignmentStatus.REJECTED),
        Notify(NotificationKind.REJECTED, assignment.mission_id, assignment.technician_id),
    ])


def cancel_pending(mission: Mission, assignments: Iterable[Assignment]) -> Transition:
    """Administrator withdraws every proposal still awaiting an answer."""
    pending = pending_technicians(mission.id, assignments)
    if not pending:
        return Transition("cancel_pending", mission.id)
    effects: List[Effect] = [DeleteProposedAssignments(mission.id, tuple(pending))]
    effects.extend(Notify(NotificationKind.CANCELLED, mission.id, tid) for tid in pending)
    return Transition("cancel_pending", mission.id, effects)
