from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, List, Optional

from crewplan.models.entities import Assignment, AssignmentStatus, AvailabilityStatus

BLOCKING_STATUSES = frozenset({AvailabilityStatus.UNAVAILABLE, AvailabilityStatus.CONFLICT})

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def current_assignments(assignments: Iterable[Assignment]) -> Dict[str, Assignment]:
    """
    Pick one assignment per technician for a single mission.

    Rows are not unique per (mission, technician): a rejected technician can be
    proposed again, leaving two rows. An accepted row always wins, otherwise
    the most recently assigned row does.
    """
    chosen: Dict[str, Assignment] = {}
    for a in assignments:
        best = chosen.get(a.technician_id)
        if best is None or _rank(a) > _rank(best):
            chosen[a.technician_id] = a
    return chosen


def _rank(a: Assignment):
    return (a.status == AssignmentStatus.ACCEPTED, a.assigned_at or _EPOCH)


def can_select(assignment: Optional[Assignment], status: AvailabilityStatus) -> bool:
    """A technician is addable unless already accepted on this mission, unavailable, or in conflict."""
    if assignment is not None and assignment.status == AssignmentStatus.ACCEPTED:
        return False
    return status not in BLOCKING_STATUSES


def refusal_reason(assignment: Optional[Assignment], status: AvailabilityStatus) -> Optional[str]:
    if assignment is not None and assignment.status == AssignmentStatus.ACCEPTED:
        return "already accepted this mission"
    if status in BLOCKING_STATUSES:
        return status.value
    return None


def initial_selection(assignments: Iterable[Assignment]) -> List[str]:
    """Technicians whose current assignment on the mission is still a proposal."""
    return [
        tid for tid, a in current_assignments(assignments).items()
        if a.status == AssignmentStatus.PROPOSED
    ]


@dataclass(frozen=True)
class SelectionChange:
    technician_id: str
    selected: FrozenSet[str]
    changed: bool
    reason: Optional[str] = None


def toggle_selection(
    selection: Iterable[str],
    technician_id: str,
    assignment: Optional[Assignment],
    status: AvailabilityStatus,
) -> SelectionChange:
    """
    Add or remove one technician from a pending proposal selection.

    A selected technician can always be removed, even when they have since
    become unavailable or conflicting. Adding goes through ``can_select``.
    """
    current = frozenset(selection)
    if technician_id in current:
        return SelectionChange(technician_id, current - {technician_id}, changed=True)

    reason = refusal_reason(assignment, status)
    if reason is not None:
        return SelectionChange(technician_id, current, changed=False, reason=reason)
    return SelectionChange(technician_id, current | {technician_id}, changed=True)
