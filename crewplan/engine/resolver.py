"""
Scheduling Conflict Resolver

Combines the classifier and the eligibility gate over a point-in-time
snapshot of one mission and the whole technician pool. The resolver is pure:
callers fetch the snapshot (see ``crewplan.services.roster``) and pass it in.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from crewplan.engine.classifier import classify_availability
from crewplan.engine.eligibility import can_select, current_assignments
from crewplan.graph.conflict_graph import conflicting_bookings_by_technician
from crewplan.models.entities import (
    AcceptedBooking,
    Assignment,
    Availability,
    AvailabilityStatus,
    Mission,
    Technician,
    Unavailability,
)


@dataclass(frozen=True)
class CandidateView:
    technician: Technician
    status: AvailabilityStatus
    selectable: bool
    assignment: Optional[Assignment] = None
    conflicting_missions: List[Mission] = field(default_factory=list)


def _group_by_technician(windows: Iterable) -> Dict[str, list]:
    grouped: Dict[str, list] = defaultdict(list)
    for w in windows:
        grouped[w.technician_id].append(w)
    return grouped


def resolve_roster(
    mission: Mission,
    technicians: Sequence[Technician],
    availabilities: Iterable[Availability],
    unavailabilities: Iterable[Unavailability],
    assignments: Iterable[Assignment],
    bookings: Iterable[AcceptedBooking],
) -> List[CandidateView]:
    """
    Classify every technician for ``mission``.

    Args:
        mission: Mission under consideration
        technicians: Technician pool, returned in the given order
        availabilities: Availability windows of any technician
        unavailabilities: Unavailability windows of any technician
        assignments: Assignments on ``mission`` only
        bookings: Accepted assignments joined to their missions (any mission;
            the current mission and non-overlapping ones are filtered out here)
    """
    avail_by_tech = _group_by_technician(availabilities)
    unavail_by_tech = _group_by_technician(unavailabilities)
    current = current_assignments(a for a in assignments if a.mission_id == mission.id)
    conflicts = conflicting_bookings_by_technician(mission, bookings)

    roster = []
    for tech in technicians:
        conflicting = conflicts.get(tech.id, [])
        status = classify_availability(
            mission,
            avail_by_tech.get(tech.id, []),
            unavail_by_tech.get(tech.id, []),
            conflicting,
        )
        assignment = current.get(tech.id)
        roster.append(CandidateView(
            technician=tech,
            status=status,
            selectable=can_select(assignment, status),
            assignment=assignment,
            conflicting_missions=list(conflicting),
        ))
    return roster
