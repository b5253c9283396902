from dataclasses import dataclass
from typing import Iterable, Mapping

from crewplan.engine.eligibility import current_assignments
from crewplan.models.entities import Assignment, AssignmentStatus, Mission, StaffingStatus, Technician


@dataclass(frozen=True)
class StaffingSummary:
    mission_id: str
    required: int
    accepted: int
    validated_accepted: int
    proposed: int
    status: StaffingStatus

    @property
    def is_complete(self) -> bool:
        return self.status == StaffingStatus.COMPLETE


def validated_accepted_count(
    assignments: Iterable[Assignment], technicians: Mapping[str, Technician]
) -> int:
    """Distinct technicians who accepted and have been validated by an administrator."""
    count = 0
    for tid, a in current_assignments(assignments).items():
        tech = technicians.get(tid)
        if a.status == AssignmentStatus.ACCEPTED and tech is not None and tech.is_validated:
            count += 1
    return count


def is_complete(mission: Mission, assignments: Iterable[Assignment], technicians: Mapping[str, Technician]) -> bool:
    return validated_accepted_count(assignments, technicians) >= mission.required_people


def staffing_summary(
    mission: Mission, assignments: Iterable[Assignment], technicians: Mapping[str, Technician]
) -> StaffingSummary:
    assignments = list(assignments)
    by_tech = current_assignments(assignments)
    accepted = sum(1 for a in by_tech.values() if a.status == AssignmentStatus.ACCEPTED)
    proposed = sum(1 for a in by_tech.values() if a.status == AssignmentStatus.PROPOSED)
    validated = validated_accepted_count(assignments, technicians)

    if validated >= mission.required_people:
        status = StaffingStatus.COMPLETE
    elif accepted > 0:
        status = StaffingStatus.PARTIAL
    elif proposed > 0:
        status = StaffingStatus.PENDING
    else:
        status = StaffingStatus.EMPTY

    return StaffingSummary(
        mission_id=mission.id,
        required=mission.required_people,
        accepted=accepted,
        validated_accepted=validated,
        proposed=proposed,
        status=status,
    )
