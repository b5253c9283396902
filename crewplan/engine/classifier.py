"""
Availability Classifier

Labels a technician against a mission window. Rules are evaluated in
priority order and the first match wins:

1. ``unavailable``      an Unavailability window overlaps the mission
2. ``conflict``         another accepted mission overlaps the mission
3. ``available``        a declared Availability window overlaps the mission
4. ``no_availability``  the technician declared no Availability at all
5. ``unavailable``      Availability exists but none of it covers the mission

``no_availability`` means "no information", not "confirmed unavailable".
"""

from typing import Sequence

from crewplan.engine.overlap import any_overlap
from crewplan.models.entities import Availability, AvailabilityStatus, Mission, Unavailability


def classify_availability(
    mission: Mission,
    availabilities: Sequence[Availability],
    unavailabilities: Sequence[Unavailability],
    conflicting_missions: Sequence[Mission],
) -> AvailabilityStatus:
    """
    Classify one technician for ``mission``.

    Args:
        mission: Mission under consideration
        availabilities: All Availability windows the technician declared
        unavailabilities: All Unavailability windows the technician declared
        conflicting_missions: Other accepted missions already filtered to those
            overlapping ``mission`` (see ``conflicting_bookings_by_technician``)

    Returns:
        Exactly one AvailabilityStatus
    """
    if any_overlap(mission, unavailabilities):
        return AvailabilityStatus.UNAVAILABLE

    if conflicting_missions:
        return AvailabilityStatus.CONFLICT

    if any_overlap(mission, availabilities):
        return AvailabilityStatus.AVAILABLE

    if not availabilities:
        return AvailabilityStatus.NO_AVAILABILITY

    return AvailabilityStatus.UNAVAILABLE
