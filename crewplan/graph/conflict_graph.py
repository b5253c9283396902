from collections import defaultdict
from typing import Dict, Iterable, List

from crewplan.engine.overlap import window_overlaps
from crewplan.models.entities import AcceptedBooking, AssignmentStatus, Mission


def conflicting_bookings_by_technician(
    mission: Mission, bookings: Iterable[AcceptedBooking]
) -> Dict[str, List[Mission]]:
    """Group other missions a technician has accepted that overlap ``mission``."""
    graph: Dict[str, List[Mission]] = defaultdict(list)
    for booking in bookings:
        if booking.status != AssignmentStatus.ACCEPTED:
            continue
        if booking.mission.id == mission.id:
            continue
        if window_overlaps(mission, booking.mission):
            graph[booking.technician_id].append(booking.mission)
    return graph
