"""
Example: classifying a technician pool for one mission

Builds a small in-memory snapshot, runs the resolver, then walks the
proposal workflow for one technician and prints the effects it would apply.
"""

from datetime import datetime, timezone

from crewplan.engine import workflow
from crewplan.engine.completion import staffing_summary
from crewplan.engine.resolver import resolve_roster
from crewplan.models.entities import (
    AcceptedBooking,
    Assignment,
    AssignmentStatus,
    Availability,
    Mission,
    Technician,
    Unavailability,
)


def at(hour: int, day: int = 1) -> datetime:
    return datetime(2024, 6, day, hour, tzinfo=timezone.utc)


# 1. Mission A runs 09:00-17:00 and needs two people
mission_a = Mission(id="A", title="Sound system setup", start=at(9), end=at(17), required_people=2, forfeit=180.0)
mission_b = Mission(id="B", title="Game delivery", start=at(10), end=at(14))

technicians = [
    Technician(id="X", name="Xavier", is_validated=True),
    Technician(id="Y", name="Yasmine", is_validated=True),
    Technician(id="Z", name="Zoe", is_validated=True),
    Technician(id="W", name="Walid"),
]

# 2. Declared windows and existing bookings
unavailabilities = [Unavailability(id="u1", technician_id="X", start=at(8), end=at(12), reason="medical")]
availabilities = [Availability(id="a1", technician_id="Z", start=at(0), end=at(0, day=2))]
bookings = [AcceptedBooking(assignment_id="b1", technician_id="Y", mission=mission_b)]

roster = resolve_roster(mission_a, technicians, availabilities, unavailabilities, [], bookings)
for candidate in roster:
    print(f"{candidate.technician.name:<8} {candidate.status.value:<16} selectable={candidate.selectable}")
# Xavier   unavailable      selectable=False
# Yasmine  conflict         selectable=False
# Zoe      available        selectable=True
# Walid    no_availability  selectable=True

# 3. Propose Zoe and Walid, then Zoe accepts
proposal = workflow.submit_selection(mission_a, roster, ["Z", "W"], [])
for effect in proposal.effects:
    print("propose:", effect)

zoe_assignment = Assignment(id="as-z", mission_id="A", technician_id="Z", status=AssignmentStatus.PROPOSED)
for effect in workflow.accept(zoe_assignment, mission_a).effects:
    print("accept:", effect)

# 4. Completion only counts validated technicians who accepted
accepted = [
    Assignment(id="as-z", mission_id="A", technician_id="Z", status=AssignmentStatus.ACCEPTED),
    Assignment(id="as-w", mission_id="A", technician_id="W", status=AssignmentStatus.ACCEPTED),
]
summary = staffing_summary(mission_a, accepted, {t.id: t for t in technicians})
print(f"{summary.validated_accepted}/{summary.required} validated -> {summary.status.value}")
# 1/2 validated -> partial
