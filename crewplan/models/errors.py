from typing import Dict, Optional


class CrewPlanError(Exception):
    """Base class for domain errors raised by the resolver and workflow."""


class NotFoundError(CrewPlanError):
    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class InvalidWindowError(CrewPlanError, ValueError):
    """A time window is malformed: unparseable bounds or end not after start."""


class InvalidTransitionError(CrewPlanError):
    def __init__(self, assignment_id: str, current: str, event: str):
        super().__init__(f"Cannot {event} assignment {assignment_id} in status '{current}'")
        self.assignment_id = assignment_id
        self.current = current
        self.event = event


class SelectionError(CrewPlanError):
    """One or more technicians cannot be proposed for the mission."""

    def __init__(self, mission_id: str, refused: Optional[Dict[str, str]] = None):
        self.mission_id = mission_id
        self.refused = refused or {}
        details = ", ".join(f"{tid}: {reason}" for tid, reason in sorted(self.refused.items()))
        super().__init__(f"Selection refused for mission {mission_id} ({details})")


class BillingTransitionError(CrewPlanError):
    def __init__(self, entry_id: str, current: str, target: str):
        super().__init__(f"Cannot move billing entry {entry_id} from '{current}' to '{target}'")
        self.entry_id = entry_id
        self.current = current
        self.target = target
