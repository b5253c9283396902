"""
Side effects emitted by the proposal workflow.

Workflow functions never touch the datastore or the mailer. They return an
ordered list of these values and ``crewplan.services.orchestrator`` applies
them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple, Union

from crewplan.models.entities import AssignmentStatus


class NotificationKind(str, Enum):
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class DeleteProposedAssignments:
    mission_id: str
    technician_ids: Tuple[str, ...]


@dataclass(frozen=True)
class InsertAssignments:
    mission_id: str
    technician_ids: Tuple[str, ...]
    status: AssignmentStatus = AssignmentStatus.PROPOSED


@dataclass(frozen=True)
class UpdateAssignmentStatus:
    assignment_id: str
    status: AssignmentStatus


@dataclass(frozen=True)
class CreateBillingEntry:
    mission_id: str
    technician_id: str
    amount: float


@dataclass(frozen=True)
class Notify:
    kind: NotificationKind
    mission_id: str
    technician_id: str


PersistenceEffect = Union[
    DeleteProposedAssignments, InsertAssignments, UpdateAssignmentStatus, CreateBillingEntry
]
Effect = Union[PersistenceEffect, Notify]


def split_effects(effects: List[Effect]) -> Tuple[List[PersistenceEffect], List[Notify]]:
    writes = [e for e in effects if not isinstance(e, Notify)]
    notifications = [e for e in effects if isinstance(e, Notify)]
    return writes, notifications
