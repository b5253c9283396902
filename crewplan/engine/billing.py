"""
Billing lifecycle for forfeits owed to technicians.

    pending --validate--> validated --pay--> paid

Entries only move forward one step at a time; paid is final.
"""

from typing import Iterable, List

from crewplan.models.entities import BillingEntry, BillingStatus
from crewplan.models.errors import BillingTransitionError

NEXT_STATUS = {
    BillingStatus.PENDING: BillingStatus.VALIDATED,
    BillingStatus.VALIDATED: BillingStatus.PAID,
}


def require_transition(entry: BillingEntry, target: BillingStatus) -> None:
    if NEXT_STATUS.get(entry.status) != target:
        raise BillingTransitionError(entry.id, entry.status.value, target.value)


def payable(entries: Iterable[BillingEntry]) -> List[BillingEntry]:
    """Check a payment batch; the whole batch is refused if any entry is not validated."""
    entries = list(entries)
    for entry in entries:
        require_transition(entry, BillingStatus.PAID)
    return entries
