import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from crewplan.engine.billing import payable, require_transition
from crewplan.models.entities import BillingEntry, BillingStatus
from crewplan.models.errors import NotFoundError
from crewplan.storage.repositories import BillingRepository

logger = logging.getLogger(__name__)


class BillingService:
    """Moves forfeit entries through pending, validated and paid."""

    def __init__(self, db: Session):
        self.billing = BillingRepository(db)

    def get(self, entry_id: str) -> BillingEntry:
        entry = self.billing.get_by_id(entry_id)
        if entry is None:
            raise NotFoundError("Billing entry", entry_id)
        return entry

    def update_status(self, entry_id: str, status: BillingStatus, notes: Optional[str] = None) -> BillingEntry:
        if status == BillingStatus.PAID:
            return self.pay([entry_id])[0]
        require_transition(self.get(entry_id), status)
        entry = self.billing.update_status(entry_id, status, notes)
        logger.info(f"Billing entry {entry_id} -> {status.value}")
        return entry

    def pay(self, entry_ids: Iterable[str], payment_date: Optional[datetime] = None) -> List[BillingEntry]:
        ids = list(dict.fromkeys(entry_ids))
        payable([self.get(eid) for eid in ids])
        paid_on = payment_date or datetime.now(timezone.utc)
        count = self.billing.mark_paid(ids, paid_on)
        logger.info(f"Marked {count} billing entries paid on {paid_on.date()}")
        return [self.get(eid) for eid in ids]
