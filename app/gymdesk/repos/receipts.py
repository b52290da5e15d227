from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.gymdesk.core.config import settings
from app.gymdesk.core.time_utils import utcnow
from app.gymdesk.db.models import ReceiptSequence


def format_folio(year: int, sequence: int) -> str:
    return f"{settings.RECEIPT_FOLIO_PREFIX}-{year}-{sequence:0{settings.RECEIPT_FOLIO_PAD}d}"


class ReceiptSequenceRepository:
    """Per-gym, per-year sale folio counters.

    The counter row is locked and bumped inside the caller's transaction, so a
    sale that rolls back never consumes a folio.
    """

    def __init__(self, db):
        self.db = db

    @staticmethod
    def _locked_query(tenant_id: str, year: int):
        return (
            select(ReceiptSequence)
            .where(ReceiptSequence.tenant_id == tenant_id, ReceiptSequence.year == year)
            .with_for_update()
        )

    def get_locked(self, tenant_id: str, year: int) -> ReceiptSequence | None:
        return self.db.execute(self._locked_query(tenant_id, year)).scalars().first()

    def _create_or_lock(self, tenant_id: str, year: int) -> ReceiptSequence:
        # FOR UPDATE cannot lock a missing row: two first sales of the year can
        # both get here, and only one insert wins the primary key.
        nested = self.db.begin_nested()
        try:
            sequence = ReceiptSequence(tenant_id=tenant_id, year=year, sale_seq=0, updated_at=utcnow())
            self.db.add(sequence)
            self.db.flush()
        except IntegrityError:
            nested.rollback()
            return self.db.execute(self._locked_query(tenant_id, year)).scalars().one()
        nested.commit()
        return sequence

    def next_sale_folio(self, tenant_id: str, *, year: int | None = None) -> str:
        year = year or utcnow().year
        sequence = self.get_locked(tenant_id, year)
        if sequence is None:
            sequence = self._create_or_lock(tenant_id, year)
        sequence.sale_seq = (sequence.sale_seq or 0) + 1
        sequence.updated_at = utcnow()
        self.db.flush()
        return format_folio(year, sequence.sale_seq)
