from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select

from app.gymdesk.db.models import Sale, SaleItem


@dataclass(frozen=True)
class SaleQueryFilters:
    tenant_id: str
    shift_id: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None


class SaleRepository:
    def __init__(self, db):
        self.db = db

    def add(self, sale: Sale, items: list[SaleItem]) -> Sale:
        sale.items = items
        self.db.add(sale)
        self.db.flush()
        return sale

    def list_for_shift(self, shift_id: str, tenant_id: str) -> list[Sale]:
        query = (
            select(Sale)
            .where(Sale.shift_id == shift_id, Sale.tenant_id == tenant_id)
            .order_by(Sale.created_at.asc(), Sale.receipt_folio.asc())
        )
        return self.db.execute(query).scalars().all()

    def list_sales(self, filters: SaleQueryFilters, *, page: int, page_size: int) -> tuple[list[Sale], int]:
        query = select(Sale).where(Sale.tenant_id == filters.tenant_id)
        if filters.shift_id:
            query = query.where(Sale.shift_id == filters.shift_id)
        if filters.created_from:
            query = query.where(Sale.created_at >= filters.created_from)
        if filters.created_to:
            query = query.where(Sale.created_at <= filters.created_to)
        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        rows = (
            self.db.execute(
                query.order_by(Sale.created_at.desc(), Sale.receipt_folio.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            .scalars()
            .all()
        )
        return rows, total
