from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select

from app.gymdesk.db.models import CashShift, Expense, Sale


@dataclass(frozen=True)
class ShiftQueryFilters:
    tenant_id: str
    user_id: str | None = None
    closed_from: datetime | None = None
    closed_to: datetime | None = None


class ShiftRepository:
    def __init__(self, db):
        self.db = db

    def add(self, shift: CashShift) -> CashShift:
        self.db.add(shift)
        self.db.flush()
        return shift

    def get_open_for_operator(self, *, tenant_id: str, user_id: str, for_update: bool = False) -> CashShift | None:
        query = select(CashShift).where(
            CashShift.tenant_id == tenant_id,
            CashShift.user_id == user_id,
            CashShift.status == "OPEN",
        )
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalars().first()

    def get_in_tenant(self, shift_id: str, tenant_id: str, *, for_update: bool = False) -> CashShift | None:
        query = select(CashShift).where(CashShift.id == shift_id, CashShift.tenant_id == tenant_id)
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalars().first()

    def sales_totals(self, shift_id) -> tuple:
        row = self.db.execute(
            select(func.coalesce(func.sum(Sale.total), 0), func.count(Sale.id)).where(Sale.shift_id == shift_id)
        ).one()
        return row[0], int(row[1])

    def expense_totals(self, shift_id) -> tuple:
        row = self.db.execute(
            select(func.coalesce(func.sum(Expense.amount), 0), func.count(Expense.id)).where(
                Expense.shift_id == shift_id
            )
        ).one()
        return row[0], int(row[1])

    def list_closed(self, filters: ShiftQueryFilters, *, page: int, page_size: int) -> tuple[list[CashShift], int]:
        query = select(CashShift).where(CashShift.tenant_id == filters.tenant_id, CashShift.status == "CLOSED")
        if filters.user_id:
            query = query.where(CashShift.user_id == filters.user_id)
        if filters.closed_from:
            query = query.where(CashShift.closed_at >= filters.closed_from)
        if filters.closed_to:
            query = query.where(CashShift.closed_at <= filters.closed_to)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        rows = (
            self.db.execute(
                query.order_by(CashShift.closed_at.desc(), CashShift.id)
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            .scalars()
            .all()
        )
        return rows, total

    def list_open(self, tenant_id: str, *, for_update: bool = False) -> list[CashShift]:
        query = (
            select(CashShift)
            .where(CashShift.tenant_id == tenant_id, CashShift.status == "OPEN")
            .order_by(CashShift.opened_at.asc())
        )
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalars().all()
