from sqlalchemy import select

from app.gymdesk.db.models import Expense


class ExpenseRepository:
    def __init__(self, db):
        self.db = db

    def add(self, expense: Expense) -> Expense:
        self.db.add(expense)
        self.db.flush()
        return expense

    def list_for_shift(self, shift_id: str, tenant_id: str) -> list[Expense]:
        query = (
            select(Expense)
            .where(Expense.shift_id == shift_id, Expense.tenant_id == tenant_id)
            .order_by(Expense.created_at.asc())
        )
        return self.db.execute(query).scalars().all()
