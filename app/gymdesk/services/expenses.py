from __future__ import annotations

import logging
from decimal import InvalidOperation
from enum import Enum

from app.gymdesk.core.config import settings
from app.gymdesk.core.error_catalog import AppError, ErrorCatalog
from app.gymdesk.core.logging import log_json
from app.gymdesk.core.time_utils import utcnow
from app.gymdesk.db.models import Expense
from app.gymdesk.repos.expenses import ExpenseRepository
from app.gymdesk.services.reconciliation import MAX_AMOUNT, money
from app.gymdesk.services.shifts import ShiftService

logger = logging.getLogger(__name__)


class ExpenseType(str, Enum):
    SUPPLIER_PAYMENT = "SUPPLIER_PAYMENT"
    OPERATIONAL_EXPENSE = "OPERATIONAL_EXPENSE"
    CASH_DROP = "CASH_DROP"


DESCRIPTION_REQUIRED = {ExpenseType.SUPPLIER_PAYMENT, ExpenseType.OPERATIONAL_EXPENSE}


def validate_expense(amount, expense_type, description: str | None):
    """Return ``(amount, type, description)`` normalized, or raise VALIDATION_ERROR."""
    try:
        resolved_type = ExpenseType(expense_type)
    except ValueError as exc:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": "type must be one of " + ", ".join(t.value for t in ExpenseType), "field": "type"},
        ) from exc
    try:
        resolved_amount = money(amount) if amount is not None else None
    except (InvalidOperation, ValueError) as exc:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR, details={"message": "amount must be a decimal amount", "field": "amount"}
        ) from exc
    if resolved_amount is None or resolved_amount <= 0:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR, details={"message": "amount must be greater than 0", "field": "amount"}
        )
    if resolved_amount > MAX_AMOUNT:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": f"amount must not exceed {MAX_AMOUNT}", "field": "amount"},
        )

    text = (description or "").strip()
    min_length = settings.EXPENSE_DESCRIPTION_MIN_LENGTH
    if resolved_type in DESCRIPTION_REQUIRED and len(text) < min_length:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={
                "message": f"description is required for {resolved_type.value} (min {min_length} characters)",
                "field": "description",
            },
        )
    return resolved_amount, resolved_type, text or None


class ExpenseService:
    def __init__(self, db):
        self.db = db
        self.shifts = ShiftService(db)
        self.repo = ExpenseRepository(db)

    def record_expense(
        self,
        *,
        tenant_id: str,
        operator_id: str,
        amount,
        expense_type,
        description: str | None = None,
        shift_id: str | None = None,
    ) -> Expense:
        resolved_amount, resolved_type, text = validate_expense(amount, expense_type, description)
        shift = self.shifts.lock_open_shift(tenant_id=tenant_id, operator_id=operator_id, shift_id=shift_id)
        expense = Expense(
            tenant_id=tenant_id,
            shift_id=shift.id,
            user_id=operator_id,
            expense_type=resolved_type.value,
            amount=resolved_amount,
            description=text,
            created_at=utcnow(),
        )
        self.repo.add(expense)
        self.db.commit()
        log_json(
            logger,
            {
                "event": "expense.create",
                "tenant_id": str(tenant_id),
                "shift_id": str(shift.id),
                "expense_id": str(expense.id),
                "type": expense.expense_type,
                "amount": expense.amount,
            },
        )
        return expense
