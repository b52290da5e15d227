from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError

from app.gymdesk.core.error_catalog import AppError, ErrorCatalog
from app.gymdesk.core.logging import log_json
from app.gymdesk.core.metrics import metrics
from app.gymdesk.core.time_utils import utcnow
from app.gymdesk.db.models import CashShift
from app.gymdesk.repos.shifts import ShiftRepository
from app.gymdesk.services.reconciliation import (
    MAX_AMOUNT,
    Reconciliation,
    RunningTotals,
    money,
    reconcile_totals,
)

logger = logging.getLogger(__name__)

SHIFT_OPEN = "OPEN"
SHIFT_CLOSED = "CLOSED"


@dataclass(frozen=True)
class ShiftClosure:
    shift: CashShift
    reconciliation: Reconciliation
    forced: bool


def _amount(value, field: str, *, allow_zero: bool = True) -> Decimal:
    if value is None:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": f"{field} is required", "field": field})
    try:
        amount = money(value)
    except (InvalidOperation, ValueError) as exc:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": f"{field} must be a decimal amount", "field": field},
        ) from exc
    if amount < 0 or (amount == 0 and not allow_zero):
        qualifier = "zero or greater" if allow_zero else "greater than 0"
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": f"{field} must be {qualifier}", "field": field},
        )
    if amount > MAX_AMOUNT:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": f"{field} must not exceed {MAX_AMOUNT}", "field": field},
        )
    return amount


class ShiftService:
    """Cash shift lifecycle: OPEN on creation, CLOSED exactly once, never reopened.

    Each public mutation performs a single commit. Close paths read the shift row
    FOR UPDATE and compute ledger totals in that same transaction, so a sale or
    expense cannot slip in between the totals and the status flip.
    """

    def __init__(self, db):
        self.db = db
        self.repo = ShiftRepository(db)

    def open_shift(self, *, tenant_id: str, user_id: str, opening_balance) -> CashShift:
        amount = _amount(opening_balance, "opening_balance")
        if self.repo.get_open_for_operator(tenant_id=tenant_id, user_id=user_id) is not None:
            raise AppError(ErrorCatalog.SHIFT_ALREADY_OPEN)

        shift = CashShift(
            tenant_id=tenant_id,
            user_id=user_id,
            status=SHIFT_OPEN,
            opening_balance=amount,
            opened_at=utcnow(),
        )
        try:
            self.repo.add(shift)
            self.db.commit()
        except IntegrityError as exc:
            # A concurrent open won the race on the one-open-shift index.
            self.db.rollback()
            raise AppError(ErrorCatalog.SHIFT_ALREADY_OPEN) from exc

        metrics.record_shift_transition("open")
        log_json(
            logger,
            {
                "event": "shift.open",
                "tenant_id": str(tenant_id),
                "shift_id": str(shift.id),
                "user_id": str(user_id),
                "opening_balance": shift.opening_balance,
            },
        )
        return shift

    def get_current_shift(self, *, tenant_id: str, user_id: str) -> CashShift | None:
        return self.repo.get_open_for_operator(tenant_id=tenant_id, user_id=user_id)

    def running_totals(self, shift: CashShift) -> RunningTotals:
        total_sales, sale_count = self.repo.sales_totals(shift.id)
        total_expenses, expense_count = self.repo.expense_totals(shift.id)
        return RunningTotals(
            opening_balance=money(shift.opening_balance),
            total_sales=money(total_sales),
            sale_count=sale_count,
            total_expenses=money(total_expenses),
            expense_count=expense_count,
        )

    def lock_open_shift(self, *, tenant_id: str, operator_id: str, shift_id: str | None = None) -> CashShift:
        """Row-lock the shift a sale or expense is booked against.

        Without ``shift_id`` this is the operator's own open shift. An explicit
        id must exist in the tenant, be OPEN and belong to the operator.
        """
        if shift_id is None:
            shift = self.repo.get_open_for_operator(tenant_id=tenant_id, user_id=operator_id, for_update=True)
            if shift is None:
                raise AppError(
                    ErrorCatalog.SHIFT_NOT_OPEN,
                    details={"message": "Open a shift before recording sales or expenses"},
                )
            return shift

        shift = self.repo.get_in_tenant(shift_id, tenant_id, for_update=True)
        if shift is None:
            raise AppError(ErrorCatalog.SHIFT_NOT_FOUND, details={"shift_id": str(shift_id)})
        if shift.status != SHIFT_OPEN:
            raise AppError(ErrorCatalog.SHIFT_NOT_OPEN, details={"shift_id": str(shift.id), "status": shift.status})
        if str(shift.user_id) != str(operator_id):
            raise AppError(ErrorCatalog.NOT_SHIFT_OWNER, details={"shift_id": str(shift.id)})
        return shift

    def close_shift(
        self,
        *,
        tenant_id: str,
        actor_id: str,
        actual_balance,
        shift_id: str | None = None,
        can_override: bool = False,
    ) -> ShiftClosure:
        actual = _amount(actual_balance, "actual_balance")
        if shift_id is None:
            shift = self.repo.get_open_for_operator(tenant_id=tenant_id, user_id=actor_id, for_update=True)
            if shift is None:
                raise AppError(ErrorCatalog.SHIFT_NOT_OPEN, details={"message": "No open shift to close"})
        else:
            shift = self._locked_open_shift(shift_id, tenant_id)
            if str(shift.user_id) != str(actor_id) and not can_override:
                self.db.rollback()
                raise AppError(ErrorCatalog.NOT_SHIFT_OWNER, details={"shift_id": str(shift.id)})

        closure = self._finalize(shift, actual, closed_by=actor_id)
        self.db.commit()
        self._after_close(closure, transition="close")
        return closure

    def force_close_shift(
        self,
        *,
        tenant_id: str,
        shift_id: str,
        actor_id: str,
        actual_balance=None,
        reason: str | None = None,
    ) -> ShiftClosure:
        actual = _amount(actual_balance if actual_balance is not None else Decimal("0"), "actual_balance")
        shift = self._locked_open_shift(shift_id, tenant_id)
        closure = self._finalize(shift, actual, closed_by=actor_id, forced_by=actor_id, reason=reason)
        self.db.commit()
        self._after_close(closure, transition="force_close")
        return closure

    def close_all_open_shifts(
        self,
        *,
        tenant_id: str,
        actor_id: str,
        reason: str = "close_all_open_shifts",
    ) -> list[ShiftClosure]:
        shifts = self.repo.list_open(tenant_id, for_update=True)
        closures = [
            self._finalize(shift, Decimal("0.00"), closed_by=actor_id, forced_by=actor_id, reason=reason)
            for shift in shifts
        ]
        self.db.commit()
        for closure in closures:
            self._after_close(closure, transition="force_close")
        return closures

    def _locked_open_shift(self, shift_id: str, tenant_id: str) -> CashShift:
        shift = self.repo.get_in_tenant(shift_id, tenant_id, for_update=True)
        if shift is None:
            raise AppError(ErrorCatalog.SHIFT_NOT_FOUND, details={"shift_id": str(shift_id)})
        if shift.status != SHIFT_OPEN:
            self.db.rollback()
            raise AppError(
                ErrorCatalog.SHIFT_NOT_OPEN,
                details={"shift_id": str(shift_id), "status": SHIFT_CLOSED},
            )
        return shift

    def _finalize(
        self,
        shift: CashShift,
        actual: Decimal,
        *,
        closed_by: str,
        forced_by: str | None = None,
        reason: str | None = None,
    ) -> ShiftClosure:
        totals = self.running_totals(shift)
        reconciliation = reconcile_totals(totals, actual)
        shift.status = SHIFT_CLOSED
        shift.closed_at = utcnow()
        shift.actual_balance = reconciliation.actual
        shift.expected_balance = reconciliation.expected
        shift.closed_by_user_id = closed_by
        if forced_by is not None:
            shift.forced_by_user_id = forced_by
            shift.force_close_reason = reason
        self.db.flush()
        return ShiftClosure(shift=shift, reconciliation=reconciliation, forced=forced_by is not None)

    def _after_close(self, closure: ShiftClosure, *, transition: str) -> None:
        reconciliation = closure.reconciliation
        metrics.record_shift_transition(transition)
        metrics.record_reconciliation(status=reconciliation.status.value, forced=closure.forced)
        log_json(
            logger,
            {
                "event": f"shift.{transition}",
                "tenant_id": str(closure.shift.tenant_id),
                "shift_id": str(closure.shift.id),
                "user_id": str(closure.shift.user_id),
                "forced_by_user_id": str(closure.shift.forced_by_user_id) if closure.forced else None,
                "expected": reconciliation.expected,
                "actual": reconciliation.actual,
                "difference": reconciliation.difference,
                "status": reconciliation.status.value,
            },
        )


def shift_summary_payload(closure: ShiftClosure) -> dict:
    """Owner-facing digest of a closed shift; amounts as 2-decimal strings."""
    shift = closure.shift
    reconciliation = closure.reconciliation
    return {
        "shift_id": str(shift.id),
        "opened_at": shift.opened_at.isoformat(),
        "closed_at": shift.closed_at.isoformat() if shift.closed_at else None,
        "opening_balance": str(reconciliation.opening_balance),
        "total_sales": str(reconciliation.total_sales),
        "total_expenses": str(reconciliation.total_expenses),
        "expected_balance": str(reconciliation.expected),
        "actual_balance": str(reconciliation.actual),
        "difference": str(reconciliation.difference),
        "status": reconciliation.status.value,
    }
