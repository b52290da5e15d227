"""Expected-vs-counted cash arithmetic for a cash shift.

Everything here is pure: callers feed ledger sums in and persist what comes out.
Amounts are ``Decimal`` with two fractional digits, rounded half-up.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest amount accepted from a caller; ledger sums in cents must still fit a BigInteger column.
MAX_AMOUNT = Decimal("99999999999.99")


def money(value) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class ReconciliationStatus(str, Enum):
    BALANCED = "BALANCED"
    SURPLUS = "SURPLUS"
    SHORTAGE = "SHORTAGE"


@dataclass(frozen=True)
class RunningTotals:
    opening_balance: Decimal
    total_sales: Decimal
    sale_count: int
    total_expenses: Decimal
    expense_count: int

    @property
    def expected_balance(self) -> Decimal:
        return expected_balance(self.opening_balance, self.total_sales, self.total_expenses)


@dataclass(frozen=True)
class Reconciliation:
    opening_balance: Decimal
    total_sales: Decimal
    total_expenses: Decimal
    expected: Decimal
    actual: Decimal
    difference: Decimal
    status: ReconciliationStatus

    def as_dict(self) -> dict:
        return {
            "opening_balance": self.opening_balance,
            "total_sales": self.total_sales,
            "total_expenses": self.total_expenses,
            "expected": self.expected,
            "actual": self.actual,
            "difference": self.difference,
            "status": self.status.value,
        }


def expected_balance(opening_balance, total_sales, total_expenses) -> Decimal:
    return money(money(opening_balance) + money(total_sales) - money(total_expenses))


def classify(difference: Decimal) -> ReconciliationStatus:
    if difference == 0:
        return ReconciliationStatus.BALANCED
    if difference > 0:
        return ReconciliationStatus.SURPLUS
    return ReconciliationStatus.SHORTAGE


def reconcile(opening_balance, total_sales, total_expenses, actual) -> Reconciliation:
    expected = expected_balance(opening_balance, total_sales, total_expenses)
    counted = money(actual)
    difference = money(counted - expected)
    return Reconciliation(
        opening_balance=money(opening_balance),
        total_sales=money(total_sales),
        total_expenses=money(total_expenses),
        expected=expected,
        actual=counted,
        difference=difference,
        status=classify(difference),
    )


def reconcile_totals(totals: RunningTotals, actual) -> Reconciliation:
    return reconcile(totals.opening_balance, totals.total_sales, totals.total_expenses, actual)


def line_total(unit_price, quantity: int) -> Decimal:
    return money(money(unit_price) * quantity)
