from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from app.gymdesk.core.config import settings
from app.gymdesk.core.error_catalog import AppError, ErrorCatalog
from app.gymdesk.core.time_utils import end_of_day, start_of_day, utcnow
from app.gymdesk.db.models import CashShift, Expense, InventoryMovement, Product, Sale
from app.gymdesk.repos.expenses import ExpenseRepository
from app.gymdesk.repos.inventory import InventoryGateway
from app.gymdesk.repos.sales import SaleQueryFilters, SaleRepository
from app.gymdesk.repos.shifts import ShiftQueryFilters, ShiftRepository
from app.gymdesk.services.reconciliation import ReconciliationStatus, classify, money


@dataclass(frozen=True)
class Page:
    page: int
    limit: int


def clamp_page(page: int | None, limit: int | None, *, default_limit: int, max_limit: int) -> Page:
    resolved_page = max(1, page or 1)
    resolved_limit = limit if limit and limit > 0 else default_limit
    return Page(page=resolved_page, limit=min(resolved_limit, max_limit))


def closing_outcome(shift: CashShift) -> tuple[Decimal, ReconciliationStatus] | None:
    """Difference and status of a closed shift, from its persisted balances."""
    if shift.expected_balance is None or shift.actual_balance is None:
        return None
    difference = money(shift.actual_balance - shift.expected_balance)
    return difference, classify(difference)


@dataclass(frozen=True)
class ShiftSalesDetail:
    shift: CashShift
    sales: list[Sale]
    expenses: list[Expense]
    inventory_movements: list[InventoryMovement]


class ShiftReportService:
    """Read-side projection over shifts and their ledgers. Every query is tenant-filtered."""

    def __init__(self, db):
        self.db = db
        self.shifts = ShiftRepository(db)
        self.sales = SaleRepository(db)
        self.expenses = ExpenseRepository(db)
        self.inventory = InventoryGateway(db)

    def list_shifts(
        self,
        *,
        tenant_id: str,
        viewer_id: str,
        admin_view: bool,
        page: int | None = None,
        limit: int | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        user_id: str | None = None,
    ) -> tuple[list[CashShift], int, Page]:
        paging = clamp_page(
            page,
            limit,
            default_limit=settings.SHIFT_LIST_DEFAULT_PAGE_SIZE,
            max_limit=settings.SHIFT_LIST_MAX_PAGE_SIZE,
        )
        filters = ShiftQueryFilters(
            tenant_id=tenant_id,
            user_id=(user_id if admin_view else viewer_id),
            closed_from=start_of_day(from_date) if from_date else None,
            closed_to=end_of_day(to_date) if to_date else None,
        )
        rows, total = self.shifts.list_closed(filters, page=paging.page, page_size=paging.limit)
        return rows, total, paging

    def list_open_shifts(self, *, tenant_id: str) -> list[CashShift]:
        return self.shifts.list_open(tenant_id)

    def shift_sales_detail(
        self,
        *,
        tenant_id: str,
        shift_id: str,
        viewer_id: str,
        admin_view: bool,
    ) -> ShiftSalesDetail:
        shift = self.shifts.get_in_tenant(shift_id, tenant_id)
        if shift is None:
            raise AppError(ErrorCatalog.SHIFT_NOT_FOUND, details={"shift_id": str(shift_id)})
        if not admin_view and str(shift.user_id) != str(viewer_id):
            raise AppError(ErrorCatalog.NOT_SHIFT_OWNER, details={"shift_id": str(shift.id)})

        movements = self.inventory.list_adjustments(
            tenant_id=tenant_id,
            user_id=shift.user_id,
            since=shift.opened_at,
            until=shift.closed_at or utcnow(),
        )
        return ShiftSalesDetail(
            shift=shift,
            sales=self.sales.list_for_shift(shift.id, tenant_id),
            expenses=self.expenses.list_for_shift(shift.id, tenant_id),
            inventory_movements=movements,
        )

    def list_sales(
        self,
        *,
        tenant_id: str,
        page: int | None = None,
        limit: int | None = None,
        shift_id: str | None = None,
        on_date: date | None = None,
    ) -> tuple[list[Sale], int, Page]:
        paging = clamp_page(
            page,
            limit,
            default_limit=settings.SALES_LIST_DEFAULT_PAGE_SIZE,
            max_limit=settings.SALES_LIST_MAX_PAGE_SIZE,
        )
        filters = SaleQueryFilters(
            tenant_id=tenant_id,
            shift_id=shift_id,
            created_from=start_of_day(on_date) if on_date else None,
            created_to=end_of_day(on_date) if on_date else None,
        )
        rows, total = self.sales.list_sales(filters, page=paging.page, page_size=paging.limit)
        return rows, total, paging

    def list_products(self, *, tenant_id: str) -> list[Product]:
        return self.inventory.list_products(tenant_id)
