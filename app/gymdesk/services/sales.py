from __future__ import annotations

import logging
from dataclasses import dataclass

from app.gymdesk.core.error_catalog import AppError, ErrorCatalog
from app.gymdesk.core.logging import log_json
from app.gymdesk.core.metrics import metrics
from app.gymdesk.core.time_utils import utcnow
from app.gymdesk.db.models import InventoryMovement, Sale, SaleItem
from app.gymdesk.repos.inventory import InventoryGateway
from app.gymdesk.repos.receipts import ReceiptSequenceRepository
from app.gymdesk.repos.sales import SaleRepository
from app.gymdesk.repos.users import UserRepository
from app.gymdesk.services.reconciliation import line_total, money
from app.gymdesk.services.shifts import ShiftService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: str
    quantity: int


def normalize_email(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class SaleService:
    def __init__(self, db):
        self.db = db
        self.shifts = ShiftService(db)
        self.inventory = InventoryGateway(db)
        self.receipts = ReceiptSequenceRepository(db)
        self.sales = SaleRepository(db)
        self.users = UserRepository(db)

    def record_sale(
        self,
        *,
        tenant_id: str,
        operator_id: str,
        items: list[SaleLineRequest],
        seller_id: str | None = None,
        customer_email: str | None = None,
        shift_id: str | None = None,
    ) -> Sale:
        """Persist a sale and its stock decrements as one unit of work.

        Stock is checked by the conditional decrement itself, line by line. The
        first line that cannot be served rolls the whole transaction back, so no
        decrement, folio or sale row survives a rejected sale.
        """
        if not items:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "items must not be empty"})
        for index, line in enumerate(items):
            if line.quantity is None or line.quantity < 1:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"message": "quantity must be at least 1", "line_index": index},
                )

        shift = self.shifts.lock_open_shift(tenant_id=tenant_id, operator_id=operator_id, shift_id=shift_id)

        resolved_seller_id = operator_id
        if seller_id is not None and str(seller_id) != str(operator_id):
            seller = self.users.get_active_in_tenant(seller_id, tenant_id)
            if seller is None:
                self.db.rollback()
                raise AppError(ErrorCatalog.USER_NOT_FOUND, details={"seller_id": str(seller_id)})
            resolved_seller_id = seller.id

        sale_items: list[SaleItem] = []
        for index, line in enumerate(items):
            product = self.inventory.get_product(line.product_id, tenant_id)
            if product is None:
                self.db.rollback()
                raise AppError(
                    ErrorCatalog.PRODUCT_NOT_FOUND,
                    details={"product_id": str(line.product_id), "line_index": index},
                )
            unit_price = money(product.price)
            product_name = product.name
            decrement = self.inventory.check_stock_and_decrement(product.id, tenant_id, line.quantity)
            if not decrement.applied:
                self.db.refresh(product, ["stock"])
                details = {
                    "product_id": str(product.id),
                    "product_name": product_name,
                    "available": product.stock,
                    "requested": line.quantity,
                    "line_index": index,
                }
                self.db.rollback()
                metrics.increment_insufficient_stock()
                raise AppError(ErrorCatalog.INSUFFICIENT_STOCK, details=details)
            self.db.expire(product, ["stock", "updated_at"])
            sale_items.append(
                SaleItem(
                    tenant_id=tenant_id,
                    product_id=product.id,
                    position=index,
                    product_name=product_name,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    line_total=line_total(unit_price, line.quantity),
                )
            )

        total = money(sum((item.line_total for item in sale_items), money(0)))
        folio = self.receipts.next_sale_folio(tenant_id)
        sale = Sale(
            tenant_id=tenant_id,
            shift_id=shift.id,
            operator_user_id=operator_id,
            seller_id=resolved_seller_id,
            total=total,
            receipt_folio=folio,
            customer_email=normalize_email(customer_email),
            created_at=utcnow(),
        )
        self.sales.add(sale, sale_items)
        for item in sale_items:
            self.inventory.record_movement(
                InventoryMovement(
                    tenant_id=tenant_id,
                    product_id=item.product_id,
                    user_id=operator_id,
                    sale_id=sale.id,
                    movement_type="SALE",
                    quantity=item.quantity,
                    reason=f"Sale {folio} (shift {shift.id})",
                    created_at=sale.created_at,
                )
            )
        self.db.commit()

        metrics.increment_sales_recorded()
        log_json(
            logger,
            {
                "event": "sale.create",
                "tenant_id": str(tenant_id),
                "shift_id": str(shift.id),
                "sale_id": str(sale.id),
                "receipt_folio": folio,
                "total": sale.total,
                "line_count": len(sale_items),
            },
        )
        return sale


def receipt_payload(sale: Sale, gym_name: str) -> dict:
    return {
        "receipt_folio": sale.receipt_folio,
        "sale_id": str(sale.id),
        "items": [
            {
                "product_name": item.product_name,
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
                "line_total": str(item.line_total),
            }
            for item in sale.items
        ],
        "total": str(sale.total),
        "sold_at": sale.created_at.isoformat(),
        "gym_name": gym_name,
    }
