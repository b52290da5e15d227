from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update

from app.gymdesk.core.time_utils import utcnow
from app.gymdesk.db.models import InventoryMovement, Product

# Stock is a 32-bit column; no product can ever hold more than this.
MAX_STOCK_QUANTITY = 2**31 - 1


@dataclass(frozen=True)
class StockDecrement:
    product_id: str
    requested: int
    applied: bool


class InventoryGateway:
    """Stock lookups and decrements against the gym's product catalog."""

    def __init__(self, db):
        self.db = db

    def get_product(self, product_id: str, tenant_id: str, *, active_only: bool = True) -> Product | None:
        query = select(Product).where(Product.id == product_id, Product.tenant_id == tenant_id)
        if active_only:
            query = query.where(Product.status == "active")
        return self.db.execute(query).scalars().first()

    def check_stock_and_decrement(self, product_id: str, tenant_id: str, quantity: int) -> StockDecrement:
        if quantity > MAX_STOCK_QUANTITY:
            return StockDecrement(product_id=str(product_id), requested=quantity, applied=False)
        # Single conditional UPDATE; zero rows means the stock was not there.
        result = self.db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.tenant_id == tenant_id,
                Product.status == "active",
                Product.stock >= quantity,
            )
            .values(stock=Product.stock - quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        applied = result.rowcount == 1
        return StockDecrement(product_id=str(product_id), requested=quantity, applied=applied)

    def record_movement(self, movement: InventoryMovement) -> InventoryMovement:
        self.db.add(movement)
        return movement

    def list_products(self, tenant_id: str) -> list[Product]:
        query = (
            select(Product)
            .where(Product.tenant_id == tenant_id, Product.status == "active")
            .order_by(Product.name.asc())
        )
        return self.db.execute(query).scalars().all()

    def list_adjustments(
        self,
        *,
        tenant_id: str,
        user_id: str,
        since: datetime,
        until: datetime,
        movement_types: tuple[str, ...] = ("RESTOCK", "LOSS"),
    ) -> list[InventoryMovement]:
        query = (
            select(InventoryMovement)
            .where(
                InventoryMovement.tenant_id == tenant_id,
                InventoryMovement.user_id == user_id,
                InventoryMovement.movement_type.in_(movement_types),
                InventoryMovement.created_at >= since,
                InventoryMovement.created_at <= until,
            )
            .order_by(InventoryMovement.created_at.asc())
        )
        return self.db.execute(query).scalars().all()
