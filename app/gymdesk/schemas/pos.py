from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.gymdesk.schemas.shifts import ExpenseSummary, PageMeta, ShiftSummary, UserRef


class SaleLineInput(BaseModel):
    product_id: UUID
    quantity: int


class SaleCreateRequest(BaseModel):
    items: list[SaleLineInput] = Field(min_length=1)
    seller_id: UUID | None = None
    shift_id: UUID | None = None
    customer_email: str | None = None

    @field_validator("customer_email")
    @classmethod
    def _normalize_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("customer_email must be an email address")
        return value


class SaleItemResponse(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class SaleResponse(BaseModel):
    id: str
    tenant_id: str
    shift_id: str
    operator_user_id: str
    seller_id: str
    seller: UserRef | None = None
    receipt_folio: str
    total: Decimal
    customer_email: str | None = None
    items: list[SaleItemResponse]
    created_at: datetime


class SaleEnvelope(BaseModel):
    sale: SaleResponse


class SaleListResponse(BaseModel):
    data: list[SaleResponse]
    meta: PageMeta


class ExpenseCreateRequest(BaseModel):
    amount: Decimal
    type: str
    description: str | None = None
    shift_id: UUID | None = None


class ExpenseEnvelope(BaseModel):
    expense: ExpenseSummary


class InventoryMovementResponse(BaseModel):
    id: str
    product_id: str
    product_name: str | None = None
    movement_type: str
    quantity: int
    reason: str | None = None
    user_id: str | None = None
    created_at: datetime


class ShiftSalesResponse(BaseModel):
    data: list[SaleResponse]
    shift: ShiftSummary
    expenses: list[ExpenseSummary]
    inventory_movements: list[InventoryMovementResponse]


class ProductResponse(BaseModel):
    id: str
    name: str
    barcode: str | None = None
    price: Decimal
    stock: int


class ProductListResponse(BaseModel):
    data: list[ProductResponse]
