from __future__ import annotations

from uuid import UUID

from fastapi import Request
from fastapi.responses import JSONResponse

from app.gymdesk.core.deps import require_module_enabled
from app.gymdesk.core.error_catalog import ErrorCatalog
from app.gymdesk.core.scope import resolve_tenant_id
from app.gymdesk.db.models import CashShift, Expense, InventoryMovement, Product, Sale, User
from app.gymdesk.schemas.pos import InventoryMovementResponse, ProductResponse, SaleItemResponse, SaleResponse
from app.gymdesk.schemas.shifts import ExpenseSummary, ShiftSummary, UserRef
from app.gymdesk.services.idempotency import IdempotencyService, extract_idempotency_key


def _normalize_uuid(value: str | UUID | None) -> str | None:
    return str(value) if value is not None else None


def pos_tenant(db, token_data, tenant_id: UUID | str | None, module: str = "pos"):
    """Resolve the caller's gym and check its plan includes ``module``."""
    scoped_tenant_id = resolve_tenant_id(token_data, _normalize_uuid(tenant_id))
    return require_module_enabled(db, scoped_tenant_id, module)


def begin_idempotent(request: Request, db, *, tenant_id: str, payload: dict) -> JSONResponse | None:
    """Register an optional Idempotency-Key; return the stored response when this is a replay."""
    idempotency_key = extract_idempotency_key(request.headers)
    if idempotency_key is None:
        return None
    context, replay = IdempotencyService(db).start(
        tenant_id=tenant_id,
        endpoint=str(request.url.path),
        method=request.method,
        idempotency_key=idempotency_key,
        request_hash=IdempotencyService.fingerprint(payload),
    )
    if replay:
        return JSONResponse(
            status_code=replay.status_code,
            content=replay.response_body,
            headers={"X-Idempotency-Result": ErrorCatalog.IDEMPOTENCY_REPLAY.code},
        )
    request.state.idempotency = context
    return None


def finish_idempotent(request: Request, *, status_code: int, response_body: dict) -> None:
    context = getattr(request.state, "idempotency", None)
    if context is None:
        return
    context.record_success(status_code=status_code, response_body=response_body)
    request.state.idempotency = None


def user_ref(user: User | None) -> UserRef | None:
    if user is None:
        return None
    return UserRef(id=str(user.id), username=user.username, name=user.name)


def shift_summary(shift: CashShift) -> ShiftSummary:
    return ShiftSummary(
        id=str(shift.id),
        tenant_id=str(shift.tenant_id),
        user_id=str(shift.user_id),
        status=shift.status,
        opening_balance=shift.opening_balance,
        expected_balance=shift.expected_balance,
        actual_balance=shift.actual_balance,
        opened_at=shift.opened_at,
        closed_at=shift.closed_at,
        closed_by_user_id=_normalize_uuid(shift.closed_by_user_id),
        forced_by_user_id=_normalize_uuid(shift.forced_by_user_id),
        force_close_reason=shift.force_close_reason,
    )


def sale_response(sale: Sale) -> SaleResponse:
    return SaleResponse(
        id=str(sale.id),
        tenant_id=str(sale.tenant_id),
        shift_id=str(sale.shift_id),
        operator_user_id=str(sale.operator_user_id),
        seller_id=str(sale.seller_id),
        seller=user_ref(sale.seller),
        receipt_folio=sale.receipt_folio,
        total=sale.total,
        customer_email=sale.customer_email,
        items=[
            SaleItemResponse(
                product_id=str(item.product_id),
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
            )
            for item in sale.items
        ],
        created_at=sale.created_at,
    )


def expense_summary(expense: Expense) -> ExpenseSummary:
    return ExpenseSummary(
        id=str(expense.id),
        shift_id=str(expense.shift_id),
        user_id=str(expense.user_id),
        type=expense.expense_type,
        amount=expense.amount,
        description=expense.description,
        created_at=expense.created_at,
    )


def movement_response(movement: InventoryMovement) -> InventoryMovementResponse:
    return InventoryMovementResponse(
        id=str(movement.id),
        product_id=str(movement.product_id),
        product_name=movement.product.name if movement.product is not None else None,
        movement_type=movement.movement_type,
        quantity=movement.quantity,
        reason=movement.reason,
        user_id=_normalize_uuid(movement.user_id),
        created_at=movement.created_at,
    )


def product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=str(product.id),
        name=product.name,
        barcode=product.barcode,
        price=product.price,
        stock=product.stock,
    )
