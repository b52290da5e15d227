from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status

from app.gymdesk.core.deps import get_current_token_data, require_active_user, require_permission
from app.gymdesk.db.session import get_db
from app.gymdesk.routers.common import (
    begin_idempotent,
    expense_summary,
    finish_idempotent,
    pos_tenant,
    product_response,
    sale_response,
)
from app.gymdesk.schemas.errors import POS_ERROR_RESPONSES
from app.gymdesk.schemas.pos import (
    ExpenseCreateRequest,
    ExpenseEnvelope,
    ProductListResponse,
    SaleCreateRequest,
    SaleEnvelope,
    SaleListResponse,
)
from app.gymdesk.schemas.shifts import PageMeta
from app.gymdesk.services.audit import AuditEventPayload, AuditService
from app.gymdesk.services.expenses import ExpenseService
from app.gymdesk.services.notifications import NotificationDispatcher, get_notification_dispatcher
from app.gymdesk.services.sales import SaleLineRequest, SaleService, receipt_payload
from app.gymdesk.services.shift_reports import ShiftReportService


router = APIRouter(responses=POS_ERROR_RESPONSES)


def _audit_created(db, request: Request, current_user, *, tenant_id: str, action: str, entity_type: str, entity_id: str, after: dict):
    AuditService(db).record_event(
        AuditEventPayload(
            tenant_id=tenant_id,
            user_id=str(current_user.id),
            trace_id=getattr(request.state, "trace_id", None),
            actor=current_user.username,
            actor_role=current_user.role,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            before=None,
            after=after,
            metadata=None,
            result="success",
        )
    )


@router.post("/gymdesk/pos/sales", response_model=SaleEnvelope, status_code=status.HTTP_201_CREATED)
def create_sale(
    request: Request,
    payload: SaleCreateRequest,
    background_tasks: BackgroundTasks,
    tenant_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    _permission=Depends(require_permission("SALE_CREATE")),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    gym_name = tenant.name
    replay = begin_idempotent(request, db, tenant_id=str(tenant.id), payload=payload.model_dump(mode="json"))
    if replay:
        return replay

    sale = SaleService(db).record_sale(
        tenant_id=str(tenant.id),
        operator_id=str(current_user.id),
        items=[SaleLineRequest(product_id=str(line.product_id), quantity=line.quantity) for line in payload.items],
        seller_id=str(payload.seller_id) if payload.seller_id else None,
        customer_email=payload.customer_email,
        shift_id=str(payload.shift_id) if payload.shift_id else None,
    )
    response = SaleEnvelope(sale=sale_response(sale))
    if sale.customer_email:
        background_tasks.add_task(dispatcher.send_receipt, sale.customer_email, receipt_payload(sale, gym_name))
    _audit_created(
        db,
        request,
        current_user,
        tenant_id=str(sale.tenant_id),
        action="sale.create",
        entity_type="sale",
        entity_id=str(sale.id),
        after=response.sale.model_dump(mode="json"),
    )
    finish_idempotent(request, status_code=status.HTTP_201_CREATED, response_body=response.model_dump(mode="json"))
    return response


@router.get("/gymdesk/pos/sales", response_model=SaleListResponse)
def list_sales(
    tenant_id: UUID | None = None,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    shift_id: UUID | None = None,
    sale_date: date | None = Query(None, alias="date"),
    token_data=Depends(get_current_token_data),
    _user=Depends(require_active_user),
    _permission=Depends(require_permission("SHIFT_AUDIT_VIEW")),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    rows, total, paging = ShiftReportService(db).list_sales(
        tenant_id=str(tenant.id),
        page=page,
        limit=limit,
        shift_id=str(shift_id) if shift_id else None,
        on_date=sale_date,
    )
    return SaleListResponse(
        data=[sale_response(sale) for sale in rows],
        meta=PageMeta(total=total, page=paging.page, limit=paging.limit),
    )


@router.post("/gymdesk/pos/expenses", response_model=ExpenseEnvelope, status_code=status.HTTP_201_CREATED)
def create_expense(
    request: Request,
    payload: ExpenseCreateRequest,
    tenant_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    _permission=Depends(require_permission("EXPENSE_CREATE")),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    replay = begin_idempotent(request, db, tenant_id=str(tenant.id), payload=payload.model_dump(mode="json"))
    if replay:
        return replay

    expense = ExpenseService(db).record_expense(
        tenant_id=str(tenant.id),
        operator_id=str(current_user.id),
        amount=payload.amount,
        expense_type=payload.type,
        description=payload.description,
        shift_id=str(payload.shift_id) if payload.shift_id else None,
    )
    response = ExpenseEnvelope(expense=expense_summary(expense))
    _audit_created(
        db,
        request,
        current_user,
        tenant_id=str(expense.tenant_id),
        action="expense.create",
        entity_type="expense",
        entity_id=str(expense.id),
        after=response.expense.model_dump(mode="json"),
    )
    finish_idempotent(request, status_code=status.HTTP_201_CREATED, response_body=response.model_dump(mode="json"))
    return response


@router.get("/gymdesk/pos/products", response_model=ProductListResponse)
def list_products(
    tenant_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    _user=Depends(require_active_user),
    _permission=Depends(require_permission("PRODUCT_VIEW")),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    products = ShiftReportService(db).list_products(tenant_id=str(tenant.id))
    return ProductListResponse(data=[product_response(product) for product in products])
