from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status

from app.gymdesk.core.config import settings
from app.gymdesk.core.deps import get_current_token_data, require_active_user, require_permission
from app.gymdesk.db.session import get_db
from app.gymdesk.repos.users import UserRepository
from app.gymdesk.routers.common import (
    begin_idempotent,
    expense_summary,
    finish_idempotent,
    movement_response,
    pos_tenant,
    sale_response,
    shift_summary,
    user_ref,
)
from app.gymdesk.schemas.errors import POS_ERROR_RESPONSES
from app.gymdesk.schemas.pos import ShiftSalesResponse
from app.gymdesk.schemas.shifts import (
    CurrentShiftResponse,
    MessageResponse,
    OpenShiftItem,
    OpenShiftListResponse,
    PageMeta,
    ReconciliationResponse,
    RunningTotalsResponse,
    ShiftCloseRequest,
    ShiftCloseResponse,
    ShiftForceCloseRequest,
    ShiftHistoryItem,
    ShiftListResponse,
    ShiftOpenRequest,
    ShiftResponse,
)
from app.gymdesk.services.access_control import AccessControlService
from app.gymdesk.services.audit import AuditEventPayload, AuditService
from app.gymdesk.services.notifications import NotificationDispatcher, get_notification_dispatcher
from app.gymdesk.services.shift_reports import ShiftReportService, closing_outcome
from app.gymdesk.services.shifts import ShiftClosure, ShiftService, shift_summary_payload


router = APIRouter(responses=POS_ERROR_RESPONSES)


def _close_response(closure: ShiftClosure) -> ShiftCloseResponse:
    return ShiftCloseResponse(
        shift=shift_summary(closure.shift),
        reconciliation=ReconciliationResponse(**closure.reconciliation.as_dict()),
    )


def _audit_close(db, request: Request, current_user, closure: ShiftClosure, *, action: str, source: str) -> None:
    context = getattr(request.state, "context", None)
    AuditService(db).record_event(
        AuditEventPayload(
            tenant_id=str(closure.shift.tenant_id),
            user_id=str(current_user.id),
            trace_id=getattr(request.state, "trace_id", None),
            actor=current_user.username,
            actor_role=context.role if context else current_user.role,
            action=action,
            entity_type="cash_shift",
            entity_id=str(closure.shift.id),
            before={"status": "OPEN"},
            after=shift_summary(closure.shift).model_dump(mode="json"),
            metadata={
                "source": source,
                "forced": closure.forced,
                "reconciliation": ReconciliationResponse(**closure.reconciliation.as_dict()).model_dump(mode="json"),
            },
            result="success",
        )
    )


def _notify_owner(db, tenant_id: str, closure: ShiftClosure, background_tasks: BackgroundTasks, dispatcher) -> None:
    owner = UserRepository(db).get_tenant_owner(tenant_id)
    if owner is None:
        return
    background_tasks.add_task(dispatcher.send_shift_summary, owner.phone, shift_summary_payload(closure))


def _finish_close(
    request: Request,
    db,
    current_user,
    closure: ShiftClosure,
    background_tasks: BackgroundTasks,
    dispatcher: NotificationDispatcher,
):
    _audit_close(db, request, current_user, closure, action="shift.close", source="shift_close")
    _notify_owner(db, str(closure.shift.tenant_id), closure, background_tasks, dispatcher)
    if current_user.role.upper() in {role.upper() for role in settings.BLIND_CLOSE_ROLES}:
        response = MessageResponse(message="Shift closed. Hand the drawer to your manager for review.")
    else:
        response = _close_response(closure)
    finish_idempotent(request, status_code=200, response_body=response.model_dump(mode="json"))
    return response


@router.post(
    "/gymdesk/pos/shifts/open",
    response_model=ShiftResponse,
    status_code=status.HTTP_201_CREATED,
)
def open_shift(
    request: Request,
    payload: ShiftOpenRequest,
    tenant_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    _permission=Depends(require_permission("SHIFT_OPERATE")),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    replay = begin_idempotent(request, db, tenant_id=str(tenant.id), payload=payload.model_dump(mode="json"))
    if replay:
        return replay

    shift = ShiftService(db).open_shift(
        tenant_id=str(tenant.id),
        user_id=str(current_user.id),
        opening_balance=payload.opening_balance,
    )
    response = ShiftResponse(shift=shift_summary(shift))
    AuditService(db).record_event(
        AuditEventPayload(
            tenant_id=str(tenant.id),
            user_id=str(current_user.id),
            trace_id=getattr(request.state, "trace_id", None),
            actor=current_user.username,
            actor_role=current_user.role,
            action="shift.open",
            entity_type="cash_shift",
            entity_id=str(shift.id),
            before=None,
            after=response.shift.model_dump(mode="json"),
            metadata=None,
            result="success",
        )
    )
    finish_idempotent(request, status_code=status.HTTP_201_CREATED, response_body=response.model_dump(mode="json"))
    return response


@router.get("/gymdesk/pos/shifts/current", response_model=CurrentShiftResponse)
def get_current_shift(
    tenant_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    _permission=Depends(require_permission("SHIFT_OPERATE")),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    service = ShiftService(db)
    shift = service.get_current_shift(tenant_id=str(tenant.id), user_id=str(current_user.id))
    if shift is None:
        return CurrentShiftResponse(shift=None, running_totals=None)
    totals = service.running_totals(shift)
    return CurrentShiftResponse(
        shift=shift_summary(shift),
        running_totals=RunningTotalsResponse(
            opening_balance=totals.opening_balance,
            total_sales=totals.total_sales,
            sale_count=totals.sale_count,
            total_expenses=totals.total_expenses,
            expense_count=totals.expense_count,
            expected_balance=totals.expected_balance,
        ),
    )


@router.post("/gymdesk/pos/shifts/close", response_model=ShiftCloseResponse | MessageResponse)
def close_current_shift(
    request: Request,
    payload: ShiftCloseRequest,
    background_tasks: BackgroundTasks,
    tenant_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    _permission=Depends(require_permission("SHIFT_OPERATE")),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    replay = begin_idempotent(request, db, tenant_id=str(tenant.id), payload=payload.model_dump(mode="json"))
    if replay:
        return replay

    closure = ShiftService(db).close_shift(
        tenant_id=str(tenant.id),
        actor_id=str(current_user.id),
        actual_balance=payload.actual_balance,
    )
    return _finish_close(request, db, current_user, closure, background_tasks, dispatcher)


@router.post("/gymdesk/pos/shifts/{shift_id}/close", response_model=ShiftCloseResponse | MessageResponse)
def close_shift_by_id(
    shift_id: UUID,
    request: Request,
    payload: ShiftCloseRequest,
    background_tasks: BackgroundTasks,
    tenant_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    _permission=Depends(require_permission("SHIFT_OPERATE")),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    replay = begin_idempotent(request, db, tenant_id=str(tenant.id), payload=payload.model_dump(mode="json"))
    if replay:
        return replay

    closure = ShiftService(db).close_shift(
        tenant_id=str(tenant.id),
        actor_id=str(current_user.id),
        actual_balance=payload.actual_balance,
        shift_id=str(shift_id),
        can_override=AccessControlService().has_permission(current_user, "SHIFT_FORCE_CLOSE"),
    )
    return _finish_close(request, db, current_user, closure, background_tasks, dispatcher)


@router.patch("/gymdesk/pos/shifts/{shift_id}/force-close", response_model=MessageResponse)
def force_close_shift(
    shift_id: UUID,
    request: Request,
    payload: ShiftForceCloseRequest | None = None,
    tenant_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    _permission=Depends(require_permission("SHIFT_FORCE_CLOSE")),
    db=Depends(get_db),
):
    payload = payload or ShiftForceCloseRequest()
    tenant = pos_tenant(db, token_data, tenant_id)
    replay = begin_idempotent(request, db, tenant_id=str(tenant.id), payload=payload.model_dump(mode="json"))
    if replay:
        return replay

    closure = ShiftService(db).force_close_shift(
        tenant_id=str(tenant.id),
        shift_id=str(shift_id),
        actor_id=str(current_user.id),
        actual_balance=payload.actual_balance,
        reason=payload.reason,
    )
    _audit_close(db, request, current_user, closure, action="shift.force_close", source="force_close")
    response = MessageResponse(message="Shift force-closed.")
    finish_idempotent(request, status_code=200, response_body=response.model_dump(mode="json"))
    return response


@router.get("/gymdesk/pos/shifts", response_model=ShiftListResponse)
def list_shifts(
    tenant_id: UUID | None = None,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    from_date: date | None = None,
    to_date: date | None = None,
    user_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    _permission=Depends(require_permission("SHIFT_VIEW")),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    rows, total, paging = ShiftReportService(db).list_shifts(
        tenant_id=str(tenant.id),
        viewer_id=str(current_user.id),
        admin_view=AccessControlService().has_permission(current_user, "SHIFT_AUDIT_VIEW"),
        page=page,
        limit=limit,
        from_date=from_date,
        to_date=to_date,
        user_id=str(user_id) if user_id else None,
    )
    data = []
    for shift in rows:
        outcome = closing_outcome(shift)
        data.append(
            ShiftHistoryItem(
                **shift_summary(shift).model_dump(),
                difference=outcome[0] if outcome else None,
                reconciliation_status=outcome[1].value if outcome else None,
                user=user_ref(shift.user),
            )
        )
    return ShiftListResponse(data=data, meta=PageMeta(total=total, page=paging.page, limit=paging.limit))


@router.get("/gymdesk/pos/shifts/open", response_model=OpenShiftListResponse)
def list_open_shifts(
    tenant_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    _user=Depends(require_active_user),
    _permission=Depends(require_permission("SHIFT_AUDIT_VIEW")),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    shifts = ShiftReportService(db).list_open_shifts(tenant_id=str(tenant.id))
    return OpenShiftListResponse(
        data=[
            OpenShiftItem(
                id=str(shift.id),
                opened_at=shift.opened_at,
                opening_balance=shift.opening_balance,
                user=user_ref(shift.user),
            )
            for shift in shifts
        ]
    )


@router.get("/gymdesk/pos/shifts/{shift_id}/sales", response_model=ShiftSalesResponse)
def get_shift_sales(
    shift_id: UUID,
    tenant_id: UUID | None = None,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    _permission=Depends(require_permission("SHIFT_VIEW")),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    detail = ShiftReportService(db).shift_sales_detail(
        tenant_id=str(tenant.id),
        shift_id=str(shift_id),
        viewer_id=str(current_user.id),
        admin_view=AccessControlService().has_permission(current_user, "SHIFT_AUDIT_VIEW"),
    )
    return ShiftSalesResponse(
        data=[sale_response(sale) for sale in detail.sales],
        shift=shift_summary(detail.shift),
        expenses=[expense_summary(expense) for expense in detail.expenses],
        inventory_movements=[movement_response(movement) for movement in detail.inventory_movements],
    )
