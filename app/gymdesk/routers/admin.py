from uuid import UUID

from fastapi import APIRouter, Depends, Request

from app.gymdesk.core.deps import get_current_token_data, require_active_user, require_permission
from app.gymdesk.db.session import get_db
from app.gymdesk.routers.common import begin_idempotent, finish_idempotent, pos_tenant
from app.gymdesk.schemas.errors import POS_ERROR_RESPONSES
from app.gymdesk.schemas.shifts import CloseAllShiftsResponse
from app.gymdesk.services.audit import AuditEventPayload, AuditService
from app.gymdesk.services.shifts import ShiftService


router = APIRouter(responses=POS_ERROR_RESPONSES)


@router.post("/gymdesk/admin/tenants/{tenant_id}/shifts/close-all", response_model=CloseAllShiftsResponse)
def close_all_open_shifts(
    tenant_id: UUID,
    request: Request,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    _permission=Depends(require_permission("SHIFT_CLOSE_ALL")),
    db=Depends(get_db),
):
    tenant = pos_tenant(db, token_data, tenant_id)
    replay = begin_idempotent(request, db, tenant_id=str(tenant.id), payload={"tenant_id": str(tenant.id)})
    if replay:
        return replay

    closures = ShiftService(db).close_all_open_shifts(tenant_id=str(tenant.id), actor_id=str(current_user.id))
    audit = AuditService(db)
    for closure in closures:
        audit.record_event(
            AuditEventPayload(
                tenant_id=str(tenant.id),
                user_id=str(current_user.id),
                trace_id=getattr(request.state, "trace_id", None),
                actor=current_user.username,
                actor_role=current_user.role,
                action="shift.force_close",
                entity_type="cash_shift",
                entity_id=str(closure.shift.id),
                before={"status": "OPEN"},
                after={"status": closure.shift.status, "actual_balance": "0.00"},
                metadata={
                    "source": "close_all_open_shifts",
                    "forced": True,
                    "expected_balance": str(closure.reconciliation.expected),
                    "difference": str(closure.reconciliation.difference),
                },
                result="success",
            )
        )
    response = CloseAllShiftsResponse(
        closed=len(closures),
        shift_ids=[str(closure.shift.id) for closure in closures],
    )
    finish_idempotent(request, status_code=200, response_body=response.model_dump(mode="json"))
    return response
