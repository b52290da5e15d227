from uuid import UUID

from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError

from app.gymdesk.core.context import RequestContext, build_request_context, get_request_context
from app.gymdesk.core.error_catalog import AppError, ErrorCatalog
from app.gymdesk.core.modules import resolve_modules_config
from app.gymdesk.core.security import TokenData, decode_token, oauth2_scheme
from app.gymdesk.db.session import get_db
from app.gymdesk.repos.users import TenantRepository, UserRepository
from app.gymdesk.services.access_control import AccessControlService


def get_current_token_data(token: str = Depends(oauth2_scheme)) -> TokenData:
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def get_current_user(token_data: TokenData = Depends(get_current_token_data), db=Depends(get_db)):
    user_id = token_data.sub
    if not user_id:
        raise AppError(ErrorCatalog.INVALID_TOKEN)

    try:
        UUID(user_id)
    except ValueError as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc
    user = UserRepository(db).get_by_id(user_id)
    if user is None:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    return user


def require_active_user(user=Depends(get_current_user)):
    if user.status != "active":
        raise AppError(ErrorCatalog.USER_INACTIVE)
    return user


def require_request_context(
    request: Request,
    token_data: TokenData = Depends(get_current_token_data),
) -> RequestContext:
    trace_id = getattr(request.state, "trace_id", "")
    context = build_request_context(
        user_id=token_data.sub,
        tenant_id=token_data.tenant_id,
        role=token_data.role,
        trace_id=trace_id,
    )
    request.state.context = context
    return context


def require_permission(permission_key: str):
    def dependency(
        user=Depends(require_active_user),
        _context: RequestContext = Depends(require_request_context),
    ):
        decision = AccessControlService().evaluate_permission(
            permission_key,
            role=user.role,
            overrides=user.permission_overrides,
        )
        if not decision.allowed:
            raise AppError(ErrorCatalog.PERMISSION_DENIED, details={"permission": decision.key})
        return decision

    return dependency


def require_module_enabled(db, tenant_id: str, module: str = "pos"):
    """Load the gym and reject the request when its plan lacks ``module``."""
    tenant = TenantRepository(db).get_by_id(tenant_id)
    if tenant is None:
        raise AppError(ErrorCatalog.TENANT_NOT_FOUND)
    config = resolve_modules_config(tenant.subscription_tier, tenant.modules_config)
    if not config.is_enabled(module):
        raise AppError(ErrorCatalog.MODULE_DISABLED, details={"module": module})
    return tenant


__all__ = [
    "get_current_token_data",
    "get_current_user",
    "require_active_user",
    "require_request_context",
    "get_request_context",
    "require_permission",
    "require_module_enabled",
]
