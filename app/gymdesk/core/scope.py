from app.gymdesk.core.error_catalog import AppError, ErrorCatalog
from app.gymdesk.core.security import TokenData


SUPERADMIN_ROLES = {"SUPERADMIN"}


def _normalize_role(role: str | None) -> str:
    return (role or "").upper()


def is_superadmin(role: str | None) -> bool:
    return _normalize_role(role) in SUPERADMIN_ROLES


def resolve_tenant_id(token_data: TokenData, tenant_id: str | None) -> str:
    """Pick the tenant a request operates on.

    Superadmins act on behalf of a gym and must name it; everyone else is pinned
    to the tenant carried by their token.
    """
    if is_superadmin(token_data.role):
        if not tenant_id:
            raise AppError(ErrorCatalog.TENANT_SCOPE_REQUIRED)
        return str(tenant_id)
    if not token_data.tenant_id:
        raise AppError(ErrorCatalog.TENANT_SCOPE_REQUIRED)
    if tenant_id and str(tenant_id) != token_data.tenant_id:
        raise AppError(ErrorCatalog.CROSS_TENANT_ACCESS_DENIED)
    return token_data.tenant_id
