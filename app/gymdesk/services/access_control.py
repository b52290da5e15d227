from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    SUPERADMIN = "SUPERADMIN"
    ADMIN = "ADMIN"
    RECEPTIONIST = "RECEPTIONIST"
    COACH = "COACH"
    MEMBER = "MEMBER"


PERMISSION_KEYS = (
    "SHIFT_OPERATE",
    "SALE_CREATE",
    "EXPENSE_CREATE",
    "SHIFT_VIEW",
    "SHIFT_AUDIT_VIEW",
    "SHIFT_FORCE_CLOSE",
    "SHIFT_CLOSE_ALL",
    "PRODUCT_VIEW",
)

_FRONT_DESK = frozenset({"SHIFT_OPERATE", "SALE_CREATE", "EXPENSE_CREATE", "SHIFT_VIEW", "PRODUCT_VIEW"})

ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    Role.SUPERADMIN: frozenset(PERMISSION_KEYS),
    Role.ADMIN: _FRONT_DESK | {"SHIFT_AUDIT_VIEW", "SHIFT_FORCE_CLOSE"},
    Role.RECEPTIONIST: _FRONT_DESK,
    Role.COACH: frozenset({"PRODUCT_VIEW"}),
    Role.MEMBER: frozenset(),
}


@dataclass(frozen=True)
class PermissionDecision:
    key: str
    allowed: bool
    source: str


def _override_set(overrides: dict | None, bucket: str) -> set[str]:
    if not overrides:
        return set()
    return {str(key).strip().upper() for key in overrides.get(bucket) or []}


class AccessControlService:
    """Role defaults from ROLE_PERMISSIONS, refined by per-user overrides (deny wins)."""

    def evaluate_permission(self, permission_key: str, *, role: str | None, overrides: dict | None = None) -> PermissionDecision:
        normalized_key = permission_key.strip().upper()
        if normalized_key not in PERMISSION_KEYS:
            return PermissionDecision(key=normalized_key, allowed=False, source="unknown_permission")
        try:
            resolved_role = Role((role or "").upper())
        except ValueError:
            return PermissionDecision(key=normalized_key, allowed=False, source="default_deny")

        if normalized_key in _override_set(overrides, "deny"):
            return PermissionDecision(key=normalized_key, allowed=False, source="user_override_deny")
        if normalized_key in _override_set(overrides, "allow"):
            return PermissionDecision(key=normalized_key, allowed=True, source="user_override_allow")
        if normalized_key in ROLE_PERMISSIONS[resolved_role]:
            return PermissionDecision(key=normalized_key, allowed=True, source="role_default")
        return PermissionDecision(key=normalized_key, allowed=False, source="default_deny")

    def build_effective_permissions(self, *, role: str | None, overrides: dict | None = None) -> list[PermissionDecision]:
        return [self.evaluate_permission(key, role=role, overrides=overrides) for key in PERMISSION_KEYS]

    def has_permission(self, user, permission_key: str) -> bool:
        return self.evaluate_permission(
            permission_key, role=user.role, overrides=user.permission_overrides
        ).allowed
