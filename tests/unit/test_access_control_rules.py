from app.gymdesk.services.access_control import PERMISSION_KEYS, AccessControlService


def test_receptionist_operates_shifts_but_cannot_force_close():
    service = AccessControlService()
    assert service.evaluate_permission("SHIFT_OPERATE", role="RECEPTIONIST").allowed
    assert service.evaluate_permission("SALE_CREATE", role="RECEPTIONIST").allowed
    assert not service.evaluate_permission("SHIFT_FORCE_CLOSE", role="RECEPTIONIST").allowed
    assert not service.evaluate_permission("SHIFT_AUDIT_VIEW", role="RECEPTIONIST").allowed


def test_admin_can_audit_and_force_close_but_not_close_all():
    service = AccessControlService()
    assert service.evaluate_permission("SHIFT_AUDIT_VIEW", role="ADMIN").allowed
    assert service.evaluate_permission("SHIFT_FORCE_CLOSE", role="admin").allowed
    assert not service.evaluate_permission("SHIFT_CLOSE_ALL", role="ADMIN").allowed


def test_superadmin_holds_every_permission():
    decisions = AccessControlService().build_effective_permissions(role="SUPERADMIN")
    assert {decision.key for decision in decisions} == set(PERMISSION_KEYS)
    assert all(decision.allowed for decision in decisions)


def test_deny_override_beats_allow_and_role_default():
    overrides = {"allow": ["SALE_CREATE"], "deny": ["sale_create"]}
    decision = AccessControlService().evaluate_permission("SALE_CREATE", role="ADMIN", overrides=overrides)
    assert not decision.allowed
    assert decision.source == "user_override_deny"


def test_allow_override_grants_beyond_role():
    decision = AccessControlService().evaluate_permission(
        "SHIFT_AUDIT_VIEW", role="RECEPTIONIST", overrides={"allow": ["SHIFT_AUDIT_VIEW"]}
    )
    assert decision.allowed
    assert decision.source == "user_override_allow"


def test_unknown_role_and_unknown_permission_are_denied():
    service = AccessControlService()
    assert service.evaluate_permission("SHIFT_OPERATE", role="JANITOR").source == "default_deny"
    assert service.evaluate_permission("OPEN_VAULT", role="SUPERADMIN").source == "unknown_permission"
    assert not service.evaluate_permission("SHIFT_OPERATE", role="MEMBER").allowed
