from app.gymdesk.core.error_catalog import ErrorCatalog
from app.gymdesk.db.models import AuditEvent, CashShift
from app.gymdesk.repos.audit import AuditRepository
from tests.pos_helpers import (
    auth_headers,
    create_product,
    create_tenant,
    create_tenant_user,
    create_user,
    open_shift,
    record_sale,
    sale_line,
)


def test_admin_force_closes_abandoned_shift(client, db_session):
    tenant, receptionist = create_tenant_user(db_session, suffix="force-close", role="RECEPTIONIST")
    admin = create_user(db_session, tenant, suffix="force-close-admin", role="ADMIN")
    product = create_product(db_session, tenant, name="Juice", price="30.00", stock=5)
    headers = auth_headers(receptionist)
    shift = open_shift(client, headers, "100.00")
    record_sale(client, headers, [sale_line(product, 1)])

    response = client.patch(
        f"/gymdesk/pos/shifts/{shift['id']}/force-close",
        headers=auth_headers(admin),
        json={"reason": "Receptionist left without closing"},
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Shift force-closed."}

    stored = db_session.get(CashShift, shift["id"])
    assert stored.status == "CLOSED"
    assert str(stored.actual_balance) == "0.00"
    assert str(stored.expected_balance) == "130.00"
    assert str(stored.forced_by_user_id) == str(admin.id)
    assert stored.force_close_reason == "Receptionist left without closing"

    trail = AuditRepository(db_session).list_for_entity(tenant.id, "cash_shift", shift["id"])
    assert [entry.action for entry in trail] == ["shift.open", "shift.force_close"]

    event = db_session.query(AuditEvent).filter(AuditEvent.action == "shift.force_close").one()
    assert event.entity_id == shift["id"]
    assert event.event_metadata["source"] == "force_close"
    assert event.event_metadata["reconciliation"]["status"] == "SHORTAGE"

    # The operator can open a fresh shift afterwards.
    assert open_shift(client, headers, "0.00")["id"] != shift["id"]


def test_force_close_without_body_counts_empty_drawer(client, db_session):
    tenant, receptionist = create_tenant_user(db_session, suffix="force-close-nobody", role="RECEPTIONIST")
    admin = create_user(db_session, tenant, suffix="force-close-nobody-admin", role="ADMIN")
    shift = open_shift(client, auth_headers(receptionist), "0.00")

    response = client.patch(f"/gymdesk/pos/shifts/{shift['id']}/force-close", headers=auth_headers(admin))
    assert response.status_code == 200
    stored = db_session.get(CashShift, shift["id"])
    assert str(stored.actual_balance) == "0.00"
    assert stored.force_close_reason is None


def test_receptionist_cannot_force_close(client, db_session):
    tenant, receptionist = create_tenant_user(db_session, suffix="force-close-denied", role="RECEPTIONIST")
    colleague = create_user(db_session, tenant, suffix="force-close-denied-2", role="RECEPTIONIST")
    shift = open_shift(client, auth_headers(receptionist))

    response = client.patch(f"/gymdesk/pos/shifts/{shift['id']}/force-close", headers=auth_headers(colleague))
    assert response.status_code == 403
    assert response.json()["code"] == ErrorCatalog.PERMISSION_DENIED.code
    assert response.json()["details"] == {"permission": "SHIFT_FORCE_CLOSE"}
    assert db_session.get(CashShift, shift["id"]).status == "OPEN"


def test_force_close_twice_is_conflict(client, db_session):
    tenant, receptionist = create_tenant_user(db_session, suffix="force-close-twice", role="RECEPTIONIST")
    admin = create_user(db_session, tenant, suffix="force-close-twice-admin", role="ADMIN")
    shift = open_shift(client, auth_headers(receptionist))

    path = f"/gymdesk/pos/shifts/{shift['id']}/force-close"
    assert client.patch(path, headers=auth_headers(admin)).status_code == 200
    again = client.patch(path, headers=auth_headers(admin))
    assert again.status_code == 409
    assert again.json()["code"] == ErrorCatalog.SHIFT_NOT_OPEN.code


def test_force_close_cannot_reach_other_gym(client, db_session):
    _tenant, receptionist = create_tenant_user(db_session, suffix="force-close-gym-a", role="RECEPTIONIST")
    _other_tenant, other_admin = create_tenant_user(db_session, suffix="force-close-gym-b", role="ADMIN")
    shift = open_shift(client, auth_headers(receptionist))

    response = client.patch(f"/gymdesk/pos/shifts/{shift['id']}/force-close", headers=auth_headers(other_admin))
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.SHIFT_NOT_FOUND.code


def test_superadmin_closes_all_open_shifts(client, db_session):
    tenant, first = create_tenant_user(db_session, suffix="close-all", role="RECEPTIONIST")
    second = create_user(db_session, tenant, suffix="close-all-2", role="RECEPTIONIST")
    _other_tenant, outsider = create_tenant_user(db_session, suffix="close-all-other", role="RECEPTIONIST")
    platform = create_tenant(db_session, suffix="close-all-platform")
    superadmin = create_user(db_session, platform, suffix="close-all-root", role="SUPERADMIN")

    first_shift = open_shift(client, auth_headers(first), "10.00")
    second_shift = open_shift(client, auth_headers(second), "20.00")
    outsider_shift = open_shift(client, auth_headers(outsider), "30.00")

    response = client.post(f"/gymdesk/admin/tenants/{tenant.id}/shifts/close-all", headers=auth_headers(superadmin))
    assert response.status_code == 200
    body = response.json()
    assert body["closed"] == 2
    assert set(body["shift_ids"]) == {first_shift["id"], second_shift["id"]}

    for shift_id in (first_shift["id"], second_shift["id"]):
        stored = db_session.get(CashShift, shift_id)
        assert stored.status == "CLOSED"
        assert str(stored.actual_balance) == "0.00"
        assert stored.force_close_reason == "close_all_open_shifts"
    assert db_session.get(CashShift, outsider_shift["id"]).status == "OPEN"

    events = db_session.query(AuditEvent).filter(AuditEvent.action == "shift.force_close").all()
    assert {event.entity_id for event in events} == set(body["shift_ids"])
    assert all(event.event_metadata["source"] == "close_all_open_shifts" for event in events)

    empty = client.post(f"/gymdesk/admin/tenants/{tenant.id}/shifts/close-all", headers=auth_headers(superadmin))
    assert empty.json() == {"closed": 0, "shift_ids": []}


def test_gym_admin_cannot_close_all(client, db_session):
    tenant, admin = create_tenant_user(db_session, suffix="close-all-denied", role="ADMIN")
    response = client.post(f"/gymdesk/admin/tenants/{tenant.id}/shifts/close-all", headers=auth_headers(admin))
    assert response.status_code == 403
    assert response.json()["code"] == ErrorCatalog.PERMISSION_DENIED.code
