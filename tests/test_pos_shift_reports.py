from datetime import datetime, timedelta, timezone

from app.gymdesk.core.error_catalog import ErrorCatalog
from app.gymdesk.core.time_utils import utcnow
from app.gymdesk.db.models import InventoryMovement
from tests.pos_helpers import (
    auth_headers,
    close_shift,
    create_product,
    create_tenant_user,
    create_user,
    open_shift,
    record_expense,
    record_sale,
    sale_line,
)


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def test_shift_history_lists_closed_shifts_with_outcome(client, db_session):
    tenant, admin = create_tenant_user(db_session, suffix="history", role="ADMIN")
    receptionist = create_user(db_session, tenant, suffix="history-desk", role="RECEPTIONIST")
    admin_headers = auth_headers(admin)
    desk_headers = auth_headers(receptionist)

    open_shift(client, admin_headers, "100.00")
    close_shift(client, admin_headers, "90.00")
    open_shift(client, desk_headers, "50.00")
    close_shift(client, desk_headers, "50.00")
    open_shift(client, desk_headers, "10.00")

    response = client.get("/gymdesk/pos/shifts", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["meta"] == {"total": 2, "page": 1, "limit": 20}
    assert [item["status"] for item in body["data"]] == ["CLOSED", "CLOSED"]
    by_user = {item["user"]["username"]: item for item in body["data"]}
    assert by_user[admin.username]["difference"] == "-10.00"
    assert by_user[admin.username]["reconciliation_status"] == "SHORTAGE"
    assert by_user[receptionist.username]["reconciliation_status"] == "BALANCED"

    filtered = client.get("/gymdesk/pos/shifts", headers=admin_headers, params={"user_id": str(receptionist.id)})
    assert [item["user_id"] for item in filtered.json()["data"]] == [str(receptionist.id)]

    paged = client.get("/gymdesk/pos/shifts", headers=admin_headers, params={"limit": 1, "page": 2})
    assert paged.json()["meta"] == {"total": 2, "page": 2, "limit": 1}
    assert len(paged.json()["data"]) == 1


def test_shift_history_date_window(client, db_session):
    _tenant, admin = create_tenant_user(db_session, suffix="history-window", role="ADMIN")
    headers = auth_headers(admin)
    open_shift(client, headers)
    close_shift(client, headers, "100.00")

    today = client.get("/gymdesk/pos/shifts", headers=headers, params={"from_date": _today(), "to_date": _today()})
    assert today.json()["meta"]["total"] == 1

    tomorrow = (datetime.now(timezone.utc).date() + timedelta(days=1)).isoformat()
    future = client.get("/gymdesk/pos/shifts", headers=headers, params={"from_date": tomorrow})
    assert future.json()["meta"]["total"] == 0


def test_receptionist_only_sees_own_history(client, db_session):
    tenant, admin = create_tenant_user(db_session, suffix="history-own", role="ADMIN")
    receptionist = create_user(db_session, tenant, suffix="history-own-desk", role="RECEPTIONIST")
    open_shift(client, auth_headers(admin))
    close_shift(client, auth_headers(admin), "100.00")
    open_shift(client, auth_headers(receptionist))
    close_shift(client, auth_headers(receptionist), "100.00")

    response = client.get(
        "/gymdesk/pos/shifts",
        headers=auth_headers(receptionist),
        params={"user_id": str(admin.id)},
    )
    assert response.status_code == 200
    assert [item["user_id"] for item in response.json()["data"]] == [str(receptionist.id)]


def test_open_shifts_list_for_admins(client, db_session):
    tenant, admin = create_tenant_user(db_session, suffix="open-list", role="ADMIN")
    first = create_user(db_session, tenant, suffix="open-list-1", role="RECEPTIONIST")
    second = create_user(db_session, tenant, suffix="open-list-2", role="RECEPTIONIST")
    _other_tenant, outsider = create_tenant_user(db_session, suffix="open-list-other", role="RECEPTIONIST")
    first_shift = open_shift(client, auth_headers(first), "10.00")
    second_shift = open_shift(client, auth_headers(second), "20.00")
    open_shift(client, auth_headers(outsider), "30.00")

    response = client.get("/gymdesk/pos/shifts/open", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()["data"]
    assert [item["id"] for item in data] == [first_shift["id"], second_shift["id"]]
    assert data[0]["user"]["username"] == first.username
    assert data[1]["opening_balance"] == "20.00"

    denied = client.get("/gymdesk/pos/shifts/open", headers=auth_headers(first))
    assert denied.status_code == 403
    assert denied.json()["code"] == ErrorCatalog.PERMISSION_DENIED.code


def test_shift_sales_detail(client, db_session):
    tenant, receptionist = create_tenant_user(db_session, suffix="shift-detail", role="RECEPTIONIST")
    admin = create_user(db_session, tenant, suffix="shift-detail-admin", role="ADMIN")
    colleague = create_user(db_session, tenant, suffix="shift-detail-colleague", role="RECEPTIONIST")
    product = create_product(db_session, tenant, name="Isotonic", price="18.00", stock=10)
    headers = auth_headers(receptionist)
    shift = open_shift(client, headers)

    first = record_sale(client, headers, [sale_line(product, 1)]).json()["sale"]
    second = record_sale(client, headers, [sale_line(product, 2)]).json()["sale"]
    record_expense(client, headers, amount="7.00", expense_type="CASH_DROP")
    db_session.add(
        InventoryMovement(
            tenant_id=tenant.id,
            product_id=product.id,
            user_id=receptionist.id,
            movement_type="RESTOCK",
            quantity=6,
            reason="Delivery",
            created_at=utcnow(),
        )
    )
    db_session.commit()

    response = client.get(f"/gymdesk/pos/shifts/{shift['id']}/sales", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["shift"]["id"] == shift["id"]
    assert [sale["id"] for sale in body["data"]] == [first["id"], second["id"]]
    assert [expense["amount"] for expense in body["expenses"]] == ["7.00"]
    assert [(m["movement_type"], m["quantity"], m["product_name"]) for m in body["inventory_movements"]] == [
        ("RESTOCK", 6, "Isotonic")
    ]

    assert client.get(f"/gymdesk/pos/shifts/{shift['id']}/sales", headers=auth_headers(admin)).status_code == 200
    denied = client.get(f"/gymdesk/pos/shifts/{shift['id']}/sales", headers=auth_headers(colleague))
    assert denied.status_code == 403
    assert denied.json()["code"] == ErrorCatalog.NOT_SHIFT_OWNER.code


def test_shift_detail_is_tenant_scoped(client, db_session):
    _tenant, receptionist = create_tenant_user(db_session, suffix="detail-scope-a", role="RECEPTIONIST")
    _other, other_admin = create_tenant_user(db_session, suffix="detail-scope-b", role="ADMIN")
    shift = open_shift(client, auth_headers(receptionist))

    response = client.get(f"/gymdesk/pos/shifts/{shift['id']}/sales", headers=auth_headers(other_admin))
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.SHIFT_NOT_FOUND.code


def test_sales_list_filters_by_shift_and_date(client, db_session):
    tenant, admin = create_tenant_user(db_session, suffix="sales-list", role="ADMIN")
    product = create_product(db_session, tenant, name="Chalk", price="9.00", stock=10)
    headers = auth_headers(admin)
    first_shift = open_shift(client, headers)
    record_sale(client, headers, [sale_line(product, 1)])
    close_shift(client, headers, "109.00")
    open_shift(client, headers)
    record_sale(client, headers, [sale_line(product, 2)])

    everything = client.get("/gymdesk/pos/sales", headers=headers)
    assert everything.status_code == 200
    assert everything.json()["meta"]["total"] == 2
    assert everything.json()["data"][0]["total"] == "18.00"

    by_shift = client.get("/gymdesk/pos/sales", headers=headers, params={"shift_id": first_shift["id"]})
    assert [sale["total"] for sale in by_shift.json()["data"]] == ["9.00"]

    by_day = client.get("/gymdesk/pos/sales", headers=headers, params={"date": _today()})
    assert by_day.json()["meta"]["total"] == 2


def test_products_list_shows_active_catalog(client, db_session):
    tenant, receptionist = create_tenant_user(db_session, suffix="products", role="RECEPTIONIST")
    create_product(db_session, tenant, name="Yoga Mat", price="350.00", stock=4, barcode="7501000000017")
    create_product(db_session, tenant, name="Bottle", price="80.00", stock=0)
    create_product(db_session, tenant, name="Discontinued", price="1.00", stock=9, status="inactive")

    response = client.get("/gymdesk/pos/products", headers=auth_headers(receptionist))
    assert response.status_code == 200
    assert [(p["name"], p["stock"], p["price"]) for p in response.json()["data"]] == [
        ("Bottle", 0, "80.00"),
        ("Yoga Mat", 4, "350.00"),
    ]
