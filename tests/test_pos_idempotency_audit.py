from app.gymdesk.core.error_catalog import ErrorCatalog
from app.gymdesk.db.models import AuditEvent, IdempotencyRecord, Sale
from tests.pos_helpers import auth_headers, create_product, create_tenant_user, open_shift, sale_line


def test_sale_replay_returns_stored_response(client, db_session):
    tenant, user = create_tenant_user(db_session, suffix="idem-sale", role="RECEPTIONIST")
    product = create_product(db_session, tenant, name="Bar", price="20.00", stock=5)
    open_shift(client, auth_headers(user))
    headers = auth_headers(user, **{"Idempotency-Key": "sale-1"})
    payload = {"items": [sale_line(product, 2)]}

    first = client.post("/gymdesk/pos/sales", headers=headers, json=payload)
    assert first.status_code == 201
    replay = client.post("/gymdesk/pos/sales", headers=headers, json=payload)
    assert replay.status_code == 201
    assert replay.headers.get("X-Idempotency-Result") == ErrorCatalog.IDEMPOTENCY_REPLAY.code
    assert replay.json() == first.json()

    db_session.refresh(product)
    assert product.stock == 3
    assert db_session.query(Sale).filter(Sale.tenant_id == tenant.id).count() == 1


def test_key_reuse_with_different_payload_is_conflict(client, db_session):
    tenant, user = create_tenant_user(db_session, suffix="idem-conflict", role="RECEPTIONIST")
    product = create_product(db_session, tenant, name="Bar", price="20.00", stock=5)
    open_shift(client, auth_headers(user))
    headers = auth_headers(user, **{"Idempotency-Key": "sale-2"})

    assert client.post("/gymdesk/pos/sales", headers=headers, json={"items": [sale_line(product, 1)]}).status_code == 201
    conflict = client.post("/gymdesk/pos/sales", headers=headers, json={"items": [sale_line(product, 2)]})
    assert conflict.status_code == 409
    assert conflict.json()["code"] == ErrorCatalog.IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD.code


def test_failed_request_is_replayed_as_failure(client, db_session):
    tenant, user = create_tenant_user(db_session, suffix="idem-failure", role="RECEPTIONIST")
    product = create_product(db_session, tenant, name="Bar", price="20.00", stock=1)
    open_shift(client, auth_headers(user))
    headers = auth_headers(user, **{"Idempotency-Key": "sale-3"})
    payload = {"items": [sale_line(product, 3)]}

    first = client.post("/gymdesk/pos/sales", headers=headers, json=payload)
    assert first.status_code == 409
    assert first.json()["code"] == ErrorCatalog.INSUFFICIENT_STOCK.code

    record = db_session.query(IdempotencyRecord).filter(IdempotencyRecord.idempotency_key == "sale-3").one()
    assert record.state == "failed"
    assert record.status_code == 409

    replay = client.post("/gymdesk/pos/sales", headers=headers, json=payload)
    assert replay.status_code == 409
    assert replay.headers.get("X-Idempotency-Result") == ErrorCatalog.IDEMPOTENCY_REPLAY.code
    assert replay.json()["code"] == ErrorCatalog.INSUFFICIENT_STOCK.code


def test_open_shift_replay_does_not_conflict(client, db_session):
    _tenant, user = create_tenant_user(db_session, suffix="idem-open", role="RECEPTIONIST")
    headers = auth_headers(user, **{"Idempotency-Key": "open-1"})

    first = client.post("/gymdesk/pos/shifts/open", headers=headers, json={"opening_balance": "100.00"})
    replay = client.post("/gymdesk/pos/shifts/open", headers=headers, json={"opening_balance": "100.00"})
    assert first.status_code == 201
    assert replay.status_code == 201
    assert replay.json()["shift"]["id"] == first.json()["shift"]["id"]


def test_sale_and_expense_are_audited_with_trace(client, db_session):
    tenant, user = create_tenant_user(db_session, suffix="audit-sale", role="RECEPTIONIST")
    product = create_product(db_session, tenant, name="Bar", price="20.00", stock=5)
    headers = auth_headers(user)
    open_shift(client, headers)

    sale = client.post("/gymdesk/pos/sales", headers=headers, json={"items": [sale_line(product, 1)]})
    trace_id = sale.headers.get("X-Trace-ID")
    assert trace_id
    client.post("/gymdesk/pos/expenses", headers=headers, json={"amount": "5.00", "type": "CASH_DROP"})

    sale_event = db_session.query(AuditEvent).filter(AuditEvent.action == "sale.create").one()
    assert sale_event.entity_id == sale.json()["sale"]["id"]
    assert sale_event.trace_id == trace_id
    assert sale_event.after_payload["total"] == "20.00"
    assert sale_event.event_metadata["actor_role"] == "RECEPTIONIST"

    expense_event = db_session.query(AuditEvent).filter(AuditEvent.action == "expense.create").one()
    assert expense_event.after_payload["type"] == "CASH_DROP"
    assert db_session.query(AuditEvent).filter(AuditEvent.action == "shift.open").count() == 1
