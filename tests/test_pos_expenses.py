from app.gymdesk.core.error_catalog import ErrorCatalog
from app.gymdesk.db.models import Expense
from tests.pos_helpers import auth_headers, create_tenant_user, create_user, open_shift, record_expense


def test_supplier_payment_requires_description(client, db_session):
    tenant, user = create_tenant_user(db_session, suffix="expense-desc", role="RECEPTIONIST")
    headers = auth_headers(user)
    open_shift(client, headers)

    missing = record_expense(client, headers, amount="50.00", expense_type="SUPPLIER_PAYMENT")
    assert missing.status_code == 422
    assert missing.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code
    assert missing.json()["details"]["field"] == "description"

    too_short = record_expense(client, headers, amount="50.00", expense_type="SUPPLIER_PAYMENT", description=" ab ")
    assert too_short.status_code == 422

    assert db_session.query(Expense).filter(Expense.tenant_id == tenant.id).count() == 0

    accepted = record_expense(
        client, headers, amount="50.00", expense_type="SUPPLIER_PAYMENT", description="  Water supplier  "
    )
    assert accepted.status_code == 201
    expense = accepted.json()["expense"]
    assert expense["type"] == "SUPPLIER_PAYMENT"
    assert expense["amount"] == "50.00"
    assert expense["description"] == "Water supplier"


def test_operational_expense_requires_description(client, db_session):
    _tenant, user = create_tenant_user(db_session, suffix="expense-operational", role="RECEPTIONIST")
    headers = auth_headers(user)
    open_shift(client, headers)

    response = record_expense(client, headers, amount="12.00", expense_type="OPERATIONAL_EXPENSE")
    assert response.status_code == 422

    short = record_expense(client, headers, amount="12.00", expense_type="OPERATIONAL_EXPENSE", description="ok")
    assert short.status_code == 422
    assert short.json()["details"]["field"] == "description"


def test_cash_drop_description_is_optional(client, db_session):
    _tenant, user = create_tenant_user(db_session, suffix="expense-drop", role="RECEPTIONIST")
    headers = auth_headers(user)
    shift = open_shift(client, headers)

    response = record_expense(client, headers, amount="200.00", expense_type="CASH_DROP")
    assert response.status_code == 201
    expense = response.json()["expense"]
    assert expense["description"] is None
    assert expense["shift_id"] == shift["id"]
    assert expense["user_id"] == str(user.id)


def test_expense_amount_must_be_positive(client, db_session):
    _tenant, user = create_tenant_user(db_session, suffix="expense-amount", role="RECEPTIONIST")
    headers = auth_headers(user)
    open_shift(client, headers)

    for amount in ("0", "-5.00"):
        response = record_expense(client, headers, amount=amount, expense_type="CASH_DROP")
        assert response.status_code == 422
        assert response.json()["details"]["field"] == "amount"


def test_expense_amount_must_fit_the_ledger(client, db_session):
    tenant, user = create_tenant_user(db_session, suffix="expense-huge", role="RECEPTIONIST")
    headers = auth_headers(user)
    open_shift(client, headers)

    response = record_expense(client, headers, amount="100000000000000000.00", expense_type="CASH_DROP")
    assert response.status_code == 422
    assert response.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code
    assert response.json()["details"]["field"] == "amount"
    assert db_session.query(Expense).filter(Expense.tenant_id == tenant.id).count() == 0


def test_expense_type_must_be_known(client, db_session):
    _tenant, user = create_tenant_user(db_session, suffix="expense-type", role="RECEPTIONIST")
    headers = auth_headers(user)
    open_shift(client, headers)

    response = record_expense(client, headers, amount="5.00", expense_type="TIPS", description="Tip jar")
    assert response.status_code == 422
    assert response.json()["details"]["field"] == "type"


def test_expense_requires_open_shift(client, db_session):
    _tenant, user = create_tenant_user(db_session, suffix="expense-no-shift", role="RECEPTIONIST")
    response = record_expense(client, auth_headers(user), amount="5.00", expense_type="CASH_DROP")
    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.SHIFT_NOT_OPEN.code


def test_expense_cannot_target_another_operators_shift(client, db_session):
    tenant, owner = create_tenant_user(db_session, suffix="expense-owner", role="RECEPTIONIST")
    other = create_user(db_session, tenant, suffix="expense-owner-other", role="RECEPTIONIST")
    shift = open_shift(client, auth_headers(owner))
    open_shift(client, auth_headers(other))

    response = record_expense(
        client, auth_headers(other), amount="5.00", expense_type="CASH_DROP", shift_id=shift["id"]
    )
    assert response.status_code == 403
    assert response.json()["code"] == ErrorCatalog.NOT_SHIFT_OWNER.code
