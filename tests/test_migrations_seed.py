import os
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, func, inspect, select
from sqlalchemy.orm import sessionmaker

from app.gymdesk.db.models import Product, Tenant, User
from app.gymdesk.db.seed import DEFAULT_PRODUCTS, run_seed


def _run_migrations(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


def test_migrations_apply(tmp_path: Path):
    db_path = tmp_path / "migrations.db"
    database_url = f"sqlite+pysqlite:///{db_path}"
    _run_migrations(database_url)

    engine = create_engine(database_url, future=True)
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())

    assert {
        "tenants",
        "users",
        "products",
        "inventory_movements",
        "cash_shifts",
        "sales",
        "sale_items",
        "expenses",
        "receipt_sequences",
        "idempotency_records",
        "audit_events",
    } <= tables

    shift_indexes = {index["name"]: index for index in inspector.get_indexes("cash_shifts")}
    assert "uq_cash_shifts_one_open_per_operator" in shift_indexes
    assert shift_indexes["uq_cash_shifts_one_open_per_operator"]["unique"]
    engine.dispose()


def test_seed_is_idempotent(tmp_path: Path):
    db_path = tmp_path / "seed.db"
    database_url = f"sqlite+pysqlite:///{db_path}"
    _run_migrations(database_url)

    engine = create_engine(database_url, future=True)
    SessionLocal = sessionmaker(bind=engine, future=True)

    with SessionLocal() as db:
        tenant = run_seed(db)
        products_count = db.scalar(select(func.count()).select_from(Product))
        users_count = db.scalar(select(func.count()).select_from(User))

        again = run_seed(db)
        assert again.id == tenant.id
        assert db.scalar(select(func.count()).select_from(Tenant)) == 1
        assert db.scalar(select(func.count()).select_from(Product)) == products_count == len(DEFAULT_PRODUCTS)
        assert db.scalar(select(func.count()).select_from(User)) == users_count == 1

        owner = db.execute(select(User)).scalars().one()
        assert owner.role == "ADMIN"
        assert owner.tenant_id == tenant.id
    engine.dispose()
