from decimal import Decimal

from sqlalchemy import select

from app.gymdesk.core.config import settings
from app.gymdesk.db.models import Product, Tenant, User


DEFAULT_PRODUCTS = [
    ("Agua 1L", "7500000000011", Decimal("15.00"), 48),
    ("Bebida isotónica", "7500000000028", Decimal("28.50"), 24),
    ("Barra de proteína", "7500000000035", Decimal("35.00"), 30),
    ("Proteína scoop", None, Decimal("25.00"), 100),
    ("Toalla de renta", None, Decimal("10.00"), 20),
]


def _get_or_create_tenant(db):
    tenant = db.execute(select(Tenant).where(Tenant.name == settings.DEFAULT_TENANT_NAME)).scalars().first()
    if tenant:
        return tenant
    tenant = Tenant(name=settings.DEFAULT_TENANT_NAME, subscription_tier="BASIC")
    db.add(tenant)
    db.flush()
    return tenant


def _get_or_create_owner(db, tenant):
    user = (
        db.execute(select(User).where(User.username == settings.DEFAULT_ADMIN_USERNAME, User.tenant_id == tenant.id))
        .scalars()
        .first()
    )
    if user:
        return user
    user = User(
        tenant_id=tenant.id,
        username=settings.DEFAULT_ADMIN_USERNAME,
        email=settings.DEFAULT_ADMIN_EMAIL,
        name="Gym owner",
        role="ADMIN",
        status="active",
    )
    db.add(user)
    return user


def _get_or_create_products(db, tenant):
    existing = {
        product.name
        for product in db.execute(select(Product).where(Product.tenant_id == tenant.id)).scalars().all()
    }
    for name, barcode, price, stock in DEFAULT_PRODUCTS:
        if name in existing:
            continue
        db.add(Product(tenant_id=tenant.id, name=name, barcode=barcode, price=price, stock=stock))


def run_seed(db):
    tenant = _get_or_create_tenant(db)
    _get_or_create_owner(db, tenant)
    _get_or_create_products(db, tenant)
    db.commit()
    return tenant


if __name__ == "__main__":
    from app.gymdesk.db.session import SessionLocal

    session = SessionLocal()
    try:
        run_seed(session)
    finally:
        session.close()
