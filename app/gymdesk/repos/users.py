from sqlalchemy import select

from app.gymdesk.db.models import Tenant, User


class UserRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, user_id: str):
        stmt = select(User).where(User.id == user_id)
        return self.db.execute(stmt).scalars().first()

    def get_active_in_tenant(self, user_id: str, tenant_id: str):
        stmt = select(User).where(User.id == user_id, User.tenant_id == tenant_id, User.status == "active")
        return self.db.execute(stmt).scalars().first()

    def get_tenant_owner(self, tenant_id: str):
        """First ADMIN of the gym with a phone number on file."""
        stmt = (
            select(User)
            .where(
                User.tenant_id == tenant_id,
                User.role == "ADMIN",
                User.status == "active",
                User.phone.is_not(None),
                User.phone != "",
            )
            .order_by(User.created_at.asc())
        )
        return self.db.execute(stmt).scalars().first()


class TenantRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, tenant_id: str):
        stmt = select(Tenant).where(Tenant.id == tenant_id)
        return self.db.execute(stmt).scalars().first()
