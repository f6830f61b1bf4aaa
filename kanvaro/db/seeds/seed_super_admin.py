"""Seed the super-admin user from env vars."""

from sqlalchemy.orm import Session
from kanvaro.models.organization import Organization
from kanvaro.models.user import User
from kanvaro.permissions.catalog import SystemRole
from kanvaro.core.security import hash_password
from kanvaro.core.config import settings


def seed_super_admin(db: Session, organization: Organization) -> None:
    """Create the super-admin user if not already present."""
    existing = db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).first()
    if existing:
        print(f"ℹ️  Super admin '{settings.SUPER_ADMIN_EMAIL}' already exists, skipping.")
        return

    admin = User(
        organization_id=organization.id,
        email=settings.SUPER_ADMIN_EMAIL,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        first_name="Super",
        last_name="Admin",
        is_active=True,
        role=SystemRole.super_admin,
    )
    db.add(admin)
    db.commit()
    print(f"✅ Created super admin: {settings.SUPER_ADMIN_EMAIL}")
