"""Seed the default organization."""

from sqlalchemy.orm import Session
from kanvaro.models.organization import Organization
from kanvaro.core.config import settings


def seed_organization(db: Session) -> Organization:
    """Create the default organization if none exists."""
    org = db.query(Organization).order_by(Organization.id).first()
    if org:
        print(f"ℹ️  Organization '{org.name}' already exists, skipping.")
        return org

    org = Organization(name=settings.DEFAULT_ORGANIZATION_NAME)
    db.add(org)
    db.commit()
    db.refresh(org)
    print(f"✅ Created organization: {org.name}")
    return org
