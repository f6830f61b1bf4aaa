"""Organization API router: read and update organization settings."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from kanvaro.core.exceptions import not_found
from kanvaro.core.security import CurrentUser, RequirePermission, get_current_user
from kanvaro.db.session import get_db
from kanvaro.models.organization import Organization
from kanvaro.permissions.catalog import Permission
from kanvaro.schemas.schemas import OrganizationOut, OrganizationSettingsUpdate
from kanvaro.services.audit_service import audit_service

router = APIRouter(prefix="/organization", tags=["organization"])


def _get_organization(db: Session, organization_id: int) -> Organization:
    org = db.query(Organization).filter(Organization.id == organization_id).first()
    if not org:
        raise not_found("Organization not found")
    return org


@router.get("", response_model=OrganizationOut)
async def get_organization(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return _get_organization(db, user.organization_id)


@router.put("/settings", response_model=OrganizationOut)
async def update_settings(
    body: OrganizationSettingsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(RequirePermission(Permission.ORGANIZATION_MANAGE_SETTINGS)),
):
    """Update retention, time-tracking rules and notification flags."""
    org = _get_organization(db, user.organization_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    old = {key: getattr(org, key) for key in changes}
    for key, value in changes.items():
        setattr(org, key, value)
    db.commit()
    db.refresh(org)

    if changes:
        audit_service.record_request(
            db, request, user,
            action="organization.settings_updated", resource_type="organization",
            resource_id=org.id, before=old, after=changes,
        )
    return org
