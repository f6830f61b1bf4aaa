"""Admin API router: audit trail and user role assignment."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from kanvaro.core.exceptions import forbidden, not_found
from kanvaro.core.security import CurrentUser, RequirePermission
from kanvaro.db.session import get_db
from kanvaro.models.custom_role import CustomRole
from kanvaro.models.user import User
from kanvaro.permissions.catalog import Permission, SystemRole
from kanvaro.schemas.schemas import AuditLogOut, UserOut, UserRoleUpdate
from kanvaro.services.audit_service import audit_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit")
async def list_audit_logs(
    actor_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(RequirePermission(Permission.TEAM_VIEW_ACTIVITY)),
):
    """Query the organization's audit trail."""
    result = audit_service.search(
        db, user.organization_id, actor_id, action, resource_type, page, page_size
    )
    return {
        "logs": [AuditLogOut.model_validate(log) for log in result["logs"]],
        "total": result["total"],
        "page": result["page"],
        "page_size": result["page_size"],
    }


@router.put("/users/{user_id}/role", response_model=UserOut)
async def update_user_role(
    user_id: int,
    body: UserRoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(RequirePermission(Permission.USER_MANAGE_ROLES)),
):
    """Change a user's system role or custom role."""
    target = db.query(User).filter(
        User.id == user_id, User.organization_id == user.organization_id
    ).first()
    if not target:
        raise not_found("User not found")
    # Token claims can be stale; the stored role decides.
    caller = db.query(User).filter(User.id == user.id).first()
    caller_is_root = caller is not None and SystemRole(caller.role) is SystemRole.super_admin
    if not caller_is_root:
        if body.role is SystemRole.super_admin:
            raise forbidden("Only a super admin can grant super_admin")
        if SystemRole(target.role) is SystemRole.super_admin:
            raise forbidden("Only a super admin can change a super admin's role")

    old = {"role": SystemRole(target.role).value, "custom_role_id": target.custom_role_id}
    if body.role is not None:
        target.role = body.role
    if body.custom_role_id is not None:
        if body.custom_role_id == 0:
            target.custom_role_id = None
        else:
            custom = db.query(CustomRole).filter(
                CustomRole.id == body.custom_role_id,
                CustomRole.organization_id == user.organization_id,
                CustomRole.is_active == True,  # noqa: E712
            ).first()
            if not custom:
                raise not_found("Role not found")
            target.custom_role_id = custom.id
    db.commit()
    db.refresh(target)

    audit_service.record_request(
        db, request, user,
        action="user.role_changed", resource_type="user", resource_id=target.id,
        before=old,
        after={"role": SystemRole(target.role).value, "custom_role_id": target.custom_role_id},
    )
    return target
