"""Roles API router: system role catalog and custom roles."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from kanvaro.core.exceptions import bad_request, not_found
from kanvaro.core.security import CurrentUser, RequirePermission
from kanvaro.db.session import get_db
from kanvaro.models.custom_role import CustomRole
from kanvaro.models.user import User
from kanvaro.permissions.catalog import (
    ROLE_PERMISSIONS, SYSTEM_ROLE_LABELS, Permission, SystemRole, parse_permissions, sorted_tags,
)
from kanvaro.schemas.schemas import CustomRoleCreate, CustomRoleOut, CustomRoleUpdate, MessageResponse
from kanvaro.services.audit_service import audit_service

router = APIRouter(prefix="/roles", tags=["roles"])

can_manage_roles = RequirePermission(Permission.USER_MANAGE_ROLES)

_SYSTEM_NAMES = {role.value for role in SystemRole} | {label.lower() for label in SYSTEM_ROLE_LABELS.values()}


def _validated_permissions(values: List[str]) -> List[str]:
    try:
        return [p.value for p in parse_permissions(values)]
    except ValueError as e:
        raise bad_request(f"Unknown permission: {e}")


def _check_name(db: Session, organization_id: int, name: str, exclude_id: int = None) -> str:
    name = name.strip()
    if name.lower() in _SYSTEM_NAMES or name.lower().replace(" ", "_") in _SYSTEM_NAMES:
        raise bad_request(f"'{name}' is reserved for a system role")
    query = db.query(CustomRole).filter(
        CustomRole.organization_id == organization_id,
        CustomRole.is_active == True,  # noqa: E712
        func.lower(CustomRole.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.filter(CustomRole.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=409, detail="Role name already exists")
    return name


def _get_role(db: Session, organization_id: int, role_id: int) -> CustomRole:
    role = db.query(CustomRole).filter(
        CustomRole.id == role_id,
        CustomRole.organization_id == organization_id,
        CustomRole.is_active == True,  # noqa: E712
    ).first()
    if not role:
        raise not_found("Role not found")
    return role


def _user_count(db: Session, role_id: int) -> int:
    return db.query(User).filter(User.custom_role_id == role_id, User.is_active == True).count()  # noqa: E712


def _role_out(db: Session, role: CustomRole) -> CustomRoleOut:
    return CustomRoleOut(
        id=role.id,
        name=role.name,
        description=role.description,
        permissions=role.permissions,
        is_active=role.is_active,
        user_count=_user_count(db, role.id),
        created_at=role.created_at,
    )


@router.get("")
async def list_roles(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(can_manage_roles),
):
    """System roles with their permission tables plus active custom roles."""
    system_roles = []
    for role in SystemRole:
        count = db.query(User).filter(
            User.organization_id == user.organization_id,
            User.role == role,
            User.is_active == True,  # noqa: E712
        ).count()
        system_roles.append({
            "id": role.value,
            "name": SYSTEM_ROLE_LABELS[role],
            "permissions": sorted_tags(ROLE_PERMISSIONS[role]),
            "is_system": True,
            "user_count": count,
        })

    custom = (
        db.query(CustomRole)
        .filter(CustomRole.organization_id == user.organization_id, CustomRole.is_active == True)  # noqa: E712
        .order_by(CustomRole.name)
        .all()
    )
    return {
        "system_roles": system_roles,
        "custom_roles": [_role_out(db, r) for r in custom],
    }


@router.post("", response_model=CustomRoleOut, status_code=201)
async def create_role(
    body: CustomRoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(can_manage_roles),
):
    """Create a custom role from a list of permission tags."""
    name = _check_name(db, user.organization_id, body.name)
    role = CustomRole(
        organization_id=user.organization_id,
        name=name,
        description=body.description,
        created_by=user.id,
        is_active=True,
    )
    role.permissions = _validated_permissions(body.permissions)
    db.add(role)
    db.commit()
    db.refresh(role)

    audit_service.record_request(
        db, request, user,
        action="role.created", resource_type="custom_role", resource_id=role.id,
        after={"name": role.name, "permissions": role.permissions},
    )
    return _role_out(db, role)


@router.put("/{role_id}", response_model=CustomRoleOut)
async def update_role(
    role_id: int,
    body: CustomRoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(can_manage_roles),
):
    """Rename a custom role or replace its permissions."""
    role = _get_role(db, user.organization_id, role_id)
    old = {"name": role.name, "permissions": role.permissions}

    if body.name is not None:
        role.name = _check_name(db, user.organization_id, body.name, exclude_id=role.id)
    if body.description is not None:
        role.description = body.description
    if body.permissions is not None:
        if not body.permissions:
            raise bad_request("At least one permission is required")
        role.permissions = _validated_permissions(body.permissions)
    db.commit()
    db.refresh(role)

    audit_service.record_request(
        db, request, user,
        action="role.updated", resource_type="custom_role", resource_id=role.id,
        before=old, after={"name": role.name, "permissions": role.permissions},
    )
    return _role_out(db, role)


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(can_manage_roles),
):
    """Deactivate a custom role that no active user holds."""
    role = _get_role(db, user.organization_id, role_id)
    holders = _user_count(db, role.id)
    if holders:
        raise bad_request(f"Cannot delete role: {holders} user(s) are assigned to it")

    role.is_active = False
    db.commit()

    audit_service.record_request(
        db, request, user,
        action="role.deleted", resource_type="custom_role", resource_id=role.id,
        before={"name": role.name},
    )
    return MessageResponse(message="Role deleted successfully")
