"""Permission resolution: system roles, custom roles and project roles."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import or_
from sqlalchemy.orm import Session

from kanvaro.core.exceptions import AuthorizationError, ResourceNotFoundError
from kanvaro.models.project import Project, ProjectMember, ProjectRoleAssignment
from kanvaro.models.user import User
from kanvaro.permissions.catalog import (
    ORGANIZATION_WIDE_ROLES,
    PROJECT_ROLE_PERMISSIONS,
    ROLE_PERMISSIONS,
    SAFE_DEFAULT_PERMISSIONS,
    Permission,
    PermissionScope,
    ProjectRole,
    SystemRole,
    parse_permissions,
    permission_scope,
    sorted_tags,
)

logger = logging.getLogger(__name__)


@dataclass
class CustomRoleInfo:
    id: int
    name: str
    permissions: List[Permission]


@dataclass
class UserPermissions:
    """Effective permissions of one user, computed fresh per request."""

    user_id: Optional[int]
    organization_id: Optional[int]
    user_role: Optional[SystemRole]
    global_permissions: List[Permission] = field(default_factory=list)
    project_permissions: Dict[int, List[Permission]] = field(default_factory=dict)
    project_roles: Dict[int, str] = field(default_factory=dict)
    accessible_projects: List[int] = field(default_factory=list)
    custom_role: Optional[CustomRoleInfo] = None

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "userRole": self.user_role.value if self.user_role else None,
            "globalPermissions": sorted_tags(self.global_permissions),
            "projectPermissions": {
                str(pid): sorted_tags(perms) for pid, perms in self.project_permissions.items()
            },
            "projectRoles": {str(pid): role for pid, role in self.project_roles.items()},
            "accessibleProjects": [str(pid) for pid in self.accessible_projects],
            "customRole": (
                {
                    "id": self.custom_role.id,
                    "name": self.custom_role.name,
                    "permissions": sorted_tags(self.custom_role.permissions),
                }
                if self.custom_role
                else None
            ),
        }


class PermissionService:
    """Resolve and check permissions against the database."""

    @staticmethod
    def _load_user(db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError("User not found")
        return user

    @staticmethod
    def _global_permissions(user: User) -> List[Permission]:
        custom = user.custom_role
        if custom is not None and custom.is_active:
            return parse_permissions(custom.permissions)
        return sorted(ROLE_PERMISSIONS[SystemRole(user.role)], key=lambda p: p.value)

    @staticmethod
    def _assignment_permissions(assignment: ProjectRoleAssignment) -> Optional[List[Permission]]:
        if assignment.custom_role is not None:
            if not assignment.custom_role.is_active:
                return None
            return parse_permissions(assignment.custom_role.permissions)
        if assignment.role:
            role = ProjectRole(assignment.role)
            return sorted(PROJECT_ROLE_PERMISSIONS[role], key=lambda p: p.value)
        return None

    @staticmethod
    def _accessible_project_ids(
        db: Session, user: User, global_permissions: Iterable[Permission], assigned: Iterable[int]
    ) -> List[int]:
        org_projects = db.query(Project.id).filter(Project.organization_id == user.organization_id)
        role = SystemRole(user.role)
        if role in ORGANIZATION_WIDE_ROLES or Permission.PROJECT_VIEW_ALL in set(global_permissions):
            return sorted(pid for (pid,) in org_projects.all())

        member_ids = db.query(ProjectMember.project_id).filter(ProjectMember.user_id == user.id)
        related = org_projects.filter(
            or_(
                Project.created_by == user.id,
                Project.client_id == user.id,
                Project.id.in_(member_ids),
            )
        )
        ids: Set[int] = {pid for (pid,) in related.all()}
        ids.update(assigned)
        return sorted(ids)

    @staticmethod
    def get_user_permissions(db: Session, user_id: int) -> UserPermissions:
        """Compute a user's global, per-project and accessible-project permissions.

        Raises:
            ResourceNotFoundError: If the user does not exist.
        """
        user = PermissionService._load_user(db, user_id)
        global_permissions = PermissionService._global_permissions(user)

        project_permissions: Dict[int, List[Permission]] = {}
        project_roles: Dict[int, str] = {}
        assignments = (
            db.query(ProjectRoleAssignment)
            .join(Project, Project.id == ProjectRoleAssignment.project_id)
            .filter(
                ProjectRoleAssignment.user_id == user.id,
                Project.organization_id == user.organization_id,
            )
            .all()
        )
        for assignment in assignments:
            perms = PermissionService._assignment_permissions(assignment)
            if perms is None:
                continue
            project_permissions[assignment.project_id] = perms
            project_roles[assignment.project_id] = (
                assignment.role if assignment.role else assignment.custom_role.name
            )

        custom_role = None
        if user.custom_role is not None and user.custom_role.is_active:
            custom_role = CustomRoleInfo(
                id=user.custom_role.id,
                name=user.custom_role.name,
                permissions=parse_permissions(user.custom_role.permissions),
            )

        return UserPermissions(
            user_id=user.id,
            organization_id=user.organization_id,
            user_role=SystemRole(user.role),
            global_permissions=global_permissions,
            project_permissions=project_permissions,
            project_roles=project_roles,
            accessible_projects=PermissionService._accessible_project_ids(
                db, user, global_permissions, project_permissions.keys()
            ),
            custom_role=custom_role,
        )

    @staticmethod
    def has_permission(
        db: Session, user_id: int, permission: Permission, project_id: Optional[int] = None
    ) -> bool:
        """Check one permission, optionally in the context of a project."""
        perms = PermissionService.get_user_permissions(db, user_id)
        scope = permission_scope(permission)

        if scope is PermissionScope.OWN:
            return True
        if scope is PermissionScope.GLOBAL:
            return permission in perms.global_permissions

        if project_id is None:
            return False
        if permission in perms.global_permissions:
            in_org = (
                db.query(Project.id)
                .filter(Project.id == project_id, Project.organization_id == perms.organization_id)
                .first()
            )
            if in_org:
                return True
        return permission in perms.project_permissions.get(project_id, [])

    @staticmethod
    def has_any_permission(
        db: Session, user_id: int, permissions: Iterable[Permission], project_id: Optional[int] = None
    ) -> bool:
        return any(
            PermissionService.has_permission(db, user_id, p, project_id) for p in permissions
        )

    @staticmethod
    def has_all_permissions(
        db: Session, user_id: int, permissions: Iterable[Permission], project_id: Optional[int] = None
    ) -> bool:
        return all(
            PermissionService.has_permission(db, user_id, p, project_id) for p in permissions
        )

    @staticmethod
    def can_access_project(db: Session, user_id: int, project_id: int) -> bool:
        perms = PermissionService.get_user_permissions(db, user_id)
        return project_id in perms.accessible_projects

    @staticmethod
    def get_accessible_projects(db: Session, user_id: int) -> List[int]:
        return PermissionService.get_user_permissions(db, user_id).accessible_projects

    @staticmethod
    def require_permission(
        db: Session, user_id: int, permission: Permission, project_id: Optional[int] = None
    ) -> None:
        if not PermissionService.has_permission(db, user_id, permission, project_id):
            raise AuthorizationError(f"Insufficient permissions: {permission.value}")

    @staticmethod
    def require_project_access(db: Session, user_id: int, project_id: int) -> None:
        if not PermissionService.can_access_project(db, user_id, project_id):
            raise AuthorizationError("Access denied to project")

    @staticmethod
    def safe_default(user_id: Optional[int] = None) -> UserPermissions:
        """Read-only fallback used when resolution fails."""
        return UserPermissions(
            user_id=user_id,
            organization_id=None,
            user_role=None,
            global_permissions=sorted(SAFE_DEFAULT_PERMISSIONS, key=lambda p: p.value),
        )


permission_service = PermissionService()
