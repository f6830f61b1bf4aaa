"""Tests for permission resolution against the database."""

import pytest

from kanvaro.core.exceptions import AuthorizationError, ResourceNotFoundError
from kanvaro.models.organization import Organization
from kanvaro.permissions.catalog import Permission, ProjectRole, SystemRole
from kanvaro.services.permission_service import permission_service


class TestGetUserPermissions:
    """Tests for PermissionService.get_user_permissions."""

    def test_system_role_table(self, db, member) -> None:
        perms = permission_service.get_user_permissions(db, member.id)
        assert perms.user_role is SystemRole.team_member
        assert Permission.TIME_TRACKING_CREATE in perms.global_permissions
        assert Permission.PROJECT_CREATE not in perms.global_permissions
        assert perms.custom_role is None

    def test_custom_role_replaces_system_table(self, db, make_user, make_custom_role) -> None:
        """A user with a custom role gets exactly its permissions."""
        role = make_custom_role("Auditor", ["project:read", "team:view_activity"])
        user = make_user(SystemRole.admin, custom_role=role)

        perms = permission_service.get_user_permissions(db, user.id)

        assert set(perms.global_permissions) == {
            Permission.PROJECT_READ,
            Permission.TEAM_VIEW_ACTIVITY,
        }
        assert perms.custom_role.name == "Auditor"

    def test_inactive_custom_role_falls_back_to_system_table(
        self, db, make_user, make_custom_role
    ) -> None:
        role = make_custom_role("Old", ["project:read"])
        user = make_user(SystemRole.admin, custom_role=role)
        role.is_active = False
        db.commit()

        perms = permission_service.get_user_permissions(db, user.id)
        assert Permission.USER_MANAGE_ROLES in perms.global_permissions
        assert perms.custom_role is None

    def test_project_map_only_from_assignments(
        self, db, admin, member, make_project, add_member
    ) -> None:
        """Membership alone grants access but no project permission entry."""
        project = make_project(admin)
        add_member(project, member)

        perms = permission_service.get_user_permissions(db, member.id)

        assert project.id in perms.accessible_projects
        assert project.id not in perms.project_permissions

    def test_project_role_assignment(self, db, admin, member, make_project, assign_role) -> None:
        project = make_project(admin)
        assign_role(project, member, role=ProjectRole.project_manager.value)

        perms = permission_service.get_user_permissions(db, member.id)

        assert Permission.PROJECT_MANAGE_TEAM in perms.project_permissions[project.id]
        assert perms.project_roles[project.id] == "project_manager"
        assert project.id in perms.accessible_projects

    def test_custom_project_role_assignment(
        self, db, admin, member, make_project, make_custom_role, assign_role
    ) -> None:
        project = make_project(admin)
        role = make_custom_role("Reviewer", ["task:read", "task:update"])
        assign_role(project, member, custom_role=role)

        perms = permission_service.get_user_permissions(db, member.id)

        assert set(perms.project_permissions[project.id]) == {
            Permission.TASK_READ,
            Permission.TASK_UPDATE,
        }
        assert perms.project_roles[project.id] == "Reviewer"

    def test_admin_sees_every_org_project(self, db, admin, member, make_project) -> None:
        first = make_project(member, name="One")
        second = make_project(member, name="Two")

        perms = permission_service.get_user_permissions(db, admin.id)
        assert perms.accessible_projects == sorted([first.id, second.id])

    def test_unrelated_member_sees_nothing(self, db, admin, member, make_project) -> None:
        make_project(admin)
        assert permission_service.get_accessible_projects(db, member.id) == []

    def test_creator_and_client_see_project(self, db, make_user, make_project) -> None:
        creator = make_user(SystemRole.team_member)
        client = make_user(SystemRole.client)
        project = make_project(creator, client_id=client.id)

        assert permission_service.can_access_project(db, creator.id, project.id)
        assert permission_service.can_access_project(db, client.id, project.id)

    def test_unknown_user(self, db) -> None:
        with pytest.raises(ResourceNotFoundError):
            permission_service.get_user_permissions(db, 9999)

    def test_to_dict_shape(self, db, admin, make_project) -> None:
        project = make_project(admin)
        data = permission_service.get_user_permissions(db, admin.id).to_dict()

        assert data["userId"] == admin.id
        assert data["userRole"] == "admin"
        assert "user:manage_roles" in data["globalPermissions"]
        assert data["accessibleProjects"] == [str(project.id)]
        assert data["customRole"] is None


class TestHasPermission:
    """Tests for scope-aware permission checks."""

    def test_global_scope_checks_global_set(self, db, admin, member) -> None:
        assert permission_service.has_permission(db, admin.id, Permission.PROJECT_CREATE)
        assert not permission_service.has_permission(db, member.id, Permission.PROJECT_CREATE)

    def test_own_scope_always_granted(self, db, viewer) -> None:
        assert permission_service.has_permission(db, viewer.id, Permission.TIME_TRACKING_UPDATE)

    def test_project_scope_requires_project_id(self, db, admin) -> None:
        assert not permission_service.has_permission(db, admin.id, Permission.PROJECT_MANAGE_TEAM)

    def test_global_grant_applies_inside_org(self, db, admin, make_project) -> None:
        project = make_project(admin)
        assert permission_service.has_permission(
            db, admin.id, Permission.PROJECT_MANAGE_TEAM, project.id
        )

    def test_global_grant_does_not_cross_org(self, db, admin, make_user, make_project) -> None:
        other = Organization(name="Other Co")
        db.add(other)
        db.commit()
        outsider = make_user(SystemRole.admin, organization=other)
        foreign = make_project(outsider, organization_id=other.id)

        assert not permission_service.has_permission(
            db, admin.id, Permission.PROJECT_MANAGE_TEAM, foreign.id
        )

    def test_project_role_grants_in_that_project_only(
        self, db, admin, member, make_project, assign_role
    ) -> None:
        managed = make_project(admin, name="Managed")
        other = make_project(admin, name="Other")
        assign_role(managed, member, role=ProjectRole.project_manager.value)

        assert permission_service.has_permission(
            db, member.id, Permission.PROJECT_MANAGE_TEAM, managed.id
        )
        assert not permission_service.has_permission(
            db, member.id, Permission.PROJECT_MANAGE_TEAM, other.id
        )

    def test_viewer_reads_but_cannot_create(self, db, admin, viewer, make_project) -> None:
        project = make_project(admin)
        assert permission_service.has_permission(db, viewer.id, Permission.PROJECT_READ, project.id)
        assert not permission_service.has_permission(db, viewer.id, Permission.PROJECT_CREATE)

    def test_any_and_all(self, db, member) -> None:
        perms = [Permission.PROJECT_CREATE, Permission.TIME_TRACKING_CREATE]
        assert permission_service.has_any_permission(db, member.id, perms)
        assert not permission_service.has_all_permissions(db, member.id, perms)

    def test_require_permission_raises(self, db, member) -> None:
        with pytest.raises(AuthorizationError):
            permission_service.require_permission(db, member.id, Permission.USER_MANAGE_ROLES)

    def test_require_project_access_raises(self, db, admin, member, make_project) -> None:
        project = make_project(admin)
        with pytest.raises(AuthorizationError):
            permission_service.require_project_access(db, member.id, project.id)


class TestSafeDefault:
    """Tests for the read-only fallback."""

    def test_safe_default(self) -> None:
        data = permission_service.safe_default(7).to_dict()
        assert data["userId"] == 7
        assert data["userRole"] is None
        assert "project:read" in data["globalPermissions"]
        assert "project:create" not in data["globalPermissions"]
        assert data["projectPermissions"] == {}
        assert data["accessibleProjects"] == []
