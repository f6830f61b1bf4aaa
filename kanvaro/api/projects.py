"""Projects API router: projects, team members and project roles."""

from typing import Iterable

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from kanvaro.core.exceptions import bad_request, forbidden, not_found
from kanvaro.core.security import CurrentUser, RequirePermission, get_current_user
from kanvaro.db.session import get_db
from kanvaro.models.custom_role import CustomRole
from kanvaro.models.project import Project, ProjectMember, ProjectRoleAssignment
from kanvaro.models.user import User
from kanvaro.permissions.catalog import Permission, ProjectRole
from kanvaro.schemas.schemas import (
    MessageResponse, ProjectCreate, ProjectMemberAdd, ProjectOut, ProjectRoleAssign,
)
from kanvaro.services.audit_service import audit_service
from kanvaro.services.notification_broadcaster import NotificationBroadcaster, get_broadcaster
from kanvaro.services.permission_service import permission_service

router = APIRouter(prefix="/projects", tags=["projects"])


def _get_project(db: Session, user: CurrentUser, project_id: int) -> Project:
    project = db.query(Project).filter(
        Project.id == project_id,
        Project.organization_id == user.organization_id,
    ).first()
    if not project:
        raise not_found("Project not found")
    return project


def _org_user(db: Session, organization_id: int, user_id: int) -> User:
    member = db.query(User).filter(
        User.id == user_id,
        User.organization_id == organization_id,
        User.is_active == True,  # noqa: E712
    ).first()
    if not member:
        raise not_found("User not found")
    return member


def _push_project_event(
    broadcaster: NotificationBroadcaster, user_ids: Iterable[int], project: Project, action: str
) -> None:
    payload = {"entityType": "project", "entityId": str(project.id), "action": action, "name": project.name}
    for uid in set(user_ids):
        broadcaster.send_task_update(uid, payload)


@router.post("", response_model=ProjectOut, status_code=201)
async def create_project(
    body: ProjectCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(RequirePermission(Permission.PROJECT_CREATE)),
):
    """Create a project; the creator becomes its project manager."""
    if body.client_id is not None:
        _org_user(db, user.organization_id, body.client_id)

    project = Project(
        organization_id=user.organization_id,
        name=body.name,
        description=body.description,
        created_by=user.id,
        client_id=body.client_id,
        allow_time_tracking=body.allow_time_tracking,
        require_approval=body.require_approval,
    )
    db.add(project)
    db.flush()
    db.add(ProjectMember(project_id=project.id, user_id=user.id, added_by=user.id))
    db.add(ProjectRoleAssignment(
        user_id=user.id,
        project_id=project.id,
        role=ProjectRole.project_manager.value,
        assigned_by=user.id,
    ))
    db.commit()
    db.refresh(project)

    audit_service.record_request(
        db, request, user,
        action="project.created", resource_type="project", resource_id=project.id,
        after={"name": project.name},
    )
    return project


@router.get("", response_model=list[ProjectOut])
async def list_projects(
    include_archived: bool = False,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Projects the caller can access."""
    ids = permission_service.get_accessible_projects(db, user.id)
    if not ids:
        return []
    query = db.query(Project).filter(Project.id.in_(ids))
    if not include_archived:
        query = query.filter(Project.is_archived == False)  # noqa: E712
    return query.order_by(Project.created_at.desc(), Project.id.desc()).all()


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    project = _get_project(db, user, project_id)
    if not permission_service.can_access_project(db, user.id, project.id):
        raise forbidden("Access denied to project")
    return project


@router.post("/{project_id}/members", response_model=MessageResponse, status_code=201)
async def add_member(
    project_id: int,
    body: ProjectMemberAdd,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(RequirePermission(Permission.PROJECT_MANAGE_TEAM, "project_id")),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
):
    """Add a user to the project team."""
    project = _get_project(db, user, project_id)
    member = _org_user(db, user.organization_id, body.user_id)
    exists = db.query(ProjectMember).filter(
        ProjectMember.project_id == project.id, ProjectMember.user_id == member.id
    ).first()
    if exists:
        raise bad_request("User is already a team member")

    db.add(ProjectMember(project_id=project.id, user_id=member.id, added_by=user.id))
    db.commit()
    _push_project_event(broadcaster, [member.id], project, "member_added")
    return MessageResponse(message="Team member added")


@router.delete("/{project_id}/members/{user_id}", response_model=MessageResponse)
async def remove_member(
    project_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(RequirePermission(Permission.PROJECT_MANAGE_TEAM, "project_id")),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
):
    """Remove a user from the project team."""
    project = _get_project(db, user, project_id)
    deleted = db.query(ProjectMember).filter(
        ProjectMember.project_id == project.id, ProjectMember.user_id == user_id
    ).delete(synchronize_session=False)
    if not deleted:
        raise not_found("Team member not found")
    db.commit()
    _push_project_event(broadcaster, [user_id], project, "member_removed")
    return MessageResponse(message="Team member removed")


@router.put("/{project_id}/roles/{user_id}")
async def assign_project_role(
    project_id: int,
    user_id: int,
    body: ProjectRoleAssign,
    request: Request,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(RequirePermission(Permission.PROJECT_MANAGE_TEAM, "project_id")),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
):
    """Give a user a project role, either a system project role or a custom role."""
    if (body.role is None) == (body.custom_role_id is None):
        raise bad_request("Provide exactly one of role or custom_role_id")

    project = _get_project(db, user, project_id)
    target = _org_user(db, user.organization_id, user_id)

    role_value = None
    custom_role_id = None
    if body.role is not None:
        try:
            role_value = ProjectRole(body.role).value
        except ValueError:
            raise bad_request(f"Unknown project role: {body.role}")
    else:
        custom = db.query(CustomRole).filter(
            CustomRole.id == body.custom_role_id,
            CustomRole.organization_id == user.organization_id,
            CustomRole.is_active == True,  # noqa: E712
        ).first()
        if not custom:
            raise not_found("Role not found")
        custom_role_id = custom.id

    assignment = db.query(ProjectRoleAssignment).filter(
        ProjectRoleAssignment.project_id == project.id,
        ProjectRoleAssignment.user_id == target.id,
    ).first()
    previous = None
    if assignment:
        previous = {"role": assignment.role, "custom_role_id": assignment.custom_role_id}
        assignment.role = role_value
        assignment.custom_role_id = custom_role_id
        assignment.assigned_by = user.id
    else:
        assignment = ProjectRoleAssignment(
            user_id=target.id,
            project_id=project.id,
            role=role_value,
            custom_role_id=custom_role_id,
            assigned_by=user.id,
        )
        db.add(assignment)
    db.commit()

    current = {"role": role_value, "custom_role_id": custom_role_id}
    audit_service.record_request(
        db, request, user,
        action="project_role.assigned", resource_type="project", resource_id=project.id,
        before=previous, after={"user_id": target.id, **current},
    )
    _push_project_event(broadcaster, [target.id], project, "role_changed")
    return {"project_id": project.id, "user_id": target.id, **current}


@router.delete("/{project_id}/roles/{user_id}", response_model=MessageResponse)
async def remove_project_role(
    project_id: int,
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(RequirePermission(Permission.PROJECT_MANAGE_TEAM, "project_id")),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
):
    """Drop a user's explicit project role."""
    project = _get_project(db, user, project_id)
    deleted = db.query(ProjectRoleAssignment).filter(
        ProjectRoleAssignment.project_id == project.id,
        ProjectRoleAssignment.user_id == user_id,
    ).delete(synchronize_session=False)
    if not deleted:
        raise not_found("Project role not found")
    db.commit()

    audit_service.record_request(
        db, request, user,
        action="project_role.removed", resource_type="project", resource_id=project.id,
        before={"user_id": user_id},
    )
    _push_project_event(broadcaster, [user_id], project, "role_changed")
    return MessageResponse(message="Project role removed")
