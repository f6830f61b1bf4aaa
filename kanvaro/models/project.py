"""Project, ProjectMember and ProjectRoleAssignment models."""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from kanvaro.db.base import Base


class Project(Base):
    """Project owned by an organization."""
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    allow_time_tracking = Column(Boolean, default=True, nullable=False)
    require_approval = Column(Boolean, default=False, nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    members = relationship(
        "ProjectMember", back_populates="project", lazy="selectin", cascade="all, delete-orphan"
    )


class ProjectMember(Base):
    """Team membership of a user on a project."""
    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_member"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    added_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    joined_at = Column(DateTime, server_default=func.now(), nullable=False)

    project = relationship("Project", back_populates="members")


class ProjectRoleAssignment(Base):
    """Explicit role a user holds on one project.

    Either ``role`` (a ProjectRole value) or ``custom_role_id`` is set.
    """
    __tablename__ = "project_role_assignments"
    __table_args__ = (UniqueConstraint("user_id", "project_id", name="uq_project_role_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=True)
    custom_role_id = Column(Integer, ForeignKey("custom_roles.id", ondelete="CASCADE"), nullable=True)
    assigned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_at = Column(DateTime, server_default=func.now(), nullable=False)

    custom_role = relationship("CustomRole", lazy="joined")
