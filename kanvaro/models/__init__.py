"""Models package: import all models so create_all can discover them."""

from kanvaro.models.organization import Organization
from kanvaro.models.custom_role import CustomRole
from kanvaro.models.user import User, RefreshToken
from kanvaro.models.project import Project, ProjectMember, ProjectRoleAssignment
from kanvaro.models.time_tracking import TimeTrackingSettings, ActiveTimer, TimeEntry
from kanvaro.models.notification import Notification
from kanvaro.models.audit_log import AuditLog
from kanvaro.models.smtp_config import SmtpConfig

__all__ = [
    "Organization", "CustomRole", "User",
    "Project", "ProjectMember", "ProjectRoleAssignment",
    "TimeTrackingSettings", "ActiveTimer", "TimeEntry",
    "Notification", "AuditLog", "SmtpConfig", "RefreshToken",
]
