"""Permission catalog: capability tags, system roles, project roles.

Every role table is keyed by a closed enum, so an unknown role name fails
loudly when it is coerced (``SystemRole("typo")`` raises ``ValueError``)
instead of resolving to an empty permission set.
"""

import enum
from typing import Dict, FrozenSet, Iterable, List


class Permission(str, enum.Enum):
    # System
    SYSTEM_ADMIN = "system:admin"
    SYSTEM_MONITOR = "system:monitor"
    SYSTEM_MAINTENANCE = "system:maintenance"

    # Users
    USER_CREATE = "user:create"
    USER_READ = "user:read"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"
    USER_INVITE = "user:invite"
    USER_ACTIVATE = "user:activate"
    USER_DEACTIVATE = "user:deactivate"
    USER_MANAGE_ROLES = "user:manage_roles"

    # Organization
    ORGANIZATION_READ = "organization:read"
    ORGANIZATION_UPDATE = "organization:update"
    ORGANIZATION_DELETE = "organization:delete"
    ORGANIZATION_MANAGE_SETTINGS = "organization:manage_settings"
    ORGANIZATION_MANAGE_BILLING = "organization:manage_billing"

    # Projects
    PROJECT_CREATE = "project:create"
    PROJECT_READ = "project:read"
    PROJECT_UPDATE = "project:update"
    PROJECT_DELETE = "project:delete"
    PROJECT_MANAGE_TEAM = "project:manage_team"
    PROJECT_MANAGE_BUDGET = "project:manage_budget"
    PROJECT_ARCHIVE = "project:archive"
    PROJECT_RESTORE = "project:restore"
    PROJECT_VIEW_ALL = "project:view_all"

    # Tasks
    TASK_CREATE = "task:create"
    TASK_READ = "task:read"
    TASK_UPDATE = "task:update"
    TASK_DELETE = "task:delete"
    TASK_ASSIGN = "task:assign"
    TASK_CHANGE_STATUS = "task:change_status"
    TASK_MANAGE_COMMENTS = "task:manage_comments"
    TASK_MANAGE_ATTACHMENTS = "task:manage_attachments"
    TASK_VIEW_ALL = "task:view_all"
    TASK_EDIT_ALL = "task:edit_all"
    TASK_DELETE_ALL = "task:delete_all"

    # Team
    TEAM_READ = "team:read"
    TEAM_INVITE = "team:invite"
    TEAM_EDIT = "team:edit"
    TEAM_DELETE = "team:delete"
    TEAM_REMOVE = "team:remove"
    TEAM_MANAGE_PERMISSIONS = "team:manage_permissions"
    TEAM_VIEW_ACTIVITY = "team:view_activity"
    TEAM_MEMBER_WIDGET_VIEW = "team_member_widget:view"

    # Time tracking
    TIME_TRACKING_CREATE = "time_tracking:create"
    TIME_TRACKING_READ = "time_tracking:read"
    TIME_TRACKING_UPDATE = "time_tracking:update"
    TIME_TRACKING_DELETE = "time_tracking:delete"
    TIME_TRACKING_APPROVE = "time_tracking:approve"
    TIME_TRACKING_EXPORT = "time_tracking:export"
    TIME_TRACKING_VIEW_ALL = "time_tracking:view_all"
    TIME_TRACKING_VIEW_ASSIGNED = "time_tracking:view_assigned"
    TIME_TRACKING_EMPLOYEE_FILTER_READ = "time_tracking:employee_filter:read"
    TIME_TRACKING_VIEW_ALL_TIMER = "time_tracking:view_all_timer"
    TIME_TRACKING_BULK_UPLOAD_ALL = "time_tracking:bulk_upload_all"
    TIME_LOG_REPORT_ACCESS = "time_tracking:report_access"

    # Financial
    FINANCIAL_READ = "financial:read"
    FINANCIAL_MANAGE_BUDGET = "financial:manage_budget"
    BUDGET_HANDLING = "financial:budget_handling"
    FINANCIAL_CREATE_EXPENSE = "financial:create_expense"
    FINANCIAL_APPROVE_EXPENSE = "financial:approve_expense"
    FINANCIAL_CREATE_INVOICE = "financial:create_invoice"
    FINANCIAL_SEND_INVOICE = "financial:send_invoice"
    FINANCIAL_MANAGE_PAYMENTS = "financial:manage_payments"

    # Reporting
    REPORTING_VIEW = "reporting:view"
    REPORTING_CREATE = "reporting:create"
    REPORTING_EXPORT = "reporting:export"
    REPORTING_SHARE = "reporting:share"

    # Settings
    SETTINGS_VIEW = "settings:view"
    SETTINGS_UPDATE = "settings:update"
    SETTINGS_MANAGE_EMAIL = "settings:manage_email"
    SETTINGS_MANAGE_DATABASE = "settings:manage_database"
    SETTINGS_MANAGE_SECURITY = "settings:manage_security"

    # Epics
    EPIC_CREATE = "epic:create"
    EPIC_VIEW = "epic:view"
    EPIC_READ = "epic:read"
    EPIC_UPDATE = "epic:update"
    EPIC_EDIT = "epic:edit"
    EPIC_DELETE = "epic:delete"
    EPIC_REMOVE = "epic:remove"
    EPIC_VIEW_ALL = "epic:view_all"

    # Sprints
    SPRINT_CREATE = "sprint:create"
    SPRINT_VIEW = "sprint:view"
    SPRINT_READ = "sprint:read"
    SPRINT_UPDATE = "sprint:update"
    SPRINT_EDIT = "sprint:edit"
    SPRINT_DELETE = "sprint:delete"
    SPRINT_MANAGE = "sprint:manage"
    SPRINT_VIEW_ALL = "sprint:view_all"
    SPRINT_START = "sprint:start"
    SPRINT_COMPLETE = "sprint:complete"
    SPRINT_EVENT_VIEW_ALL = "sprint_event:view_all"
    SPRINT_EVENT_VIEW = "sprint_event:view"

    # Stories
    STORY_CREATE = "story:create"
    STORY_READ = "story:read"
    STORY_UPDATE = "story:update"
    STORY_DELETE = "story:delete"
    STORY_VIEW_ALL = "story:view_all"
    STORY_MANAGE_ALL = "story:manage_all"

    # Calendar, kanban, backlog
    CALENDAR_READ = "calendar:read"
    CALENDAR_CREATE = "calendar:create"
    CALENDAR_UPDATE = "calendar:update"
    CALENDAR_DELETE = "calendar:delete"
    KANBAN_READ = "kanban:read"
    KANBAN_MANAGE = "kanban:manage"
    BACKLOG_READ = "backlog:read"
    BACKLOG_MANAGE = "backlog:manage"

    # Test management
    TEST_SUITE_CREATE = "test_suite:create"
    TEST_SUITE_READ = "test_suite:read"
    TEST_SUITE_UPDATE = "test_suite:update"
    TEST_SUITE_DELETE = "test_suite:delete"
    TEST_CASE_CREATE = "test_case:create"
    TEST_CASE_READ = "test_case:read"
    TEST_CASE_UPDATE = "test_case:update"
    TEST_CASE_DELETE = "test_case:delete"
    TEST_PLAN_CREATE = "test_plan:create"
    TEST_PLAN_READ = "test_plan:read"
    TEST_PLAN_UPDATE = "test_plan:update"
    TEST_PLAN_DELETE = "test_plan:delete"
    TEST_PLAN_MANAGE = "test_plan:manage"
    TEST_EXECUTION_CREATE = "test_execution:create"
    TEST_EXECUTION_READ = "test_execution:read"
    TEST_EXECUTION_UPDATE = "test_execution:update"
    TEST_REPORT_VIEW = "test_report:view"
    TEST_REPORT_EXPORT = "test_report:export"
    TEST_MANAGE = "test:manage"

    # Documentation
    DOCUMENTATION_VIEW = "documentation:view"
    DOCUMENTATION_SEARCH = "documentation:search"
    DOCUMENTATION_CREATE = "documentation:create"
    DOCUMENTATION_UPDATE = "documentation:update"
    DOCUMENTATION_DELETE = "documentation:delete"
    DOCUMENTATION_MANAGE_PERMISSIONS = "documentation:manage_permissions"


class SystemRole(str, enum.Enum):
    super_admin = "super_admin"
    admin = "admin"
    human_resource = "human_resource"
    project_manager = "project_manager"
    team_member = "team_member"
    client = "client"
    viewer = "viewer"
    qa_engineer = "qa_engineer"
    tester = "tester"


class ProjectRole(str, enum.Enum):
    project_manager = "project_manager"
    project_member = "project_member"
    project_viewer = "project_viewer"
    project_client = "project_client"
    project_qa_lead = "project_qa_lead"
    project_tester = "project_tester"


class PermissionScope(str, enum.Enum):
    GLOBAL = "global"  # organization-wide
    PROJECT = "project"  # needs a project context
    OWN = "own"  # caller's own resources


P = Permission


def _tags(*groups: Iterable[Permission]) -> FrozenSet[Permission]:
    merged = set()
    for group in groups:
        merged.update(group)
    return frozenset(merged)


_READ_ONLY_NAVIGATION = (
    P.USER_READ, P.ORGANIZATION_READ, P.PROJECT_READ, P.TASK_READ, P.TEAM_READ,
    P.TIME_TRACKING_READ, P.FINANCIAL_READ, P.REPORTING_VIEW,
    P.EPIC_VIEW, P.EPIC_READ, P.SPRINT_VIEW, P.SPRINT_READ, P.STORY_READ,
    P.CALENDAR_READ, P.KANBAN_READ, P.BACKLOG_READ,
    P.DOCUMENTATION_VIEW, P.DOCUMENTATION_SEARCH,
)

_TEST_MANAGEMENT_FULL = (
    P.TEST_SUITE_CREATE, P.TEST_SUITE_READ, P.TEST_SUITE_UPDATE, P.TEST_SUITE_DELETE,
    P.TEST_CASE_CREATE, P.TEST_CASE_READ, P.TEST_CASE_UPDATE, P.TEST_CASE_DELETE,
    P.TEST_PLAN_CREATE, P.TEST_PLAN_READ, P.TEST_PLAN_UPDATE, P.TEST_PLAN_DELETE,
    P.TEST_PLAN_MANAGE, P.TEST_EXECUTION_CREATE, P.TEST_EXECUTION_READ,
    P.TEST_EXECUTION_UPDATE, P.TEST_REPORT_VIEW, P.TEST_REPORT_EXPORT,
)

_TEST_EXECUTION_ONLY = (
    P.TEST_SUITE_READ, P.TEST_CASE_READ, P.TEST_PLAN_READ,
    P.TEST_EXECUTION_CREATE, P.TEST_EXECUTION_READ, P.TEST_EXECUTION_UPDATE,
    P.TEST_REPORT_VIEW,
)

_USER_ADMIN = (
    P.USER_CREATE, P.USER_READ, P.USER_UPDATE, P.USER_DELETE, P.USER_INVITE,
    P.USER_ACTIVATE, P.USER_DEACTIVATE, P.USER_MANAGE_ROLES,
)

_ORG_ADMIN = (
    P.ORGANIZATION_READ, P.ORGANIZATION_UPDATE,
    P.ORGANIZATION_MANAGE_SETTINGS, P.ORGANIZATION_MANAGE_BILLING,
)

_PROJECT_ADMIN = (
    P.PROJECT_CREATE, P.PROJECT_READ, P.PROJECT_UPDATE, P.PROJECT_DELETE,
    P.PROJECT_MANAGE_TEAM, P.PROJECT_MANAGE_BUDGET, P.PROJECT_ARCHIVE,
    P.PROJECT_RESTORE, P.PROJECT_VIEW_ALL,
)

_TASK_WORK = (
    P.TASK_CREATE, P.TASK_READ, P.TASK_UPDATE, P.TASK_DELETE, P.TASK_ASSIGN,
    P.TASK_CHANGE_STATUS, P.TASK_MANAGE_COMMENTS, P.TASK_MANAGE_ATTACHMENTS,
)

_TASK_ALL = (P.TASK_VIEW_ALL, P.TASK_EDIT_ALL, P.TASK_DELETE_ALL)

_PLANNING_FULL = (
    P.EPIC_CREATE, P.EPIC_VIEW, P.EPIC_READ, P.EPIC_EDIT, P.EPIC_UPDATE,
    P.EPIC_DELETE, P.EPIC_REMOVE, P.EPIC_VIEW_ALL,
    P.SPRINT_CREATE, P.SPRINT_VIEW, P.SPRINT_READ, P.SPRINT_UPDATE, P.SPRINT_EDIT,
    P.SPRINT_DELETE, P.SPRINT_MANAGE, P.SPRINT_VIEW_ALL, P.SPRINT_START,
    P.SPRINT_COMPLETE, P.SPRINT_EVENT_VIEW_ALL, P.SPRINT_EVENT_VIEW,
    P.STORY_CREATE, P.STORY_READ, P.STORY_UPDATE, P.STORY_DELETE,
    P.STORY_VIEW_ALL, P.STORY_MANAGE_ALL,
    P.CALENDAR_READ, P.CALENDAR_CREATE, P.CALENDAR_UPDATE, P.CALENDAR_DELETE,
    P.KANBAN_READ, P.KANBAN_MANAGE, P.BACKLOG_READ, P.BACKLOG_MANAGE,
)

_SETTINGS_ADMIN = (
    P.SETTINGS_VIEW, P.SETTINGS_UPDATE, P.SETTINGS_MANAGE_EMAIL,
    P.SETTINGS_MANAGE_DATABASE, P.SETTINGS_MANAGE_SECURITY,
)

_REPORTING_FULL = (
    P.REPORTING_VIEW, P.REPORTING_CREATE, P.REPORTING_EXPORT, P.REPORTING_SHARE,
    P.TIME_LOG_REPORT_ACCESS,
)

_DOCS_EDIT = (
    P.DOCUMENTATION_VIEW, P.DOCUMENTATION_SEARCH, P.DOCUMENTATION_CREATE,
    P.DOCUMENTATION_UPDATE, P.DOCUMENTATION_DELETE,
)


ROLE_PERMISSIONS: Dict[SystemRole, FrozenSet[Permission]] = {
    SystemRole.super_admin: frozenset(Permission),
    SystemRole.admin: _tags(
        _USER_ADMIN, _ORG_ADMIN, _PROJECT_ADMIN, _TASK_WORK, _TASK_ALL,
        (P.TEAM_READ, P.TEAM_INVITE, P.TEAM_EDIT, P.TEAM_REMOVE,
         P.TEAM_MANAGE_PERMISSIONS, P.TEAM_VIEW_ACTIVITY, P.TEAM_MEMBER_WIDGET_VIEW),
        (P.TIME_TRACKING_CREATE, P.TIME_TRACKING_READ, P.TIME_TRACKING_DELETE,
         P.TIME_TRACKING_APPROVE, P.TIME_TRACKING_EXPORT, P.TIME_TRACKING_VIEW_ALL,
         P.TIME_TRACKING_EMPLOYEE_FILTER_READ, P.TIME_TRACKING_VIEW_ALL_TIMER),
        (P.FINANCIAL_READ, P.FINANCIAL_MANAGE_BUDGET, P.BUDGET_HANDLING,
         P.FINANCIAL_CREATE_EXPENSE, P.FINANCIAL_APPROVE_EXPENSE,
         P.FINANCIAL_CREATE_INVOICE, P.FINANCIAL_SEND_INVOICE,
         P.FINANCIAL_MANAGE_PAYMENTS),
        (P.REPORTING_CREATE, P.REPORTING_EXPORT, P.REPORTING_SHARE,
         P.TIME_LOG_REPORT_ACCESS),
        _SETTINGS_ADMIN,
        [p for p in _PLANNING_FULL if p is not P.STORY_MANAGE_ALL],
        _TEST_MANAGEMENT_FULL, (P.TEST_MANAGE,),
        _DOCS_EDIT, (P.DOCUMENTATION_MANAGE_PERMISSIONS,),
    ),
    SystemRole.human_resource: _tags(
        _USER_ADMIN, _ORG_ADMIN, _PROJECT_ADMIN, _TASK_WORK,
        (P.TEAM_READ, P.TEAM_INVITE, P.TEAM_DELETE, P.TEAM_REMOVE,
         P.TEAM_MANAGE_PERMISSIONS, P.TEAM_VIEW_ACTIVITY, P.TEAM_MEMBER_WIDGET_VIEW),
        (P.TIME_TRACKING_CREATE, P.TIME_TRACKING_READ, P.TIME_TRACKING_UPDATE,
         P.TIME_TRACKING_DELETE, P.TIME_TRACKING_APPROVE, P.TIME_TRACKING_EXPORT,
         P.TIME_TRACKING_VIEW_ASSIGNED, P.TIME_TRACKING_VIEW_ALL,
         P.TIME_TRACKING_EMPLOYEE_FILTER_READ, P.TIME_TRACKING_VIEW_ALL_TIMER,
         P.TIME_TRACKING_BULK_UPLOAD_ALL),
        (P.FINANCIAL_READ, P.FINANCIAL_MANAGE_BUDGET, P.BUDGET_HANDLING,
         P.FINANCIAL_CREATE_EXPENSE, P.FINANCIAL_APPROVE_EXPENSE,
         P.FINANCIAL_CREATE_INVOICE, P.FINANCIAL_SEND_INVOICE),
        _REPORTING_FULL, _SETTINGS_ADMIN, _PLANNING_FULL,
        _TEST_MANAGEMENT_FULL, _DOCS_EDIT,
    ),
    SystemRole.project_manager: _tags(
        _USER_ADMIN, _ORG_ADMIN, _PROJECT_ADMIN, _TASK_WORK, _TASK_ALL,
        (P.TEAM_READ, P.TEAM_INVITE, P.TEAM_DELETE, P.TEAM_REMOVE,
         P.TEAM_MANAGE_PERMISSIONS, P.TEAM_VIEW_ACTIVITY, P.TEAM_MEMBER_WIDGET_VIEW),
        (P.TIME_TRACKING_CREATE, P.TIME_TRACKING_READ, P.TIME_TRACKING_DELETE,
         P.TIME_TRACKING_APPROVE, P.TIME_TRACKING_EXPORT, P.TIME_TRACKING_VIEW_ALL,
         P.TIME_TRACKING_EMPLOYEE_FILTER_READ, P.TIME_TRACKING_VIEW_ALL_TIMER,
         P.TIME_TRACKING_BULK_UPLOAD_ALL),
        (P.FINANCIAL_READ, P.FINANCIAL_MANAGE_BUDGET, P.FINANCIAL_CREATE_EXPENSE,
         P.FINANCIAL_APPROVE_EXPENSE, P.FINANCIAL_CREATE_INVOICE,
         P.FINANCIAL_SEND_INVOICE, P.FINANCIAL_MANAGE_PAYMENTS),
        _REPORTING_FULL,
        [p for p in _SETTINGS_ADMIN if p is not P.SETTINGS_VIEW],
        _PLANNING_FULL, _TEST_MANAGEMENT_FULL, (P.TEST_MANAGE,), _DOCS_EDIT,
    ),
    SystemRole.team_member: _tags(
        (P.USER_READ, P.ORGANIZATION_READ, P.PROJECT_READ,
         P.TASK_READ, P.TASK_UPDATE, P.TASK_CHANGE_STATUS, P.TASK_MANAGE_COMMENTS,
         P.TEAM_READ,
         P.TIME_TRACKING_CREATE, P.TIME_TRACKING_READ, P.TIME_TRACKING_DELETE,
         P.FINANCIAL_READ, P.REPORTING_VIEW,
         P.EPIC_VIEW, P.EPIC_READ, P.SPRINT_VIEW, P.SPRINT_READ, P.STORY_READ,
         P.CALENDAR_READ, P.KANBAN_READ, P.BACKLOG_READ, P.SPRINT_EVENT_VIEW,
         P.DOCUMENTATION_VIEW, P.DOCUMENTATION_SEARCH),
    ),
    SystemRole.client: _tags(_READ_ONLY_NAVIGATION),
    SystemRole.viewer: _tags(_READ_ONLY_NAVIGATION),
    SystemRole.qa_engineer: _tags(
        [p for p in _READ_ONLY_NAVIGATION if p is not P.EPIC_VIEW],
        (P.TASK_CREATE, P.TASK_UPDATE, P.TASK_ASSIGN, P.TASK_CHANGE_STATUS,
         P.TASK_MANAGE_COMMENTS, P.TASK_MANAGE_ATTACHMENTS),
        _TEST_MANAGEMENT_FULL,
    ),
    SystemRole.tester: _tags(
        [p for p in _READ_ONLY_NAVIGATION if p is not P.EPIC_VIEW],
        (P.TASK_CREATE, P.TASK_UPDATE, P.TASK_MANAGE_COMMENTS,
         P.TASK_MANAGE_ATTACHMENTS),
        _TEST_EXECUTION_ONLY,
    ),
}


_PROJECT_READ_ONLY = (
    P.PROJECT_READ, P.TASK_READ, P.TEAM_READ, P.TIME_TRACKING_READ,
    P.FINANCIAL_READ, P.EPIC_READ, P.SPRINT_VIEW, P.SPRINT_READ, P.STORY_READ,
    P.CALENDAR_READ, P.KANBAN_READ, P.BACKLOG_READ,
)

PROJECT_ROLE_PERMISSIONS: Dict[ProjectRole, FrozenSet[Permission]] = {
    ProjectRole.project_manager: _tags(
        (P.PROJECT_READ, P.PROJECT_UPDATE, P.PROJECT_MANAGE_TEAM,
         P.PROJECT_MANAGE_BUDGET),
        _TASK_WORK,
        (P.TEAM_READ, P.TEAM_INVITE, P.TEAM_REMOVE,
         P.TIME_TRACKING_READ, P.TIME_TRACKING_APPROVE, P.TIME_TRACKING_EXPORT,
         P.TIME_TRACKING_EMPLOYEE_FILTER_READ,
         P.FINANCIAL_READ, P.FINANCIAL_MANAGE_BUDGET),
        (P.EPIC_CREATE, P.EPIC_VIEW, P.EPIC_READ, P.EPIC_EDIT, P.EPIC_UPDATE,
         P.EPIC_DELETE, P.EPIC_REMOVE,
         P.SPRINT_CREATE, P.SPRINT_VIEW, P.SPRINT_READ, P.SPRINT_EDIT,
         P.SPRINT_UPDATE, P.SPRINT_DELETE, P.SPRINT_MANAGE, P.SPRINT_EVENT_VIEW,
         P.SPRINT_START, P.SPRINT_COMPLETE,
         P.STORY_CREATE, P.STORY_READ, P.STORY_UPDATE, P.STORY_DELETE,
         P.CALENDAR_READ, P.CALENDAR_CREATE, P.CALENDAR_UPDATE, P.CALENDAR_DELETE,
         P.KANBAN_READ, P.KANBAN_MANAGE, P.BACKLOG_READ, P.BACKLOG_MANAGE),
    ),
    ProjectRole.project_member: _tags(
        _PROJECT_READ_ONLY,
        (P.TASK_CREATE, P.TASK_UPDATE, P.TASK_CHANGE_STATUS, P.TASK_MANAGE_COMMENTS,
         P.TIME_TRACKING_CREATE, P.TIME_TRACKING_DELETE,
         P.STORY_CREATE, P.STORY_UPDATE),
    ),
    ProjectRole.project_viewer: _tags(_PROJECT_READ_ONLY),
    ProjectRole.project_client: _tags(_PROJECT_READ_ONLY),
    ProjectRole.project_qa_lead: _tags(
        _PROJECT_READ_ONLY,
        (P.TASK_CREATE, P.TASK_UPDATE, P.TASK_ASSIGN, P.TASK_CHANGE_STATUS,
         P.TASK_MANAGE_COMMENTS, P.TASK_MANAGE_ATTACHMENTS),
        _TEST_MANAGEMENT_FULL,
    ),
    ProjectRole.project_tester: _tags(
        _PROJECT_READ_ONLY,
        (P.TASK_CREATE, P.TASK_UPDATE, P.TASK_MANAGE_COMMENTS,
         P.TASK_MANAGE_ATTACHMENTS),
        _TEST_EXECUTION_ONLY,
    ),
}


# Returned when a caller's permissions cannot be resolved
SAFE_DEFAULT_PERMISSIONS: FrozenSet[Permission] = frozenset({
    P.ORGANIZATION_READ,
    P.PROJECT_READ,
    P.TASK_READ,
    P.TEAM_READ,
    P.DOCUMENTATION_VIEW,
})

# Roles that see every project in their organization
ORGANIZATION_WIDE_ROLES: FrozenSet[SystemRole] = frozenset({
    SystemRole.super_admin,
    SystemRole.admin,
})

SYSTEM_ROLE_LABELS: Dict[SystemRole, str] = {
    SystemRole.super_admin: "Super Administrator",
    SystemRole.admin: "Administrator",
    SystemRole.human_resource: "Human Resource",
    SystemRole.project_manager: "Project Manager",
    SystemRole.team_member: "Team Member",
    SystemRole.client: "Client",
    SystemRole.viewer: "Viewer",
    SystemRole.qa_engineer: "QA Engineer",
    SystemRole.tester: "Tester",
}


_GLOBAL_SCOPE = frozenset({
    P.USER_CREATE, P.USER_DELETE, P.USER_INVITE, P.USER_MANAGE_ROLES,
    P.ORGANIZATION_UPDATE, P.ORGANIZATION_DELETE,
    P.ORGANIZATION_MANAGE_SETTINGS, P.ORGANIZATION_MANAGE_BILLING,
    P.PROJECT_CREATE, P.PROJECT_VIEW_ALL,
    P.TASK_VIEW_ALL, P.TASK_EDIT_ALL, P.TASK_DELETE_ALL,
    P.EPIC_VIEW, P.EPIC_READ, P.STORY_VIEW_ALL, P.SPRINT_VIEW, P.SPRINT_READ,
    P.SPRINT_VIEW_ALL, P.EPIC_VIEW_ALL, P.SPRINT_EVENT_VIEW_ALL,
    P.TEAM_INVITE, P.TEAM_EDIT, P.TEAM_REMOVE, P.TEAM_DELETE, P.TEAM_VIEW_ACTIVITY,
    P.TIME_TRACKING_VIEW_ALL, P.TIME_TRACKING_VIEW_ASSIGNED,
    P.TIME_TRACKING_VIEW_ALL_TIMER,
    P.FINANCIAL_READ, P.BUDGET_HANDLING,
    P.REPORTING_VIEW, P.REPORTING_CREATE, P.REPORTING_EXPORT, P.REPORTING_SHARE,
    P.SETTINGS_MANAGE_EMAIL, P.SETTINGS_MANAGE_DATABASE, P.SETTINGS_MANAGE_SECURITY,
})

_OWN_SCOPE = frozenset({
    P.USER_READ, P.USER_UPDATE,
    P.TIME_TRACKING_CREATE, P.TIME_TRACKING_UPDATE, P.TIME_TRACKING_DELETE,
})


def permission_scope(permission: Permission) -> PermissionScope:
    """Return where a permission applies: organization, project, or own data."""
    if permission in _GLOBAL_SCOPE:
        return PermissionScope.GLOBAL
    if permission in _OWN_SCOPE:
        return PermissionScope.OWN
    return PermissionScope.PROJECT


def parse_permissions(values: Iterable[str]) -> List[Permission]:
    """Coerce stored permission strings into catalog members.

    Raises:
        ValueError: If any value is not a known permission tag.
    """
    parsed = []
    for value in values:
        permission = Permission(value)
        if permission not in parsed:
            parsed.append(permission)
    return parsed


def sorted_tags(permissions: Iterable[Permission]) -> List[str]:
    """Stable, JSON-friendly list of tag strings."""
    return sorted(p.value for p in permissions)
