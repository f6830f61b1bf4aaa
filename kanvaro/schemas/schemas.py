"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from kanvaro.permissions.catalog import SystemRole


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user: Optional[Dict[str, Any]] = None

class RefreshRequest(BaseModel):
    refresh_token: str

class MessageResponse(BaseModel):
    message: str


# ---- User ----
class UserOut(BaseModel):
    id: int
    organization_id: int
    email: str
    first_name: str
    last_name: str
    role: SystemRole
    custom_role_id: Optional[int] = None
    is_active: bool = True
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserRoleUpdate(BaseModel):
    """Set a system role, a custom role, or both. custom_role_id 0 clears it."""
    role: Optional[SystemRole] = None
    custom_role_id: Optional[int] = None


# ---- Custom roles ----
class CustomRoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    permissions: List[str] = Field(..., min_length=1)

class CustomRoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    permissions: Optional[List[str]] = None

class CustomRoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    permissions: List[str]
    is_active: bool
    user_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SystemRoleOut(BaseModel):
    id: str
    name: str
    permissions: List[str]
    is_system: bool = True


# ---- Projects ----
class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    client_id: Optional[int] = None
    allow_time_tracking: bool = True
    require_approval: bool = False

class ProjectOut(BaseModel):
    id: int
    organization_id: int
    name: str
    description: Optional[str] = None
    created_by: int
    client_id: Optional[int] = None
    allow_time_tracking: bool
    require_approval: bool
    is_archived: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProjectMemberAdd(BaseModel):
    user_id: int

class ProjectRoleAssign(BaseModel):
    """Either a system project role or a custom role id."""
    role: Optional[str] = None
    custom_role_id: Optional[int] = None


# ---- Time tracking ----
class TimerAction(str, Enum):
    pause = "pause"
    resume = "resume"
    stop = "stop"
    update = "update"

class TimerStart(BaseModel):
    project_id: int
    task_id: Optional[int] = None
    description: Optional[str] = ""
    category: Optional[str] = None
    tags: List[str] = []
    is_billable: bool = True
    hourly_rate: Optional[float] = None

class TimerUpdate(BaseModel):
    action: TimerAction
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None

class ActiveTimerOut(BaseModel):
    id: int
    user_id: int
    project_id: int
    task_id: Optional[int] = None
    description: str
    start_time: datetime
    paused_at: Optional[datetime] = None
    total_paused_duration: float
    category: Optional[str] = None
    tags: List[str] = []
    is_billable: bool
    hourly_rate: Optional[float] = None
    max_session_hours: Optional[int] = None
    current_duration: float = 0
    is_paused: bool = False

    class Config:
        from_attributes = True

class TimeEntryOut(BaseModel):
    id: int
    user_id: int
    project_id: int
    task_id: Optional[int] = None
    description: str
    start_time: datetime
    end_time: datetime
    duration: int
    is_billable: bool
    hourly_rate: Optional[float] = None
    status: str
    is_approved: bool

    class Config:
        from_attributes = True


# ---- Notifications ----
class NotificationCreate(BaseModel):
    type: str = "system"
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    send_email: bool = False
    send_push: bool = False

class NotificationAction(str, Enum):
    mark_all_read = "markAllRead"
    mark_as_read = "markAsRead"
    delete = "delete"

class NotificationActionRequest(BaseModel):
    action: NotificationAction
    notification_id: Optional[int] = None

class NotificationOut(BaseModel):
    id: int
    type: str
    title: str
    message: str
    data: Dict[str, Any] = {}
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class NotificationListOut(BaseModel):
    notifications: List[NotificationOut]
    total: int
    unread_count: int


# ---- Organization ----
class OrganizationOut(BaseModel):
    id: int
    name: str
    timezone: str
    notification_retention_days: int
    notification_auto_cleanup: bool
    allow_time_tracking: bool
    require_approval: bool
    require_description: bool
    max_session_hours: Optional[int] = None
    max_daily_hours: int
    max_weekly_hours: int
    allow_overtime: bool
    rounding_enabled: bool
    rounding_increment: int
    rounding_round_up: bool
    notify_on_timer_start: bool
    notify_on_timer_stop: bool
    notify_on_overtime: bool
    notify_on_approval_needed: bool
    notify_on_time_submitted: bool

    class Config:
        from_attributes = True

class OrganizationSettingsUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    timezone: Optional[str] = None
    notification_retention_days: Optional[int] = Field(None, ge=1, le=3650)
    notification_auto_cleanup: Optional[bool] = None
    allow_time_tracking: Optional[bool] = None
    require_approval: Optional[bool] = None
    require_description: Optional[bool] = None
    default_hourly_rate: Optional[float] = Field(None, ge=0)
    max_session_hours: Optional[int] = Field(None, ge=1, le=24)
    max_daily_hours: Optional[int] = Field(None, ge=1, le=24)
    max_weekly_hours: Optional[int] = Field(None, ge=1, le=168)
    allow_overtime: Optional[bool] = None
    rounding_enabled: Optional[bool] = None
    rounding_increment: Optional[int] = Field(None, ge=1, le=60)
    rounding_round_up: Optional[bool] = None
    notify_on_timer_start: Optional[bool] = None
    notify_on_timer_stop: Optional[bool] = None
    notify_on_overtime: Optional[bool] = None
    notify_on_approval_needed: Optional[bool] = None
    notify_on_time_submitted: Optional[bool] = None


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    actor_email: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    before: Optional[Any] = None
    after: Optional[Any] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
