"""Time-tracking settings, active timers and time entries."""

import json

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Float, ForeignKey, UniqueConstraint, func
)
from kanvaro.db.base import Base


class TimeTrackingSettings(Base):
    """Per-organization or per-project override of time-tracking rules."""
    __tablename__ = "time_tracking_settings"
    __table_args__ = (UniqueConstraint("organization_id", "project_id", name="uq_tt_settings_scope"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True)
    allow_time_tracking = Column(Boolean, default=True, nullable=False)
    require_approval = Column(Boolean, default=False, nullable=False)
    require_description = Column(Boolean, default=False, nullable=False)
    allow_billable_time = Column(Boolean, default=True, nullable=False)
    default_hourly_rate = Column(Float, nullable=True)
    max_session_hours = Column(Integer, default=8, nullable=True)
    max_daily_hours = Column(Integer, default=8, nullable=False)
    max_weekly_hours = Column(Integer, default=40, nullable=False)
    allow_overtime = Column(Boolean, default=False, nullable=False)
    rounding_enabled = Column(Boolean, default=False, nullable=False)
    rounding_increment = Column(Integer, default=15, nullable=False)
    rounding_round_up = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class ActiveTimer(Base):
    """Running or paused timer; at most one per user per organization."""
    __tablename__ = "active_timers"
    __table_args__ = (UniqueConstraint("user_id", "organization_id", name="uq_active_timer_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(Integer, nullable=True)
    description = Column(String(1000), nullable=False, default="")
    start_time = Column(DateTime, nullable=False)
    paused_at = Column(DateTime, nullable=True)
    total_paused_duration = Column(Float, default=0, nullable=False)  # minutes
    category = Column(String(100), nullable=True)
    tags_json = Column(Text, nullable=True)
    is_billable = Column(Boolean, default=True, nullable=False)
    hourly_rate = Column(Float, nullable=True)
    max_session_hours = Column(Integer, nullable=True)
    last_activity = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    @property
    def tags(self) -> list:
        return json.loads(self.tags_json) if self.tags_json else []

    @tags.setter
    def tags(self, values) -> None:
        self.tags_json = json.dumps(list(values or []))


class TimeEntry(Base):
    """Recorded block of work, created when a timer stops."""
    __tablename__ = "time_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, nullable=True)
    description = Column(String(1000), nullable=False, default="")
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    is_billable = Column(Boolean, default=True, nullable=False)
    hourly_rate = Column(Float, nullable=True)
    status = Column(String(20), default="completed", nullable=False)  # pending | completed
    category = Column(String(100), nullable=True)
    tags_json = Column(Text, nullable=True)
    is_approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    @property
    def tags(self) -> list:
        return json.loads(self.tags_json) if self.tags_json else []
