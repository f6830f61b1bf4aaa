"""Organization model with notification and time-tracking defaults."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, func
from sqlalchemy.orm import relationship
from kanvaro.db.base import Base


class Organization(Base):
    """Tenant that owns users, projects and settings."""
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    timezone = Column(String(64), default="UTC", nullable=False)

    # Notification retention
    notification_retention_days = Column(Integer, default=30, nullable=False)
    notification_auto_cleanup = Column(Boolean, default=True, nullable=False)

    # Time-tracking defaults, overridable per project via TimeTrackingSettings
    allow_time_tracking = Column(Boolean, default=True, nullable=False)
    allow_manual_time_submission = Column(Boolean, default=True, nullable=False)
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
    notify_on_timer_start = Column(Boolean, default=False, nullable=False)
    notify_on_timer_stop = Column(Boolean, default=True, nullable=False)
    notify_on_overtime = Column(Boolean, default=True, nullable=False)
    notify_on_approval_needed = Column(Boolean, default=True, nullable=False)
    notify_on_time_submitted = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    users = relationship("User", back_populates="organization", lazy="selectin")
