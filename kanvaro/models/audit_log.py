"""Audit trail rows for role, permission, settings and timer changes."""

import json

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, func
from kanvaro.db.base import Base


class AuditLog(Base):
    """One recorded change inside an organization. Rows are insert-only."""
    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_org_created", "organization_id", "created_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)  # None for cron/system
    actor_email = Column(String(255), nullable=True)
    action = Column(String(100), nullable=False, index=True)  # "<resource>.<verb>", e.g. "timer.force_stopped"
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(100), nullable=True)
    before_json = Column(Text, nullable=True)
    after_json = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    @property
    def before(self):
        return json.loads(self.before_json) if self.before_json else None

    @property
    def after(self):
        return json.loads(self.after_json) if self.after_json else None
