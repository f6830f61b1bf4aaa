"""Organization-defined role with an explicit permission list."""

import json

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, func
from kanvaro.db.base import Base


class CustomRole(Base):
    """Named permission bundle that replaces a user's system-role table."""
    __tablename__ = "custom_roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    permissions_json = Column(Text, nullable=False, default="[]")  # JSON list of permission tags
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", use_alter=True), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def permissions(self) -> list:
        return json.loads(self.permissions_json or "[]")

    @permissions.setter
    def permissions(self, values) -> None:
        self.permissions_json = json.dumps([str(getattr(v, "value", v)) for v in values])
