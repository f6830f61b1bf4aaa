"""Per-organization outgoing mail server."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func

from kanvaro.db.base import Base


class SmtpConfig(Base):
    """Mail relay for one organization; a row with no organization is the shared default."""
    __tablename__ = "smtp_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, unique=True)
    host = Column(String(255), nullable=False)
    port = Column(Integer, default=587, nullable=False)
    username = Column(String(255))
    password = Column(String(500))  # relay credential, never returned by the API
    use_tls = Column(Boolean, default=True, nullable=False)
    from_email = Column(String(255), nullable=False)
    from_name = Column(String(255))
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
