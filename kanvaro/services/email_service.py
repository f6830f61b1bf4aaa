"""Outgoing email over SMTP."""

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from kanvaro.core.config import settings
from kanvaro.models.smtp_config import SmtpConfig

logger = logging.getLogger(__name__)


@dataclass
class SmtpSettings:
    host: str
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    from_email: str = "no-reply@kanvaro.local"
    from_name: str = "Kanvaro"


class EmailService:
    """Sends HTML mail using the organization's SMTP row or env settings."""

    @staticmethod
    def resolve_config(db: Optional[Session], organization_id: Optional[int] = None) -> Optional[SmtpSettings]:
        if db is not None:
            query = db.query(SmtpConfig).filter(SmtpConfig.is_active == True)  # noqa: E712
            if organization_id is not None:
                query = query.filter(
                    (SmtpConfig.organization_id == organization_id)
                    | (SmtpConfig.organization_id.is_(None))
                )
            # organization row first, shared default last
            row = query.order_by(SmtpConfig.organization_id.is_(None)).first()
            if row:
                return SmtpSettings(
                    host=row.host,
                    port=row.port,
                    username=row.username,
                    password=row.password,
                    use_tls=row.use_tls,
                    from_email=row.from_email,
                    from_name=row.from_name or settings.SMTP_FROM_NAME,
                )
        if not settings.SMTP_HOST:
            return None
        return SmtpSettings(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            from_email=settings.SMTP_FROM_EMAIL,
            from_name=settings.SMTP_FROM_NAME,
        )

    @staticmethod
    def send_email(
        to: Union[str, List[str]],
        subject: str,
        html: str,
        text: Optional[str] = None,
        db: Optional[Session] = None,
        organization_id: Optional[int] = None,
    ) -> bool:
        """Send an email. Returns False, after logging, when delivery fails."""
        config = EmailService.resolve_config(db, organization_id)
        if config is None:
            logger.warning("Email not sent, SMTP is not configured: %s", subject)
            return False

        recipients = [to] if isinstance(to, str) else list(to)
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{config.from_name} <{config.from_email}>"
        msg["To"] = ", ".join(recipients)
        if text:
            msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        try:
            with smtplib.SMTP(config.host, config.port, timeout=30) as server:
                if config.use_tls:
                    server.starttls()
                if config.username and config.password:
                    server.login(config.username, config.password)
                server.sendmail(config.from_email, recipients, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email to %s failed: %s", recipients, e)
            return False

        logger.info("Email sent to %s: %s", recipients, subject)
        return True


email_service = EmailService()
