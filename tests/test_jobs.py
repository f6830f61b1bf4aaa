"""Tests for the kanvaroctl CLI, Celery tasks and email delivery."""

import smtplib
from datetime import timedelta

import pytest
from sqlalchemy.orm import sessionmaker
from typer.testing import CliRunner

import kanvaro.db.session as db_session
from kanvaro.cli import app as cli_app
from kanvaro.models.organization import Organization
from kanvaro.models.smtp_config import SmtpConfig
from kanvaro.models.time_tracking import ActiveTimer, TimeEntry
from kanvaro.models.user import User
from kanvaro.permissions.catalog import SystemRole
from kanvaro.services.email_service import email_service
from kanvaro.services.timer_math import utcnow
from kanvaro.tasks.celery_app import cleanup_expired_timers

runner = CliRunner()


@pytest.fixture
def bound_sessions(engine, monkeypatch):
    """Point SessionLocal at the test engine."""
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    monkeypatch.setattr(db_session, "SessionLocal", factory)
    return factory


@pytest.fixture
def expired_timer(db, org, admin, make_project):
    project = make_project(admin)
    db.add(ActiveTimer(
        user_id=admin.id,
        organization_id=org.id,
        project_id=project.id,
        description="",
        start_time=utcnow() - timedelta(hours=9),
        total_paused_duration=0,
    ))
    db.commit()


class TestCli:
    """Tests for kanvaroctl commands."""

    def test_seed_is_idempotent(self, db, bound_sessions) -> None:
        first = runner.invoke(cli_app, ["db", "seed"])
        second = runner.invoke(cli_app, ["db", "seed"])

        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        assert db.query(Organization).count() == 1
        admins = db.query(User).filter(User.role == SystemRole.super_admin).all()
        assert len(admins) == 1

    def test_cleanup_timers(self, db, bound_sessions, expired_timer) -> None:
        result = runner.invoke(cli_app, ["cleanup", "timers"])

        assert result.exit_code == 0, result.output
        assert "stopped 1" in result.output
        assert db.query(TimeEntry).count() == 1

    def test_cleanup_notifications(self, db, org, bound_sessions) -> None:
        result = runner.invoke(cli_app, ["cleanup", "notifications"])
        assert result.exit_code == 0, result.output
        assert "Deleted 0 notifications" in result.output


class TestCeleryTasks:
    """Tests for the periodic cleanup tasks run eagerly."""

    def test_cleanup_expired_timers_task(self, db, bound_sessions, expired_timer) -> None:
        result = cleanup_expired_timers.apply().get()

        assert result["stopped"] == 1
        assert "results" not in result
        assert db.query(ActiveTimer).count() == 0


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def sendmail(self, sender, recipients, message):
        FakeSMTP.sent.append((self.host, sender, recipients))


class TestEmailService:
    """Tests for SMTP delivery."""

    def test_not_configured(self, db) -> None:
        assert email_service.send_email("a@acme.test", "Hi", "<p>Hi</p>", db=db) is False

    def test_sends_with_organization_config(self, db, org, monkeypatch) -> None:
        FakeSMTP.sent = []
        monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
        db.add(SmtpConfig(
            organization_id=org.id,
            host="smtp.acme.test",
            port=2525,
            from_email="ops@acme.test",
            is_active=True,
        ))
        db.commit()

        sent = email_service.send_email(
            ["a@acme.test"], "Hi", "<p>Hi</p>", text="Hi", db=db, organization_id=org.id
        )

        assert sent is True
        assert FakeSMTP.sent == [("smtp.acme.test", "ops@acme.test", ["a@acme.test"])]

    def test_delivery_failure_returns_false(self, db, org, monkeypatch) -> None:
        class RefusingSMTP(FakeSMTP):
            def sendmail(self, sender, recipients, message):
                raise smtplib.SMTPRecipientsRefused({})

        monkeypatch.setattr(smtplib, "SMTP", RefusingSMTP)
        db.add(SmtpConfig(
            organization_id=org.id, host="smtp.acme.test", port=25,
            from_email="ops@acme.test", is_active=True,
        ))
        db.commit()

        assert email_service.send_email("a@acme.test", "Hi", "<p>Hi</p>", db=db) is False

    def test_organization_config_beats_shared_default(self, db, org) -> None:
        db.add(SmtpConfig(organization_id=None, host="smtp.shared.test", from_email="a@shared.test"))
        db.add(SmtpConfig(organization_id=org.id, host="smtp.acme.test", from_email="ops@acme.test"))
        db.commit()

        assert email_service.resolve_config(db, org.id).host == "smtp.acme.test"

    def test_shared_default_when_organization_has_none(self, db, org) -> None:
        db.add(SmtpConfig(organization_id=None, host="smtp.shared.test", from_email="a@shared.test"))
        db.commit()

        assert email_service.resolve_config(db, org.id).host == "smtp.shared.test"
