"""Tests for /api/cron and /api/organization."""

from datetime import timedelta

import pytest

from kanvaro.core.config import settings
from kanvaro.models.notification import Notification
from kanvaro.models.time_tracking import ActiveTimer, TimeEntry
from kanvaro.schemas.schemas import NotificationCreate
from kanvaro.services.notification_service import notification_service
from kanvaro.services.timer_math import utcnow


@pytest.fixture
def expired_timer(db, org, admin, member, make_project):
    project = make_project(admin)
    timer = ActiveTimer(
        user_id=member.id,
        organization_id=org.id,
        project_id=project.id,
        description="Forgot to stop",
        start_time=utcnow() - timedelta(hours=10),
        total_paused_duration=0,
        max_session_hours=8,
    )
    db.add(timer)
    db.commit()
    return timer


class TestCronEndpoints:
    """Tests for the scheduler-facing cleanup endpoints."""

    def test_timer_cleanup(self, client, db, expired_timer) -> None:
        response = client.get("/api/cron/timer-cleanup")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["summary"] == {"total_checked": 1, "stopped": 1, "skipped": 0, "errors": 0}
        assert body["results"][0]["duration"] == 480
        assert db.query(ActiveTimer).count() == 0
        assert db.query(TimeEntry).one().duration == 480

    def test_secret_required_when_configured(self, client, monkeypatch, expired_timer) -> None:
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

        assert client.get("/api/cron/timer-cleanup").status_code == 401
        wrong = client.get("/api/cron/timer-cleanup", headers={"Authorization": "Bearer nope"})
        assert wrong.status_code == 401
        ok = client.get("/api/cron/timer-cleanup", headers={"Authorization": "Bearer s3cret"})
        assert ok.status_code == 200

    def test_notification_cleanup(self, client, db, member) -> None:
        old = notification_service.create_notification(
            db, member.id, member.organization_id, NotificationCreate(title="Old", message="x")
        )
        old.created_at = utcnow() - timedelta(days=60)
        db.commit()

        response = client.get("/api/cron/notification-cleanup")

        assert response.status_code == 200
        assert response.json()["details"][0]["deleted_count"] == 1
        assert db.query(Notification).count() == 0


class TestOrganizationEndpoints:
    """Tests for organization settings."""

    def test_get_organization(self, client, member, headers_for) -> None:
        body = client.get("/api/organization", headers=headers_for(member)).json()
        assert body["name"] == "Acme"
        assert body["notify_on_timer_start"] is False
        assert body["notify_on_timer_stop"] is True
        assert body["max_session_hours"] == 8

    def test_update_settings(self, client, db, admin, headers_for) -> None:
        response = client.put(
            "/api/organization/settings",
            json={"max_session_hours": 4, "notification_retention_days": 7, "rounding_enabled": True},
            headers=headers_for(admin),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["max_session_hours"] == 4
        assert body["notification_retention_days"] == 7
        assert body["rounding_enabled"] is True

    def test_update_validates_ranges(self, client, admin, headers_for) -> None:
        response = client.put(
            "/api/organization/settings",
            json={"max_session_hours": 48},
            headers=headers_for(admin),
        )
        assert response.status_code == 422

    def test_update_requires_permission(self, client, member, headers_for) -> None:
        response = client.put(
            "/api/organization/settings", json={"max_session_hours": 4}, headers=headers_for(member)
        )
        assert response.status_code == 403

    def test_health_reports_connections(self, client) -> None:
        body = client.get("/api/health").json()
        assert body == {"status": "ok", "sse_connections": 0}
