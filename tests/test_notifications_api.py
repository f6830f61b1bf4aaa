"""Tests for the notifications endpoints and service."""

from datetime import timedelta

from kanvaro.models.notification import Notification
from kanvaro.schemas.schemas import NotificationCreate
from kanvaro.services.notification_broadcaster import NotificationBroadcaster
from kanvaro.core.config import settings
from kanvaro.services.notification_service import email_body, notification_service
from kanvaro.services.timer_math import utcnow


def _notify(db, user, title="Hello", **kwargs):
    return notification_service.create_notification(
        db, user.id, user.organization_id,
        NotificationCreate(title=title, message=f"{title} message", **kwargs),
    )


class TestNotificationService:
    """Tests for NotificationService."""

    def test_create_pushes_to_live_stream(self, db, member) -> None:
        broadcaster = NotificationBroadcaster()
        frames = []

        class Stream:
            def write(self, frame):
                frames.append(frame)

        broadcaster.register(member.id, Stream())
        notification = notification_service.create_notification(
            db, member.id, member.organization_id,
            NotificationCreate(title="Ping", message="pong", data={"entityId": "1"}),
            broadcaster,
        )

        assert notification.sent_in_app is True
        assert notification.data == {"entityId": "1"}
        assert len(frames) == 1
        assert '"Ping"' in frames[0]

    def test_in_app_disabled_skips_push(self, db, member) -> None:
        member.notify_in_app = False
        db.commit()
        broadcaster = NotificationBroadcaster()
        frames = []

        class Stream:
            def write(self, frame):
                frames.append(frame)

        broadcaster.register(member.id, Stream())
        notification_service.create_notification(
            db, member.id, member.organization_id,
            NotificationCreate(title="Quiet", message="shh"), broadcaster,
        )
        assert frames == []

    def test_email_without_smtp_is_not_marked_sent(self, db, member) -> None:
        notification = _notify(db, member, send_email=True)
        assert notification.sent_email is True
        assert notification.email_sent_at is None

    def test_unknown_user_returns_none(self, db, org) -> None:
        result = notification_service.create_notification(
            db, 9999, org.id, NotificationCreate(title="x", message="y")
        )
        assert result is None

    def test_bulk(self, db, member, viewer) -> None:
        created = notification_service.create_bulk_notifications(
            db, [member.id, viewer.id, 9999], member.organization_id,
            NotificationCreate(title="All hands", message="Now"),
        )
        assert len(created) == 2

    def test_cleanup_respects_retention(self, db, org, member) -> None:
        old = _notify(db, member, title="Old")
        _notify(db, member, title="New")
        old.created_at = utcnow() - timedelta(days=45)
        db.commit()

        results = notification_service.cleanup_expired(db)

        assert results == [{"organization": "Acme", "deleted_count": 1, "retention_days": 30}]
        assert [n.title for n in db.query(Notification).all()] == ["New"]

    def test_cleanup_skips_disabled_organizations(self, db, org, member) -> None:
        org.notification_auto_cleanup = False
        old = _notify(db, member, title="Old")
        old.created_at = utcnow() - timedelta(days=400)
        db.commit()

        assert notification_service.cleanup_expired(db) == []
        assert db.query(Notification).count() == 1


class TestEmailBody:
    """Tests for the notification email bodies."""

    def test_plain_message(self) -> None:
        html, text = email_body(NotificationCreate(title="Hi", message="a < b"))
        assert html == "<p>a &lt; b</p>"
        assert text == "a < b"

    def test_url_links_to_frontend(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "FRONTEND_URL", "https://pm.acme.test/")
        data = NotificationCreate(title="Hi", message="Stopped", data={"url": "/time-tracking/logs"})

        html, text = email_body(data)

        assert 'href="https://pm.acme.test/time-tracking/logs"' in html
        assert text.endswith("https://pm.acme.test/time-tracking/logs")


class TestNotificationsEndpoints:
    """Tests for /api/notifications."""

    def test_list_with_unread_count(self, client, db, member, headers_for) -> None:
        first = _notify(db, member, title="One")
        _notify(db, member, title="Two")
        notification_service.mark_as_read(db, first.id, member.id)

        response = client.get("/api/notifications", headers=headers_for(member))

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert body["unread_count"] == 1

    def test_unread_only_filter(self, client, db, member, headers_for) -> None:
        first = _notify(db, member, title="One")
        _notify(db, member, title="Two")
        notification_service.mark_as_read(db, first.id, member.id)

        body = client.get(
            "/api/notifications", params={"unreadOnly": "true"}, headers=headers_for(member)
        ).json()
        assert [n["title"] for n in body["notifications"]] == ["Two"]

    def test_only_own_notifications(self, client, db, member, viewer, headers_for) -> None:
        _notify(db, viewer, title="Not yours")
        body = client.get("/api/notifications", headers=headers_for(member)).json()
        assert body["total"] == 0

    def test_mark_as_read(self, client, db, member, headers_for) -> None:
        notification = _notify(db, member)
        response = client.post(
            "/api/notifications",
            json={"action": "markAsRead", "notification_id": notification.id},
            headers=headers_for(member),
        )
        assert response.status_code == 200
        again = client.post(
            "/api/notifications",
            json={"action": "markAsRead", "notification_id": notification.id},
            headers=headers_for(member),
        )
        assert again.status_code == 404

    def test_mark_all_read(self, client, db, member, headers_for) -> None:
        _notify(db, member, title="One")
        _notify(db, member, title="Two")
        response = client.post(
            "/api/notifications", json={"action": "markAllRead"}, headers=headers_for(member)
        )
        assert response.status_code == 200
        assert notification_service.get_user_notifications(db, member.id)["unread_count"] == 0

    def test_delete_requires_id(self, client, member, headers_for) -> None:
        response = client.post(
            "/api/notifications", json={"action": "delete"}, headers=headers_for(member)
        )
        assert response.status_code == 400

    def test_cannot_delete_someone_elses(self, client, db, member, viewer, headers_for) -> None:
        theirs = _notify(db, viewer)
        response = client.post(
            "/api/notifications",
            json={"action": "delete", "notification_id": theirs.id},
            headers=headers_for(member),
        )
        assert response.status_code == 404
        assert db.query(Notification).count() == 1

    def test_unknown_action(self, client, member, headers_for) -> None:
        response = client.post(
            "/api/notifications", json={"action": "explode"}, headers=headers_for(member)
        )
        assert response.status_code == 422

    def test_cleanup_requires_settings_permission(self, client, member, headers_for) -> None:
        response = client.delete(
            "/api/notifications", params={"action": "cleanup"}, headers=headers_for(member)
        )
        assert response.status_code == 403

    def test_cleanup_as_admin(self, client, db, admin, member, headers_for) -> None:
        old = _notify(db, member)
        old.created_at = utcnow() - timedelta(days=31)
        db.commit()

        response = client.delete(
            "/api/notifications", params={"action": "cleanup"}, headers=headers_for(admin)
        )
        assert response.status_code == 200
        assert response.json()["deleted_count"] == 1

    def test_cleanup_bad_action(self, client, admin, headers_for) -> None:
        response = client.delete(
            "/api/notifications", params={"action": "purge"}, headers=headers_for(admin)
        )
        assert response.status_code == 400

    def test_stream_requires_token(self, client) -> None:
        assert client.get("/api/notifications/stream").status_code == 401

    def test_stream_rejects_bad_query_token(self, client) -> None:
        response = client.get("/api/notifications/stream", params={"access_token": "garbage"})
        assert response.status_code == 401
