"""通知 API 测试 -- 列表、已读、删除与归属隔离"""

import pytest_asyncio
from taskhub.core.models import NotificationIntent, NotificationType


@pytest_asyncio.fixture
async def inbox(app, make_user):
    """bob 有 3 条通知，carol 有 1 条"""
    bob = await make_user("Bob", "bob@example.com")
    carol = await make_user("Carol", "carol@example.com")
    dispatcher = app.state.dispatcher
    bob_notes = [
        await dispatcher.dispatch(
            NotificationIntent(
                user_id=bob.user_id,
                message=f"note {i}",
                type=NotificationType.SYSTEM,
            )
        )
        for i in range(3)
    ]
    carol_note = await dispatcher.dispatch(
        NotificationIntent(
            user_id=carol.user_id, message="for carol", type=NotificationType.SYSTEM
        )
    )
    return bob, carol, bob_notes, carol_note


class TestListNotifications:
    async def test_newest_first_with_unread_count(self, client, inbox, auth_headers):
        bob, _, notes, _ = inbox
        resp = await client.get("/api/notifications", headers=auth_headers(bob))
        assert resp.status_code == 200
        body = resp.json()
        assert [n["message"] for n in body["notifications"]] == ["note 2", "note 1", "note 0"]
        assert body["unreadCount"] == 3
        first = body["notifications"][0]
        assert first["id"] == notes[2].notification_id
        assert first["read"] is False
        assert first["userId"] == bob.user_id

    async def test_limit_and_unread_only(self, client, inbox, auth_headers):
        bob, _, notes, _ = inbox
        await client.put(
            f"/api/notifications/{notes[2].notification_id}/read", headers=auth_headers(bob)
        )

        resp = await client.get(
            "/api/notifications?unreadOnly=true&limit=1", headers=auth_headers(bob)
        )
        body = resp.json()
        assert [n["message"] for n in body["notifications"]] == ["note 1"]
        # unreadCount 不受 limit 影响
        assert body["unreadCount"] == 2

    async def test_limit_out_of_range(self, client, inbox, auth_headers):
        bob, _, _, _ = inbox
        resp = await client.get("/api/notifications?limit=0", headers=auth_headers(bob))
        assert resp.status_code == 400


class TestMarkRead:
    async def test_mark_one(self, client, inbox, auth_headers):
        bob, _, notes, _ = inbox
        resp = await client.put(
            f"/api/notifications/{notes[0].notification_id}/read", headers=auth_headers(bob)
        )
        assert resp.status_code == 200
        assert resp.json()["notification"]["read"] is True

    async def test_other_users_notification_not_found(self, client, inbox, auth_headers):
        bob, carol, _, carol_note = inbox
        resp = await client.put(
            f"/api/notifications/{carol_note.notification_id}/read",
            headers=auth_headers(bob),
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOTIFICATION_NOT_FOUND"

        resp = await client.get("/api/notifications", headers=auth_headers(carol))
        assert resp.json()["unreadCount"] == 1

    async def test_mark_all_idempotent(self, client, inbox, auth_headers):
        bob, carol, _, _ = inbox
        first = await client.put("/api/notifications/read-all", headers=auth_headers(bob))
        second = await client.put("/api/notifications/read-all", headers=auth_headers(bob))
        assert first.json() == {"modifiedCount": 3}
        assert second.json() == {"modifiedCount": 0}

        resp = await client.get("/api/notifications", headers=auth_headers(carol))
        assert resp.json()["unreadCount"] == 1


class TestDeleteNotification:
    async def test_delete_own(self, client, inbox, auth_headers):
        bob, _, notes, _ = inbox
        resp = await client.delete(
            f"/api/notifications/{notes[1].notification_id}", headers=auth_headers(bob)
        )
        assert resp.status_code == 200

        resp = await client.get("/api/notifications", headers=auth_headers(bob))
        assert len(resp.json()["notifications"]) == 2

    async def test_delete_other_users(self, client, inbox, auth_headers, store_group):
        bob, _, _, carol_note = inbox
        resp = await client.delete(
            f"/api/notifications/{carol_note.notification_id}", headers=auth_headers(bob)
        )
        assert resp.status_code == 404
        assert await store_group.notification_store.get_notification(
            carol_note.notification_id
        ) is not None

    async def test_requires_auth(self, client, inbox):
        resp = await client.get("/api/notifications")
        assert resp.status_code == 401
