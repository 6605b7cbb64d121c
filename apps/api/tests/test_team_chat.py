"""
Tests for the team chat: channels, messages, reactions, pins and unread counts.

Service-level tests pin "now" to 2025-01-16 10:00 UTC; the seeded messages
were posted earlier that morning.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from catering_ops.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from catering_ops.models.chat import ChatChannel, ChatMember, ChatMessage, ChatReaction, default_chat_rows
from catering_ops.models.user import User
from catering_ops.services.team_chat import TeamChatService

NOW = datetime(2025, 1, 16, 10, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, 16, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def chat(db: Session, admin_user: User, station_user: User, chef_user: User) -> dict:
    """General with three messages, a kitchen channel with one and a read-only announcements channel."""
    db.add_all(default_chat_rows())
    kitchen = ChatChannel(name="Kitchen", slug="kitchen")
    announcements = ChatChannel(name="Announcements", slug="announcements", is_read_only=True)
    db.add_all([kitchen, announcements])
    db.commit()

    general = db.query(ChatChannel).filter(ChatChannel.slug == "general").one()
    messages = [
        ChatMessage(channel_id=general.id, user_id=admin_user.id, content="Morning all", created_at=at(8)),
        ChatMessage(channel_id=general.id, user_id=station_user.id, content="Hot line ready", created_at=at(9)),
        ChatMessage(channel_id=general.id, user_id=chef_user.id, content="Biryani is up", created_at=at(9, 30)),
        ChatMessage(channel_id=kitchen.id, user_id=chef_user.id, content="Low on rice", created_at=at(9)),
    ]
    db.add_all(messages)
    db.commit()
    return {"general": general, "kitchen": kitchen, "announcements": announcements, "messages": messages}


class TestUnreadCounts:

    def test_unopened_channels_count_everything_from_others(self, db: Session, chat, station_user: User):
        service = TeamChatService(db, now=NOW)

        result = service.channels(station_user)

        assert [c["name"] for c in result["channels"]] == ["Announcements", "General", "Kitchen"]
        assert [c["unread_count"] for c in result["channels"]] == [0, 2, 1]
        assert result["total_unread"] == 3
        assert service.total_unread(station_user) == 3

    def test_reading_latest_page_clears_channel(self, db: Session, chat, station_user: User):
        service = TeamChatService(db, now=NOW)

        service.messages(chat["general"].id, station_user)

        assert service.total_unread(station_user) == 1
        member = db.query(ChatMember).filter(ChatMember.user_id == station_user.id).one()
        assert member.channel_id == chat["general"].id

    def test_new_message_after_read_is_unread(self, db: Session, chat, station_user: User, chef_user: User):
        TeamChatService(db, now=NOW).messages(chat["general"].id, station_user)
        TeamChatService(db, now=NOW + timedelta(minutes=1)).send(chat["general"].id, "Plating now", chef_user)

        unread = TeamChatService(db, now=NOW).channels(station_user)["channels"]
        assert unread[1]["unread_count"] == 1

    def test_older_page_does_not_mark_read(self, db: Session, chat, station_user: User):
        service = TeamChatService(db, now=NOW)

        service.messages(chat["general"].id, station_user, before_id=chat["messages"][2].id)

        assert service.total_unread(station_user) == 3


class TestMessages:

    def test_latest_page_oldest_first(self, db: Session, chat, admin_user: User):
        result = TeamChatService(db, now=NOW).messages(chat["general"].id, admin_user, limit=2)

        assert [m["content"] for m in result["messages"]] == ["Hot line ready", "Biryani is up"]
        assert result["messages"][1]["user_first_name"] == "Rania"
        assert result["messages"][1]["user_role"] == "head_chef"

    def test_older_page(self, db: Session, chat, admin_user: User):
        result = TeamChatService(db, now=NOW).messages(
            chat["general"].id, admin_user, before_id=chat["messages"][1].id, limit=2
        )

        assert [m["content"] for m in result["messages"]] == ["Morning all"]
        assert result["pinned_messages"] == []
        assert result["online_users"] == []

    def test_online_users_read_recently(self, db: Session, chat, admin_user: User, station_user: User):
        TeamChatService(db, now=NOW - timedelta(minutes=10)).messages(chat["kitchen"].id, station_user)
        TeamChatService(db, now=NOW).messages(chat["general"].id, station_user)

        online = TeamChatService(db, now=NOW + timedelta(minutes=1)).messages(
            chat["general"].id, admin_user
        )["online_users"]

        assert sorted(u["name"] for u in online) == ["Amal Haddad", "hotline@catering-ops.com"]

    def test_reactions_grouped_by_emoji(self, db: Session, chat, admin_user: User, station_user: User):
        first = chat["messages"][0]
        db.add_all([
            ChatReaction(message_id=first.id, user_id=station_user.id, emoji="👍", created_at=at(8, 1)),
            ChatReaction(message_id=first.id, user_id=admin_user.id, emoji="✅", created_at=at(8, 2)),
            ChatReaction(message_id=first.id, user_id=admin_user.id, emoji="👍", created_at=at(8, 3)),
        ])
        db.commit()

        messages = TeamChatService(db, now=NOW).messages(chat["general"].id, station_user)["messages"]

        assert messages[0]["reactions"] == [
            {
                "emoji": "👍",
                "count": 2,
                "users": [
                    {"id": station_user.id, "name": "hotline@catering-ops.com"},
                    {"id": admin_user.id, "name": "Amal Haddad"},
                ],
                "has_reacted": True,
            },
            {"emoji": "✅", "count": 1, "users": [{"id": admin_user.id, "name": "Amal Haddad"}], "has_reacted": False},
        ]
        assert messages[1]["reactions"] == []

    def test_send_trims_content(self, db: Session, chat, station_user: User):
        message = TeamChatService(db, now=NOW).send(
            chat["kitchen"].id, "  Need more trays  ", station_user, is_urgent=True
        )["message"]

        assert message["content"] == "Need more trays"
        assert message["is_urgent"] is True
        assert message["is_pinned"] is False

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_send_requires_content(self, db: Session, chat, station_user: User, content):
        with pytest.raises(ValidationError, match="Channel ID and content required"):
            TeamChatService(db, now=NOW).send(chat["kitchen"].id, content, station_user)

    def test_send_to_unknown_channel(self, db: Session, chat, station_user: User):
        with pytest.raises(NotFoundError, match="Channel not found"):
            TeamChatService(db, now=NOW).send(999, "Hello", station_user)

    def test_read_only_channel_admins_only(self, db: Session, chat, station_user: User, admin_user: User):
        service = TeamChatService(db, now=NOW)

        with pytest.raises(PermissionDeniedError, match="This channel is read-only"):
            service.send(chat["announcements"].id, "Hi", station_user)
        assert service.send(chat["announcements"].id, "Menu changes Monday", admin_user)["message"]["id"]


class TestReactionsAndPins:

    def test_toggle_reaction(self, db: Session, chat, station_user: User):
        service = TeamChatService(db, now=NOW)
        message_id = chat["messages"][2].id

        assert service.toggle_reaction(message_id, "🔥", station_user) == {"added": True}
        assert service.toggle_reaction(message_id, "🔥", station_user) == {"added": False}
        assert db.query(ChatReaction).count() == 0

    def test_reaction_on_unknown_message(self, db: Session, chat, station_user: User):
        with pytest.raises(NotFoundError, match="Message not found"):
            TeamChatService(db, now=NOW).toggle_reaction(999, "👍", station_user)

    def test_admin_toggles_pin(self, db: Session, chat, admin_user: User):
        service = TeamChatService(db, now=NOW)
        first = chat["messages"][0]

        assert service.toggle_pin(first.id, admin_user) == {"is_pinned": True}
        pinned = service.messages(chat["general"].id, admin_user)["pinned_messages"]
        assert [m["content"] for m in pinned] == ["Morning all"]

        assert service.toggle_pin(first.id, admin_user) == {"is_pinned": False}

    def test_pin_requires_admin(self, db: Session, chat, chef_user: User):
        with pytest.raises(PermissionDeniedError, match="Admin access required"):
            TeamChatService(db, now=NOW).toggle_pin(chat["messages"][0].id, chef_user)


class TestChatApi:
    """Tests for the /api/chat endpoints."""

    def test_channels(self, client: TestClient, station_headers: dict, chat):
        response = client.get("/api/chat/channels", headers=station_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["total_unread"] == 3
        assert [r["text"] for r in body["quick_replies"]][0] == "On my way!"
        assert len(body["quick_replies"]) == 6

    def test_unread(self, client: TestClient, station_headers: dict, chat):
        response = client.get("/api/chat/unread", headers=station_headers)

        assert response.json() == {"total_unread": 3}

    def test_messages_require_channel(self, client: TestClient, station_headers: dict):
        response = client.get("/api/chat/messages", headers=station_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Channel ID required"

    def test_post_and_read_back(self, client: TestClient, station_headers: dict, chat):
        posted = client.post(
            "/api/chat/messages",
            headers=station_headers,
            json={"channel_id": chat["kitchen"].id, "content": "Rice delivered"},
        )
        assert posted.status_code == 201

        page = client.get(f"/api/chat/messages?channel_id={chat['kitchen'].id}", headers=station_headers).json()
        assert [m["content"] for m in page["messages"]] == ["Low on rice", "Rice delivered"]

    def test_reaction_requires_emoji(self, client: TestClient, station_headers: dict, chat):
        response = client.post(
            "/api/chat/reactions", headers=station_headers, json={"message_id": chat["messages"][0].id}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Message ID and emoji required"

    def test_pin_forbidden_for_staff(self, client: TestClient, station_headers: dict, chat):
        response = client.post("/api/chat/pin", headers=station_headers, json={"message_id": chat["messages"][0].id})

        assert response.status_code == 403
        assert response.json()["error"] == "Admin access required"

    def test_requires_auth(self, client: TestClient):
        assert client.get("/api/chat/channels").status_code == 401


class TestChannelAdmin:
    """Tests for /api/chat/admin/channels."""

    def test_list_with_stats(self, client: TestClient, db: Session, admin_headers: dict, station_user: User, chat):
        TeamChatService(db, now=NOW).messages(chat["general"].id, station_user)

        channels = client.get("/api/chat/admin/channels", headers=admin_headers).json()["channels"]

        general = next(c for c in channels if c["slug"] == "general")
        assert general["message_count"] == 3
        assert general["member_count"] == 1
        assert general["last_message_at"].startswith("2025-01-16T09:30")
        announcements = next(c for c in channels if c["slug"] == "announcements")
        assert (announcements["message_count"], announcements["last_message_at"]) == (0, None)

    def test_create(self, client: TestClient, admin_headers: dict, admin_user: User, chat):
        response = client.post(
            "/api/chat/admin/channels", headers=admin_headers, json={"name": "  Night Shift ", "description": "Late"}
        )

        assert response.status_code == 201
        channel = response.json()["channel"]
        assert (channel["name"], channel["slug"], channel["icon"]) == ("Night Shift", "night-shift", "hash")
        assert channel["is_read_only"] is False
        assert channel["created_by"] == admin_user.id

    @pytest.mark.parametrize(
        "name,message",
        [("  ", "Channel name is required"), ("KITCHEN!", "A channel with this name already exists")],
    )
    def test_create_validation(self, client: TestClient, admin_headers: dict, chat, name, message):
        response = client.post("/api/chat/admin/channels", headers=admin_headers, json={"name": name})

        assert response.status_code == 400
        assert response.json()["error"] == message

    def test_non_admin_forbidden(self, client: TestClient, ops_headers: dict, chat):
        response = client.post("/api/chat/admin/channels", headers=ops_headers, json={"name": "Ops"})

        assert response.status_code == 403
        assert response.json()["error"] == "Admin access required"

    def test_update_keeps_slug(self, client: TestClient, admin_headers: dict, chat):
        response = client.put(
            f"/api/chat/admin/channels/{chat['kitchen'].id}",
            headers=admin_headers,
            json={"name": "Kitchen Floor", "is_read_only": True},
        )

        channel = response.json()["channel"]
        assert (channel["name"], channel["slug"], channel["is_read_only"]) == ("Kitchen Floor", "kitchen", True)

    def test_update_unknown(self, client: TestClient, admin_headers: dict):
        response = client.put("/api/chat/admin/channels/999", headers=admin_headers, json={"name": "X"})

        assert response.status_code == 404
        assert response.json()["error"] == "Channel not found"

    def test_general_cannot_be_deleted(self, client: TestClient, admin_headers: dict, chat):
        response = client.delete(f"/api/chat/admin/channels/{chat['general'].id}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot delete the General channel"

    def test_delete_removes_messages(self, client: TestClient, db: Session, admin_headers: dict, chat):
        kitchen_id = chat["kitchen"].id

        response = client.delete(f"/api/chat/admin/channels/{kitchen_id}", headers=admin_headers)

        assert response.json() == {"success": True}
        assert db.query(ChatMessage).filter(ChatMessage.channel_id == kitchen_id).count() == 0
