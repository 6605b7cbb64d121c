"""
Team chat: channels, messages, reactions, pins and unread counts.

A user's read position in a channel is a ChatMember row, written whenever they
open the channel's latest messages. Unread counts are messages from other
people posted after that position; a channel never opened counts every such
message. Users who read a channel in the last few minutes are reported as
online.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from catering_ops.core.naming import slugify
from catering_ops.db.documents import utc_now
from catering_ops.models.chat import (
    CHAT_REACTIONS, GENERAL_CHANNEL, MAX_EMOJI_LENGTH,
    ChatChannel, ChatMember, ChatMessage, ChatQuickReply, ChatReaction,
)
from catering_ops.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 50
ONLINE_WINDOW = timedelta(minutes=5)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def channel_to_dict(channel: ChatChannel) -> dict:
    return {
        "id": channel.id,
        "name": channel.name,
        "slug": channel.slug,
        "description": channel.description,
        "is_read_only": channel.is_read_only,
        "icon": channel.icon,
        "created_by": channel.created_by,
        "created_at": _iso(channel.created_at),
        "updated_at": _iso(channel.updated_at),
    }


def message_to_dict(message: ChatMessage, reactions: Optional[list] = None) -> dict:
    author = message.author
    return {
        "id": message.id,
        "channel_id": message.channel_id,
        "user_id": message.user_id,
        "content": message.content,
        "image_url": message.image_url,
        "is_urgent": message.is_urgent,
        "is_pinned": message.is_pinned,
        "created_at": _iso(message.created_at),
        "updated_at": _iso(message.updated_at),
        "user_first_name": author.first_name if author else None,
        "user_last_name": author.last_name if author else None,
        "user_role": author.role if author else None,
        "reactions": reactions or [],
    }


def _require_admin(user: User) -> None:
    if not user.has_role(roles.ADMIN):
        raise PermissionDeniedError("Admin access required")


class TeamChatService:

    def __init__(self, db: Session, now: Optional[datetime] = None):
        self.db = db
        self._now = now

    def now(self) -> datetime:
        return self._now or utc_now()

    def _channel(self, channel_id: int) -> ChatChannel:
        channel = self.db.get(ChatChannel, channel_id)
        if channel is None:
            raise NotFoundError("Channel not found")
        return channel

    def _message(self, message_id: int) -> ChatMessage:
        message = self.db.get(ChatMessage, message_id)
        if message is None:
            raise NotFoundError("Message not found")
        return message

    # -- unread counts ------------------------------------------------------

    def _unread_by_channel(self, user: User) -> dict[int, int]:
        membership = and_(ChatMember.channel_id == ChatMessage.channel_id, ChatMember.user_id == user.id)
        rows = (
            self.db.query(ChatMessage.channel_id, func.count(ChatMessage.id))
            .outerjoin(ChatMember, membership)
            .filter(ChatMessage.user_id != user.id)
            .filter(or_(ChatMember.last_read_at.is_(None), ChatMessage.created_at > ChatMember.last_read_at))
            .group_by(ChatMessage.channel_id)
            .all()
        )
        return {channel_id: count for channel_id, count in rows}

    def total_unread(self, user: User) -> int:
        return sum(self._unread_by_channel(user).values())

    def mark_read(self, channel_id: int, user: User) -> None:
        member = (
            self.db.query(ChatMember)
            .filter(ChatMember.channel_id == channel_id, ChatMember.user_id == user.id)
            .first()
        )
        if member is None:
            member = ChatMember(channel_id=channel_id, user_id=user.id, joined_at=self.now())
            self.db.add(member)
        member.last_read_at = self.now()
        self.db.commit()

    # -- reading ------------------------------------------------------------

    def channels(self, user: User) -> dict:
        """Channels by name with the user's unread count, plus quick replies and the reaction palette."""
        unread = self._unread_by_channel(user)
        channels = []
        for channel in self.db.query(ChatChannel).order_by(ChatChannel.name.asc()).all():
            entry = channel_to_dict(channel)
            entry["unread_count"] = unread.get(channel.id, 0)
            channels.append(entry)

        replies = (
            self.db.query(ChatQuickReply)
            .filter(ChatQuickReply.is_active.is_(True))
            .order_by(ChatQuickReply.sort_order.asc())
            .all()
        )
        return {
            "channels": channels,
            "quick_replies": [
                {"id": r.id, "text": r.text, "emoji": r.emoji, "sort_order": r.sort_order} for r in replies
            ],
            "reactions": [{"emoji": emoji, "label": label} for emoji, label in CHAT_REACTIONS],
            "total_unread": sum(unread.values()),
        }

    def _reactions(self, message_ids: list[int], user: User) -> dict[int, list]:
        """Reactions per message, one entry per emoji in the order first used."""
        if not message_ids:
            return {}
        rows = (
            self.db.query(ChatReaction)
            .filter(ChatReaction.message_id.in_(message_ids))
            .order_by(ChatReaction.created_at.asc(), ChatReaction.id.asc())
            .all()
        )
        grouped: dict[int, dict[str, list]] = {}
        for reaction in rows:
            by_emoji = grouped.setdefault(reaction.message_id, {})
            by_emoji.setdefault(reaction.emoji, []).append(
                {"id": reaction.user_id, "name": reaction.user.full_name if reaction.user else None}
            )
        return {
            message_id: [
                {
                    "emoji": emoji,
                    "count": len(users),
                    "users": users,
                    "has_reacted": any(u["id"] == user.id for u in users),
                }
                for emoji, users in by_emoji.items()
            ]
            for message_id, by_emoji in grouped.items()
        }

    def _online_users(self) -> list[dict]:
        since = self.now() - ONLINE_WINDOW
        members = (
            self.db.query(ChatMember)
            .filter(ChatMember.last_read_at > since)
            .order_by(ChatMember.user_id.asc(), ChatMember.last_read_at.desc())
            .all()
        )
        online = {}
        for member in members:
            if member.user_id not in online and member.user is not None:
                online[member.user_id] = {"id": member.user_id, "name": member.user.full_name, "role": member.user.role}
        return list(online.values())

    def messages(
        self,
        channel_id: Optional[int],
        user: User,
        before_id: Optional[int] = None,
        limit: int = DEFAULT_PAGE,
    ) -> dict:
        """
        One page of a channel's messages, oldest first.

        Without ``before_id`` this is the latest page: it also carries the
        channel's pinned messages and who is online, and it moves the user's
        read position to now. With ``before_id`` it is an older page of
        messages only.
        """
        if not channel_id:
            raise ValidationError("Channel ID required")
        self._channel(channel_id)

        query = self.db.query(ChatMessage).filter(ChatMessage.channel_id == channel_id)
        if before_id is not None:
            query = query.filter(ChatMessage.id < before_id)
        page = query.order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc()).limit(limit).all()
        page.reverse()

        pinned, online = [], []
        if before_id is None:
            self.mark_read(channel_id, user)
            pinned = (
                self.db.query(ChatMessage)
                .filter(ChatMessage.channel_id == channel_id, ChatMessage.is_pinned.is_(True))
                .order_by(ChatMessage.created_at.desc())
                .all()
            )
            online = self._online_users()

        reactions = self._reactions([m.id for m in page], user)
        return {
            "messages": [message_to_dict(m, reactions.get(m.id)) for m in page],
            "pinned_messages": [message_to_dict(m) for m in pinned],
            "online_users": online,
        }

    # -- writing ------------------------------------------------------------

    def send(
        self,
        channel_id: Optional[int],
        content: Optional[str],
        user: User,
        image_url: Optional[str] = None,
        is_urgent: bool = False,
    ) -> dict:
        content = (content or "").strip()
        if not channel_id or not content:
            raise ValidationError("Channel ID and content required")
        channel = self._channel(channel_id)
        if channel.is_read_only and not user.has_role(roles.ADMIN):
            raise PermissionDeniedError("This channel is read-only")

        now = self.now()
        message = ChatMessage(
            channel_id=channel.id,
            user_id=user.id,
            content=content,
            image_url=image_url or None,
            is_urgent=bool(is_urgent),
            created_at=now,
            updated_at=now,
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        if message.is_urgent:
            logger.info(f"Urgent chat message {message.id} in #{channel.slug} from user {user.id}")
        return {"message": message_to_dict(message)}

    def toggle_reaction(self, message_id: Optional[int], emoji: Optional[str], user: User) -> dict:
        emoji = (emoji or "").strip()
        if not message_id or not emoji:
            raise ValidationError("Message ID and emoji required")
        if len(emoji) > MAX_EMOJI_LENGTH:
            raise ValidationError("Emoji is too long")
        self._message(message_id)

        existing = (
            self.db.query(ChatReaction)
            .filter(
                ChatReaction.message_id == message_id,
                ChatReaction.user_id == user.id,
                ChatReaction.emoji == emoji,
            )
            .first()
        )
        if existing is not None:
            self.db.delete(existing)
            self.db.commit()
            return {"added": False}

        self.db.add(ChatReaction(message_id=message_id, user_id=user.id, emoji=emoji, created_at=self.now()))
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request added the same reaction
            self.db.rollback()
        return {"added": True}

    def toggle_pin(self, message_id: Optional[int], user: User) -> dict:
        _require_admin(user)
        if not message_id:
            raise ValidationError("Message ID required")
        message = self._message(message_id)
        message.is_pinned = not message.is_pinned
        message.updated_at = self.now()
        self.db.commit()
        return {"is_pinned": message.is_pinned}

    # -- channel administration ---------------------------------------------

    def admin_channels(self, user: User) -> dict:
        """Every channel, oldest first, with message and member counts and the last message time."""
        _require_admin(user)
        message_stats = dict(
            (channel_id, (count, last))
            for channel_id, count, last in self.db.query(
                ChatMessage.channel_id, func.count(ChatMessage.id), func.max(ChatMessage.created_at)
            ).group_by(ChatMessage.channel_id)
        )
        member_counts = dict(
            self.db.query(ChatMember.channel_id, func.count(func.distinct(ChatMember.user_id)))
            .group_by(ChatMember.channel_id)
            .all()
        )

        channels = []
        for channel in self.db.query(ChatChannel).order_by(ChatChannel.created_at.asc(), ChatChannel.id.asc()):
            count, last = message_stats.get(channel.id, (0, None))
            entry = channel_to_dict(channel)
            entry.update(
                message_count=count,
                member_count=member_counts.get(channel.id, 0),
                last_message_at=_iso(last),
            )
            channels.append(entry)
        return {"channels": channels}

    def create_channel(self, data: dict, user: User) -> dict:
        _require_admin(user)
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Channel name is required")
        slug = slugify(name)
        if not slug:
            raise ValidationError("Channel name must contain letters or numbers")
        if self.db.query(ChatChannel).filter(ChatChannel.slug == slug).count():
            raise ValidationError("A channel with this name already exists")

        channel = ChatChannel(
            name=name,
            slug=slug,
            description=data.get("description") or None,
            icon=data.get("icon") or "hash",
            is_read_only=bool(data.get("is_read_only") or False),
            created_by=user.id,
        )
        self.db.add(channel)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError("A channel with this name already exists")
        self.db.refresh(channel)
        logger.info(f"Chat channel #{slug} created by user {user.id}")
        return {"channel": channel_to_dict(channel)}

    def update_channel(self, channel_id: int, data: dict, user: User) -> dict:
        """Change name, description, icon or read-only flag; the slug stays fixed."""
        _require_admin(user)
        channel = self._channel(channel_id)
        if (data.get("name") or "").strip():
            channel.name = data["name"].strip()
        if data.get("description") is not None:
            channel.description = data["description"]
        if data.get("icon"):
            channel.icon = data["icon"]
        if data.get("is_read_only") is not None:
            channel.is_read_only = bool(data["is_read_only"])
        channel.updated_at = self.now()
        self.db.commit()
        self.db.refresh(channel)
        return {"channel": channel_to_dict(channel)}

    def delete_channel(self, channel_id: int, user: User) -> dict:
        _require_admin(user)
        channel = self._channel(channel_id)
        slug = channel.slug
        if slug == GENERAL_CHANNEL:
            raise ValidationError("Cannot delete the General channel")
        self.db.delete(channel)
        self.db.commit()
        logger.info(f"Chat channel #{slug} deleted by user {user.id}")
        return {"success": True}
