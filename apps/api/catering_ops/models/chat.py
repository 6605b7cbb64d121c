"""
Team chat between kitchen, dispatch and branch staff.

ChatChannel: a named room; the "general" channel always exists
ChatMessage: one post in a channel, optionally urgent or pinned by an admin
ChatMember: a user's read position in a channel, created on first read
ChatReaction: one emoji from one user on one message
ChatQuickReply: canned replies offered by the message composer
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from catering_ops.db.base import Base

GENERAL_CHANNEL = "general"

DEFAULT_QUICK_REPLIES = (
    ("On my way!", "🏃"),
    ("Dispatch received ✅", "📦"),
    ("Need help!", "🆘"),
    ("Running low on stock", "📉"),
    ("All done!", "✅"),
    ("Thanks!", "🙏"),
)

# Reactions offered by the message menu; any emoji is accepted
CHAT_REACTIONS = (
    ("👍", "Thumbs up"),
    ("✅", "Done"),
    ("👀", "Looking into it"),
    ("🔥", "Fire"),
    ("👨‍🍳", "Chef's kiss"),
    ("❤️", "Love"),
)
MAX_EMOJI_LENGTH = 50


class ChatChannel(Base):
    __tablename__ = "chat_channels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    is_read_only = Column(Boolean, nullable=False, default=False)  # Only admins post
    icon = Column(String(50), nullable=False, default="hash")
    created_by = Column(Integer, ForeignKey("users.id"))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    messages = relationship("ChatMessage", back_populates="channel", cascade="all, delete-orphan")
    members = relationship("ChatMember", cascade="all, delete-orphan")


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    channel_id = Column(Integer, ForeignKey("chat_channels.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    image_url = Column(Text)
    is_urgent = Column(Boolean, nullable=False, default=False)
    is_pinned = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    channel = relationship("ChatChannel", back_populates="messages")
    author = relationship("User")
    reactions = relationship("ChatReaction", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_chat_messages_channel_id', 'channel_id'),
        Index('idx_chat_messages_created_at', 'created_at'),
        Index('idx_chat_messages_user_id', 'user_id'),
    )


class ChatMember(Base):
    __tablename__ = "chat_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    channel_id = Column(Integer, ForeignKey("chat_channels.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())
    last_read_at = Column(DateTime(timezone=True), server_default=func.now())
    is_muted = Column(Boolean, nullable=False, default=False)

    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('channel_id', 'user_id', name='uq_chat_member'),
        Index('idx_chat_members_user_id', 'user_id'),
    )


class ChatReaction(Base):
    __tablename__ = "chat_reactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(Integer, ForeignKey("chat_messages.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    emoji = Column(String(MAX_EMOJI_LENGTH), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('message_id', 'user_id', 'emoji', name='uq_chat_reaction'),
        Index('idx_chat_reactions_message_id', 'message_id'),
    )


class ChatQuickReply(Base):
    __tablename__ = "chat_quick_replies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column(String(100), nullable=False)
    emoji = Column(String(20))
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


def default_chat_rows() -> list:
    """The general channel and the stock quick replies, for fresh databases."""
    rows = [
        ChatChannel(
            name="General", slug=GENERAL_CHANNEL, description="Main chat channel for everyone", icon="users",
        )
    ]
    rows.extend(
        ChatQuickReply(text=text, emoji=emoji, sort_order=index)
        for index, (text, emoji) in enumerate(DEFAULT_QUICK_REPLIES, start=1)
    )
    return rows
