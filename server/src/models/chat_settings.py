"""
Per-conversation mute settings for direct messages and topics.

Group mute flags live on GroupChatMember. A muted conversation stops both
unread badges and push notifications; it is independent of the coarse
NotificationPreference and of presence.
"""

from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint

from server.src.models import Base, new_id


class DmSetting(Base):
    """Mute/notification settings a user holds for a DM with another user."""

    __tablename__ = "dm_settings"
    __table_args__ = (
        UniqueConstraint("user_id", "other_user_id", name="uq_dm_settings_user_other"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    other_user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    muted = Column(Boolean, default=False, nullable=True)
    notifications_enabled = Column(Boolean, default=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class TopicSetting(Base):
    """Mute/notification settings a user holds for a topic."""

    __tablename__ = "topic_settings"
    __table_args__ = (
        UniqueConstraint("user_id", "topic_id", name="uq_topic_settings_user_topic"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    topic_id = Column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    muted = Column(Boolean, default=False, nullable=True)
    notifications_enabled = Column(Boolean, default=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
