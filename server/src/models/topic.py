"""
Topic (public chat room) models.

- Topic: the room itself
- TopicFollow: users who asked for push notifications for a room
- TopicMessage: messages posted in a room (table "messages")
- TopicReadStatus: per-user last-read watermark for a room
"""

from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text, UniqueConstraint

from server.src.models import Base, new_id


class Topic(Base):
    """A public chat room."""

    __tablename__ = "topics"

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String(100), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    display_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class TopicFollow(Base):
    """A user following a topic for push notifications."""

    __tablename__ = "topic_follows"
    __table_args__ = (
        UniqueConstraint("user_id", "topic_id", name="uq_topic_follows_user_topic"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    topic_id = Column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class TopicMessage(Base):
    """A message posted in a topic."""

    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    topic_id = Column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)


class TopicReadStatus(Base):
    """Cross-device last-read timestamp for a user in a topic."""

    __tablename__ = "topic_read_status"
    __table_args__ = (
        UniqueConstraint("user_id", "topic_id", name="uq_topic_read_status_user_topic"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    topic_id = Column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    last_read_at = Column(DateTime, default=datetime.utcnow, nullable=False)
