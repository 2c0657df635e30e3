"""
SQLAlchemy models for the Co:Lab notification server.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata. The tables are
owned by the shared Co:Lab store; the server reads them and writes only
push subscriptions, preferences and mute settings.
"""

import uuid

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def new_id() -> str:
    """Generate a string UUID primary key matching the store's uuid columns."""
    return str(uuid.uuid4())


# Import all models here so they are registered with Base.metadata
from server.src.models.profile import Profile
from server.src.models.push_subscription import PushSubscription
from server.src.models.notification_preference import NotificationPreference
from server.src.models.chat_settings import DmSetting, TopicSetting
from server.src.models.connection import Connection, ConnectionStatus
from server.src.models.private_message import PrivateMessage
from server.src.models.topic import Topic, TopicFollow, TopicMessage, TopicReadStatus
from server.src.models.group_chat import (
    GroupChat,
    GroupChatMember,
    GroupMemberRole,
    GroupMemberStatus,
    GroupMessage,
)

__all__ = [
    "Base",
    "new_id",
    "Profile",
    "PushSubscription",
    "NotificationPreference",
    "DmSetting",
    "TopicSetting",
    "Connection",
    "ConnectionStatus",
    "PrivateMessage",
    "Topic",
    "TopicFollow",
    "TopicMessage",
    "TopicReadStatus",
    "GroupChat",
    "GroupChatMember",
    "GroupMemberRole",
    "GroupMemberStatus",
    "GroupMessage",
]
