"""
Suppression decision for a single recipient of a single notification.

Combines four signals, short-circuiting on the first that says "suppress":
1. Self-check: the recipient caused the event
2. Presence: the recipient is looking at the conversation (in memory,
   evaluated before any store access)
3. Mute: the recipient muted the conversation
4. Category preference: the recipient disabled the notification category

Missing mute or preference rows mean "allow".
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from server.src.models.chat_settings import DmSetting, TopicSetting
from server.src.models.group_chat import GroupChatMember
from server.src.models.notification_preference import NotificationPreference
from server.src.services.presence_registry import ContextKind, ViewerPresenceRegistry
from server.src.utils.logging_config import get_logger


logger = get_logger("services")


# Categories that map to NotificationPreference columns
CATEGORY_PREFERENCE_COLUMNS = {
    "dm": "dm_notifications",
    "connection": "connection_notifications",
    "group": "group_notifications",
    "topic": "topic_notifications",
}

# Categories without a coarse toggle
UNGATED_CATEGORIES = {"mention", "reminder"}

SUPPRESSED_SELF = "self"
SUPPRESSED_VIEWING = "viewing"
SUPPRESSED_MUTED = "muted"
SUPPRESSED_CATEGORY = "category_disabled"


@dataclass(frozen=True)
class ConversationRef:
    """
    The conversation a notification is about.

    For DMs the id is the peer (the sender), matching how presence and
    dm_settings are keyed from the recipient's point of view.
    """
    kind: ContextKind
    id: str


class NotificationPreferenceResolver:
    """
    Decides whether a notification to one recipient should be suppressed.
    """

    def __init__(self, db: Session, presence: ViewerPresenceRegistry):
        self.db = db
        self.presence = presence

    def suppression_reason(
        self,
        user_id: str,
        category: Optional[str],
        conversation: Optional[ConversationRef],
        actor_id: Optional[str] = None,
        check_presence: bool = True,
        check_mute: bool = True,
    ) -> Optional[str]:
        """
        Return why the notification should be suppressed, or None to deliver.

        Args:
            user_id: Recipient
            category: Notification category (dm, connection, group, topic,
                mention, reminder); None skips the category check
            conversation: Conversation the event belongs to; None skips the
                presence and mute checks
            actor_id: User who caused the event
            check_presence: Apply the presence check
            check_mute: Apply the per-conversation mute check (mentions bypass it)

        Returns:
            One of "self", "viewing", "muted", "category_disabled", or None
        """
        if actor_id is not None and user_id == actor_id:
            return SUPPRESSED_SELF

        if conversation is not None and check_presence:
            if self.presence.is_viewing(conversation.kind, conversation.id, user_id):
                return SUPPRESSED_VIEWING

        if conversation is not None and check_mute:
            if self.is_muted(user_id, conversation):
                return SUPPRESSED_MUTED

        if category is not None and not self.is_category_enabled(user_id, category):
            return SUPPRESSED_CATEGORY

        return None

    def should_suppress(
        self,
        user_id: str,
        category: Optional[str],
        conversation: Optional[ConversationRef],
        actor_id: Optional[str] = None,
        check_presence: bool = True,
        check_mute: bool = True,
    ) -> bool:
        """Boolean form of suppression_reason."""
        return self.suppression_reason(
            user_id,
            category,
            conversation,
            actor_id=actor_id,
            check_presence=check_presence,
            check_mute=check_mute,
        ) is not None

    def is_muted(self, user_id: str, conversation: ConversationRef) -> bool:
        """
        Check the recipient's mute flag for a DM peer, topic, or group.

        A conversation also counts as muted when its per-conversation
        ``notifications_enabled`` flag is explicitly false. Other context
        kinds cannot be muted.
        """
        if conversation.kind == ContextKind.DM:
            setting = (
                self.db.query(DmSetting)
                .filter(DmSetting.user_id == user_id, DmSetting.other_user_id == conversation.id)
                .first()
            )
        elif conversation.kind == ContextKind.TOPIC:
            setting = (
                self.db.query(TopicSetting)
                .filter(TopicSetting.user_id == user_id, TopicSetting.topic_id == conversation.id)
                .first()
            )
        elif conversation.kind == ContextKind.GROUP:
            setting = (
                self.db.query(GroupChatMember)
                .filter(GroupChatMember.user_id == user_id, GroupChatMember.group_id == conversation.id)
                .first()
            )
        else:
            return False

        if setting is None:
            return False
        return bool(setting.muted) or setting.notifications_enabled is False

    def is_category_enabled(self, user_id: str, category: str) -> bool:
        """
        Check the coarse category toggle (default-allow).

        Raises:
            ValueError: If the category is unknown
        """
        if category in UNGATED_CATEGORIES:
            return True
        column = CATEGORY_PREFERENCE_COLUMNS.get(category)
        if column is None:
            raise ValueError(f"Unknown notification category: {category}")

        prefs = (
            self.db.query(NotificationPreference)
            .filter(NotificationPreference.user_id == user_id)
            .first()
        )
        if prefs is None:
            return True
        return getattr(prefs, column) is not False
