"""
Preference and mute management.

Writes the rows the NotificationPreferenceResolver reads:
- notification_preferences: coarse per-category toggles
- dm_settings / topic_settings / group_chat_members: per-conversation mutes
"""

from typing import Dict, Optional

from sqlalchemy.orm import Session

from server.src.models.chat_settings import DmSetting, TopicSetting
from server.src.models.group_chat import GroupChatMember
from server.src.models.notification_preference import NotificationPreference
from server.src.services.exceptions import NotFoundError, ValidationError
from server.src.services.preference_resolver import CATEGORY_PREFERENCE_COLUMNS
from server.src.utils.logging_config import get_logger


logger = get_logger("services")


class PreferencesService:
    """Service for notification preferences and conversation mutes."""

    def __init__(self, db: Session):
        self.db = db

    def get_preferences(self, user_id: str) -> Dict[str, bool]:
        """
        Get a user's category toggles.

        Missing rows and NULL columns read as enabled.
        """
        prefs = (
            self.db.query(NotificationPreference)
            .filter(NotificationPreference.user_id == user_id)
            .first()
        )
        return {
            column: (getattr(prefs, column) is not False) if prefs else True
            for column in CATEGORY_PREFERENCE_COLUMNS.values()
        }

    def update_preferences(self, user_id: str, updates: Dict[str, Optional[bool]]) -> Dict[str, bool]:
        """
        Update the given category toggles, creating the row on first write.

        Args:
            user_id: User's id
            updates: Column name to new value; None values are ignored

        Returns:
            The full set of toggles after the update

        Raises:
            ValidationError: If a key is not a preference column
        """
        known = set(CATEGORY_PREFERENCE_COLUMNS.values())
        for key in updates:
            if key not in known:
                raise ValidationError(f"Unknown preference: {key}", field=key)

        prefs = (
            self.db.query(NotificationPreference)
            .filter(NotificationPreference.user_id == user_id)
            .first()
        )
        if prefs is None:
            prefs = NotificationPreference(user_id=user_id)
            self.db.add(prefs)

        for key, value in updates.items():
            if value is not None:
                setattr(prefs, key, value)

        self.db.commit()
        logger.info(
            "Updated notification preferences",
            extra={"user_id": user_id, "fields": sorted(k for k, v in updates.items() if v is not None)},
        )
        return self.get_preferences(user_id)

    def set_mute(self, user_id: str, kind: str, context_id: str, muted: bool) -> bool:
        """
        Mute or unmute a DM peer, topic, or group for a user.

        DM and topic settings are created on demand. Group mutes live on the
        membership row, so the user must be a member.

        Raises:
            NotFoundError: If muting a group the user is not a member of
            ValidationError: If kind is not dm, topic or group
        """
        if kind == "dm":
            setting = (
                self.db.query(DmSetting)
                .filter(DmSetting.user_id == user_id, DmSetting.other_user_id == context_id)
                .first()
            )
            if setting is None:
                setting = DmSetting(user_id=user_id, other_user_id=context_id)
                self.db.add(setting)
        elif kind == "topic":
            setting = (
                self.db.query(TopicSetting)
                .filter(TopicSetting.user_id == user_id, TopicSetting.topic_id == context_id)
                .first()
            )
            if setting is None:
                setting = TopicSetting(user_id=user_id, topic_id=context_id)
                self.db.add(setting)
        elif kind == "group":
            setting = (
                self.db.query(GroupChatMember)
                .filter(GroupChatMember.user_id == user_id, GroupChatMember.group_id == context_id)
                .first()
            )
            if setting is None:
                raise NotFoundError("GroupChatMember", f"{context_id}/{user_id}")
        else:
            raise ValidationError(f"Cannot mute context kind: {kind}", field="kind")

        setting.muted = muted
        self.db.commit()
        logger.info(
            "Updated conversation mute",
            extra={"user_id": user_id, "kind": kind, "context_id": context_id, "muted": muted},
        )
        return muted
