"""
Unit tests for NotificationPreferenceResolver.

Covers the self-check, presence, mute and category gates and the order in
which they are applied.
"""

from unittest.mock import MagicMock

import pytest

from server.src.models import DmSetting, GroupChatMember, NotificationPreference, TopicSetting
from server.src.services.preference_resolver import (
    ConversationRef,
    NotificationPreferenceResolver,
)
from server.src.services.presence_registry import ContextKind


@pytest.fixture
def resolver(test_db_session, presence):
    return NotificationPreferenceResolver(test_db_session, presence)


class TestSelfCheck:

    def test_actor_is_always_suppressed(self, resolver):
        """Nobody is notified about their own action."""
        assert resolver.suppression_reason(
            "alice", "dm", ConversationRef(ContextKind.DM, "alice"), actor_id="alice"
        ) == "self"

    def test_self_check_applies_without_conversation(self, resolver):
        assert resolver.should_suppress("alice", "group", None, actor_id="alice") is True


class TestPresence:

    def test_viewer_is_suppressed(self, resolver, presence):
        presence.enter_view("dm", "bob", "alice")
        conversation = ConversationRef(ContextKind.DM, "bob")
        assert resolver.suppression_reason("alice", "dm", conversation, actor_id="bob") == "viewing"

    def test_presence_checked_before_store(self, presence):
        """A live viewer is suppressed without touching the database."""
        db = MagicMock()
        resolver = NotificationPreferenceResolver(db, presence)
        presence.enter_view("topic", "t1", "alice")

        assert resolver.should_suppress("alice", "topic", ConversationRef(ContextKind.TOPIC, "t1")) is True
        db.query.assert_not_called()

    def test_presence_check_can_be_skipped(self, resolver, presence):
        presence.enter_view("group", "g1", "alice")
        conversation = ConversationRef(ContextKind.GROUP, "g1")
        assert resolver.should_suppress("alice", "group", conversation, check_presence=False) is False


class TestMute:

    def test_muted_dm_peer(self, resolver, test_db_session):
        test_db_session.add(DmSetting(user_id="alice", other_user_id="bob", muted=True))
        test_db_session.commit()
        conversation = ConversationRef(ContextKind.DM, "bob")
        assert resolver.suppression_reason("alice", "dm", conversation, actor_id="bob") == "muted"

    def test_dm_notifications_disabled_counts_as_muted(self, resolver, test_db_session):
        test_db_session.add(DmSetting(user_id="alice", other_user_id="bob", notifications_enabled=False))
        test_db_session.commit()
        assert resolver.should_suppress("alice", "dm", ConversationRef(ContextKind.DM, "bob")) is True

    def test_dm_mute_is_per_peer(self, resolver, test_db_session):
        test_db_session.add(DmSetting(user_id="alice", other_user_id="bob", muted=True))
        test_db_session.commit()
        assert resolver.should_suppress("alice", "dm", ConversationRef(ContextKind.DM, "carol")) is False

    def test_muted_topic(self, resolver, test_db_session):
        test_db_session.add(TopicSetting(user_id="alice", topic_id="t1", muted=True))
        test_db_session.commit()
        assert resolver.suppression_reason(
            "alice", "topic", ConversationRef(ContextKind.TOPIC, "t1")
        ) == "muted"

    def test_muted_group_member(self, resolver, test_db_session):
        test_db_session.add(GroupChatMember(group_id="g1", user_id="alice", muted=True))
        test_db_session.commit()
        assert resolver.suppression_reason(
            "alice", "group", ConversationRef(ContextKind.GROUP, "g1")
        ) == "muted"

    def test_mute_bypassed_when_not_checked(self, resolver, test_db_session):
        """Mentions pass check_mute=False and still get through a muted topic."""
        test_db_session.add(TopicSetting(user_id="alice", topic_id="t1", muted=True))
        test_db_session.commit()
        assert resolver.should_suppress(
            "alice", "mention", ConversationRef(ContextKind.TOPIC, "t1"), check_mute=False
        ) is False

    def test_missing_mute_row_allows(self, resolver):
        assert resolver.should_suppress("alice", "dm", ConversationRef(ContextKind.DM, "bob")) is False


class TestCategory:

    def test_missing_preferences_row_allows(self, resolver):
        assert resolver.is_category_enabled("alice", "dm") is True

    def test_disabled_category_suppresses(self, resolver, test_db_session):
        test_db_session.add(NotificationPreference(user_id="alice", dm_notifications=False))
        test_db_session.commit()
        assert resolver.suppression_reason(
            "alice", "dm", ConversationRef(ContextKind.DM, "bob")
        ) == "category_disabled"

    def test_null_column_allows(self, resolver, test_db_session):
        test_db_session.add(NotificationPreference(user_id="alice", topic_notifications=None))
        test_db_session.commit()
        assert resolver.is_category_enabled("alice", "topic") is True

    def test_other_categories_unaffected(self, resolver, test_db_session):
        test_db_session.add(NotificationPreference(user_id="alice", dm_notifications=False))
        test_db_session.commit()
        assert resolver.is_category_enabled("alice", "group") is True

    def test_mention_and_reminder_have_no_toggle(self, resolver, test_db_session):
        test_db_session.add(NotificationPreference(
            user_id="alice",
            dm_notifications=False,
            connection_notifications=False,
            group_notifications=False,
            topic_notifications=False,
        ))
        test_db_session.commit()
        assert resolver.is_category_enabled("alice", "mention") is True
        assert resolver.is_category_enabled("alice", "reminder") is True

    def test_unknown_category_raises(self, resolver):
        with pytest.raises(ValueError):
            resolver.is_category_enabled("alice", "marketing")


class TestOrder:

    def test_presence_wins_over_mute(self, resolver, presence, test_db_session):
        test_db_session.add(DmSetting(user_id="alice", other_user_id="bob", muted=True))
        test_db_session.commit()
        presence.enter_view("dm", "bob", "alice")
        assert resolver.suppression_reason(
            "alice", "dm", ConversationRef(ContextKind.DM, "bob")
        ) == "viewing"

    def test_mute_wins_over_category(self, resolver, test_db_session):
        test_db_session.add(DmSetting(user_id="alice", other_user_id="bob", muted=True))
        test_db_session.add(NotificationPreference(user_id="alice", dm_notifications=False))
        test_db_session.commit()
        assert resolver.suppression_reason(
            "alice", "dm", ConversationRef(ContextKind.DM, "bob")
        ) == "muted"
