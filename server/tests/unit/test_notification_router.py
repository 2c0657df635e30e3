"""
Unit tests for NotificationEventRouter.

Most tests use a mocked dispatcher to observe who would be pushed; the
end-to-end cases go through the real dispatcher with ``_send_push`` mocked.
"""

import typing
from unittest.mock import AsyncMock, MagicMock

import pytest

from server.src.models import (
    DmSetting,
    GroupChatMember,
    GroupMemberStatus,
    NotificationPreference,
    TopicSetting,
)
from server.src.services.notification_events import (
    ConnectionAcceptedEvent,
    ConnectionRequestEvent,
    DirectMessageEvent,
    GroupAdminTransferEvent,
    GroupInviteEvent,
    GroupMemberJoinedEvent,
    GroupMessageEvent,
    GroupRenamedEvent,
    MentionEvent,
    NotificationEvent,
    ReactionEvent,
    TopicMessageEvent,
)
from server.src.services.notification_router import NotificationEventRouter
from server.src.services.push_dispatcher import (
    DispatchResult,
    PushGoneError,
    PushSubscriptionFanoutDispatcher,
)


@pytest.fixture
def mock_dispatcher():
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=DispatchResult(sent_count=1))
    return dispatcher


@pytest.fixture
def mock_router(test_db_session, presence, mock_dispatcher):
    return NotificationEventRouter(test_db_session, presence, mock_dispatcher)


def dispatched_to(mock_dispatcher):
    return sorted(call.args[0] for call in mock_dispatcher.dispatch.call_args_list)


class TestHandlerTable:

    def test_every_event_kind_has_a_handler(self, mock_router):
        assert set(mock_router.handled_event_types) == set(typing.get_args(NotificationEvent))

    @pytest.mark.asyncio
    async def test_unknown_event_rejected(self, mock_router):
        with pytest.raises(TypeError):
            await mock_router.route({"type": "dm"})


class TestDirectMessage:

    @pytest.mark.asyncio
    async def test_delivers_to_receiver(self, mock_router, mock_dispatcher):
        result = await mock_router.notify_direct_message("alice", "bob", "Bob Smith", "hey")

        assert dispatched_to(mock_dispatcher) == ["alice"]
        payload = mock_dispatcher.dispatch.call_args.args[1]
        assert payload["tag"] == "dm-bob"
        assert result.recipients == 1
        assert result.sent == 1

    @pytest.mark.asyncio
    async def test_suppressed_while_receiver_views_thread(self, mock_router, mock_dispatcher, presence):
        presence.enter_view("dm", "bob", "alice")

        result = await mock_router.notify_direct_message("alice", "bob", "Bob Smith", "hey")

        mock_dispatcher.dispatch.assert_not_called()
        assert result.suppressed == 1

    @pytest.mark.asyncio
    async def test_delivered_after_receiver_leaves(self, mock_router, mock_dispatcher, presence):
        presence.enter_view("dm", "bob", "alice")
        presence.leave_view("dm", "bob", "alice")

        await mock_router.notify_direct_message("alice", "bob", "Bob Smith", "hey")

        assert dispatched_to(mock_dispatcher) == ["alice"]

    @pytest.mark.asyncio
    async def test_muted_peer_suppressed(self, mock_router, mock_dispatcher, test_db_session):
        test_db_session.add(DmSetting(user_id="alice", other_user_id="bob", muted=True))
        test_db_session.commit()

        await mock_router.notify_direct_message("alice", "bob", "Bob Smith", "hey")

        mock_dispatcher.dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_dm_category_disabled(self, mock_router, mock_dispatcher, test_db_session):
        test_db_session.add(NotificationPreference(user_id="alice", dm_notifications=False))
        test_db_session.commit()

        await mock_router.notify_direct_message("alice", "bob", "Bob Smith", "hey")

        mock_dispatcher.dispatch.assert_not_called()


class TestSelfExclusion:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("event", [
        DirectMessageEvent("alice", "alice", "Alice Jones", "note to self"),
        ConnectionRequestEvent("alice", "alice", "Alice Jones"),
        ConnectionAcceptedEvent("alice", "alice", "Alice Jones"),
        ReactionEvent("alice", "alice", "Alice Jones", "🔥"),
        GroupInviteEvent("alice", "alice", "Alice Jones", "g1", "Makers"),
        GroupAdminTransferEvent("alice", "alice", "Alice Jones", "g1", "Makers"),
    ])
    async def test_actor_never_notified(self, mock_router, mock_dispatcher, event):
        result = await mock_router.route(event)

        mock_dispatcher.dispatch.assert_not_called()
        assert result.recipients == 0
        assert result.suppressed == 1

    @pytest.mark.asyncio
    async def test_group_sender_excluded(self, mock_router, mock_dispatcher, create_group):
        group = create_group("carol", member_ids=["alice", "bob"])

        await mock_router.route(GroupMessageEvent(group.id, "Makers", "carol", "Carol", "hi"))

        assert dispatched_to(mock_dispatcher) == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_renamer_and_joiner_excluded(self, mock_router, mock_dispatcher, create_group):
        group = create_group("carol", member_ids=["alice"])

        await mock_router.route(GroupRenamedEvent(group.id, "Makers", "Builders", "alice", "Alice"))
        assert dispatched_to(mock_dispatcher) == ["carol"]

        mock_dispatcher.dispatch.reset_mock()
        await mock_router.route(GroupMemberJoinedEvent(group.id, "Makers", "alice", "Alice"))
        assert dispatched_to(mock_dispatcher) == ["carol"]


class TestTopicMessage:

    @pytest.mark.asyncio
    async def test_followers_minus_sender_minus_muted(
        self, mock_router, mock_dispatcher, create_topic, test_db_session
    ):
        topic = create_topic(follower_ids=["alice", "bob", "carol"])
        test_db_session.add(TopicSetting(user_id="bob", topic_id=topic.id, muted=True))
        test_db_session.commit()

        result = await mock_router.notify_topic_message(topic.id, "general", "carol", "Carol", "hello")

        assert dispatched_to(mock_dispatcher) == ["alice"]
        assert result.recipients == 2
        assert result.suppressed == 2

    @pytest.mark.asyncio
    async def test_viewer_of_topic_suppressed(self, mock_router, mock_dispatcher, create_topic, presence):
        topic = create_topic(follower_ids=["alice", "bob"])
        presence.enter_view("topic", topic.id, "alice")

        await mock_router.notify_topic_message(topic.id, "general", "carol", "Carol", "hello")

        assert dispatched_to(mock_dispatcher) == ["bob"]


class TestGroupMessage:

    @pytest.mark.asyncio
    async def test_only_accepted_unmuted_members(
        self, mock_router, mock_dispatcher, create_group, test_db_session
    ):
        group = create_group("carol", member_ids=["alice", "bob"])
        test_db_session.add(GroupChatMember(
            group_id=group.id, user_id="dave", status=GroupMemberStatus.PENDING,
        ))
        member = test_db_session.query(GroupChatMember).filter(
            GroupChatMember.group_id == group.id, GroupChatMember.user_id == "bob"
        ).one()
        member.notifications_enabled = False
        test_db_session.commit()

        await mock_router.notify_group_message(group.id, "Makers", "carol", "Carol", "hi all")

        assert dispatched_to(mock_dispatcher) == ["alice"]

    @pytest.mark.asyncio
    async def test_group_invite_ignores_presence(self, mock_router, mock_dispatcher, presence):
        presence.enter_view("group", "g1", "alice")

        await mock_router.notify_group_invite("alice", "bob", "Bob", "g1", "Makers")

        assert dispatched_to(mock_dispatcher) == ["alice"]

    @pytest.mark.asyncio
    async def test_group_invite_respects_category(self, mock_router, mock_dispatcher, test_db_session):
        test_db_session.add(NotificationPreference(user_id="alice", group_notifications=False))
        test_db_session.commit()

        await mock_router.notify_group_invite("alice", "bob", "Bob", "g1", "Makers")

        mock_dispatcher.dispatch.assert_not_called()


class TestMention:

    @pytest.mark.asyncio
    async def test_mention_bypasses_topic_mute(
        self, mock_router, mock_dispatcher, create_profile, create_topic, test_db_session
    ):
        alice = create_profile(name="Alice Jones")
        topic = create_topic()
        test_db_session.add(TopicSetting(user_id=alice.id, topic_id=topic.id, muted=True))
        test_db_session.commit()

        await mock_router.notify_mention(
            "bob", "Bob Smith", "general", ["Alice Jones"], "hey @Alice Jones", topic_id=topic.id
        )

        assert dispatched_to(mock_dispatcher) == [alice.id]

    @pytest.mark.asyncio
    async def test_all_name_matches_notified(self, mock_router, mock_dispatcher, create_profile):
        first = create_profile(name="Sam Lee")
        second = create_profile(name="Sam Lee")
        create_profile(name="Someone Else")

        await mock_router.notify_mention("bob", "Bob Smith", "Makers", ["Sam Lee"], group_id="g1")

        assert dispatched_to(mock_dispatcher) == sorted([first.id, second.id])

    @pytest.mark.asyncio
    async def test_self_mention_ignored(self, mock_router, mock_dispatcher, create_profile):
        bob = create_profile(name="Bob Smith")

        await mock_router.notify_mention(bob.id, "Bob Smith", "Makers", ["Bob Smith"], group_id="g1")

        mock_dispatcher.dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_viewer_of_group_not_mentioned(self, mock_router, mock_dispatcher, create_profile, presence):
        alice = create_profile(name="Alice Jones")
        presence.enter_view("group", "g1", alice.id)

        await mock_router.notify_mention("bob", "Bob Smith", "Makers", ["Alice Jones"], group_id="g1")

        mock_dispatcher.dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_mention_needs_context(self, mock_router):
        with pytest.raises(ValueError):
            await mock_router.route(MentionEvent("bob", "Bob Smith", "?", ("Alice Jones",)))


class TestErrorIsolation:

    @pytest.mark.asyncio
    async def test_one_member_failure_does_not_stop_others(
        self, mock_router, mock_dispatcher, create_group
    ):
        group = create_group("carol", member_ids=["alice", "bob"])

        async def dispatch(user_id, payload):
            if user_id == "bob":
                raise RuntimeError("store unavailable")
            return DispatchResult(sent_count=1)

        mock_dispatcher.dispatch.side_effect = dispatch

        result = await mock_router.notify_group_message(group.id, "Makers", "carol", "Carol", "hi")

        assert result.sent == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("bob:")


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_connection_request_reaches_devices(
        self, router, create_profile, create_subscription, mocker
    ):
        alice = create_profile(name="Alice Jones")
        create_subscription(alice.id)
        create_subscription(alice.id)
        send = mocker.patch.object(PushSubscriptionFanoutDispatcher, "_send_push")

        result = await router.notify_connection_request(alice.id, "bob", "Bob Smith")

        assert result.sent == 2
        assert send.call_count == 2
        assert send.call_args.args[2] == "high"

    @pytest.mark.asyncio
    async def test_connection_request_suppressed_on_requests_screen(
        self, router, presence, create_profile, create_subscription, mocker
    ):
        alice = create_profile(name="Alice Jones")
        create_subscription(alice.id)
        presence.enter_view("connections", "requests", alice.id)
        send = mocker.patch.object(PushSubscriptionFanoutDispatcher, "_send_push")

        result = await router.notify_connection_request(alice.id, "bob", "Bob Smith")

        send.assert_not_called()
        assert result.suppressed == 1

    @pytest.mark.asyncio
    async def test_expired_device_reported_apart_from_errors(
        self, router, create_profile, create_subscription, mocker
    ):
        alice = create_profile(name="Alice Jones")
        gone = create_subscription(alice.id)
        create_subscription(alice.id)

        def fake_send(subscription_info, payload_json, urgency):
            if subscription_info["endpoint"] == gone.endpoint:
                raise PushGoneError(gone.endpoint)

        mocker.patch.object(PushSubscriptionFanoutDispatcher, "_send_push", side_effect=fake_send)

        result = await router.notify_connection_request(alice.id, "bob", "Bob Smith")

        assert result.sent == 1
        assert result.errors == []
        assert result.removed == [f"{alice.id}: Removed expired subscription: {gone.endpoint}"]
