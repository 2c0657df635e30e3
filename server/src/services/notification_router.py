"""
Notification event router.

Turns a NotificationEvent into pushes:
1. Resolve the audience (receiver, topic followers, group members, mention
   matches, reminder target)
2. Ask the NotificationPreferenceResolver whether each recipient is suppressed
3. Render the payload for the event kind
4. Hand each remaining recipient to the PushSubscriptionFanoutDispatcher

Failures are isolated per recipient: a store or dispatch failure for one
member is recorded in the RouteResult and the others still get their push.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from server.src.models.group_chat import GroupChatMember, GroupMemberStatus
from server.src.models.profile import Profile
from server.src.models.topic import TopicFollow
from server.src.services import notification_payloads as payloads
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
    PendingConnectionsReminderEvent,
    ProfileReminderEvent,
    ReactionEvent,
    TopicMessageEvent,
    UnreadDigestEvent,
)
from server.src.services.preference_resolver import (
    ConversationRef,
    NotificationPreferenceResolver,
)
from server.src.services.presence_registry import ContextKind, ViewerPresenceRegistry
from server.src.services.push_dispatcher import PushSubscriptionFanoutDispatcher
from server.src.utils.logging_config import get_logger


logger = get_logger("services")


DEFAULT_FANOUT_CONCURRENCY = 20

CONNECTION_REQUESTS = ConversationRef(ContextKind.CONNECTIONS, "requests")


@dataclass
class RouteResult:
    """Outcome of routing one event."""
    recipients: int = 0
    suppressed: int = 0
    sent: int = 0
    errors: List[str] = field(default_factory=list)
    # Dead endpoints cleaned up during delivery; informational only
    removed: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Delivery:
    """How one event reaches its audience."""
    audience: List[str]
    payload: Dict[str, Any]
    category: Optional[str]
    conversation: Optional[ConversationRef] = None
    actor_id: Optional[str] = None
    check_presence: bool = True
    check_mute: bool = True


class NotificationEventRouter:
    """
    Routes notification events to push deliveries.

    One handler per NotificationEvent member; ``route`` rejects anything else
    with TypeError.
    """

    def __init__(
        self,
        db: Session,
        presence: ViewerPresenceRegistry,
        dispatcher: PushSubscriptionFanoutDispatcher,
        fanout_concurrency: int = DEFAULT_FANOUT_CONCURRENCY,
    ):
        self.db = db
        self.presence = presence
        self.dispatcher = dispatcher
        self.resolver = NotificationPreferenceResolver(db, presence)
        self.fanout_concurrency = fanout_concurrency
        self._handlers: Dict[type, Callable[[Any], _Delivery]] = {
            DirectMessageEvent: self._direct_message,
            ConnectionRequestEvent: self._connection_request,
            ConnectionAcceptedEvent: self._connection_accepted,
            TopicMessageEvent: self._topic_message,
            MentionEvent: self._mention,
            ReactionEvent: self._reaction,
            GroupInviteEvent: self._group_invite,
            GroupMessageEvent: self._group_message,
            GroupRenamedEvent: self._group_renamed,
            GroupMemberJoinedEvent: self._group_member_joined,
            GroupAdminTransferEvent: self._group_admin_transfer,
            ProfileReminderEvent: self._profile_reminder,
            PendingConnectionsReminderEvent: self._pending_connections,
            UnreadDigestEvent: self._unread_digest,
        }

    @property
    def handled_event_types(self) -> List[type]:
        return list(self._handlers)

    async def route(self, event: NotificationEvent) -> RouteResult:
        """
        Route one event to its audience.

        Args:
            event: Any NotificationEvent member

        Returns:
            RouteResult with audience size, suppressed count, devices reached
            and per-recipient errors

        Raises:
            TypeError: If the event is not a NotificationEvent member
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported notification event: {type(event).__name__}")

        delivery = handler(event)
        result = await self._deliver(delivery)

        logger.info(
            f"Routed {type(event).__name__}",
            extra={
                "event_type": type(event).__name__,
                "tag": delivery.payload.get("tag"),
                "recipients": result.recipients,
                "suppressed": result.suppressed,
                "sent": result.sent,
                "errors": len(result.errors),
                "removed": len(result.removed),
            },
        )
        return result

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def notify_direct_message(
        self, receiver_id: str, sender_id: str, sender_name: str, message_preview: str = "New message"
    ) -> RouteResult:
        return await self.route(DirectMessageEvent(receiver_id, sender_id, sender_name, message_preview))

    async def notify_connection_request(
        self, receiver_id: str, sender_id: str, sender_name: str
    ) -> RouteResult:
        return await self.route(ConnectionRequestEvent(receiver_id, sender_id, sender_name))

    async def notify_connection_accepted(
        self, requester_id: str, accepter_id: str, accepter_name: str
    ) -> RouteResult:
        return await self.route(ConnectionAcceptedEvent(requester_id, accepter_id, accepter_name))

    async def notify_topic_message(
        self, topic_id: str, topic_name: str, sender_id: str, sender_name: str, message_preview: str
    ) -> RouteResult:
        return await self.route(
            TopicMessageEvent(topic_id, topic_name, sender_id, sender_name, message_preview)
        )

    async def notify_mention(
        self,
        sender_id: str,
        sender_name: str,
        context_name: str,
        mentioned_names: Iterable[str],
        message_preview: str = "mentioned you",
        topic_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> RouteResult:
        return await self.route(
            MentionEvent(
                sender_id=sender_id,
                sender_name=sender_name,
                context_name=context_name,
                mentioned_names=tuple(mentioned_names),
                message_preview=message_preview,
                topic_id=topic_id,
                group_id=group_id,
            )
        )

    async def notify_reaction(
        self,
        receiver_id: str,
        sender_id: str,
        sender_name: str,
        emoji: str,
        message_id: Optional[str] = None,
    ) -> RouteResult:
        return await self.route(ReactionEvent(receiver_id, sender_id, sender_name, emoji, message_id))

    async def notify_group_invite(
        self, receiver_id: str, sender_id: str, sender_name: str, group_id: str, group_name: str
    ) -> RouteResult:
        return await self.route(
            GroupInviteEvent(receiver_id, sender_id, sender_name, group_id, group_name)
        )

    async def notify_group_message(
        self, group_id: str, group_name: str, sender_id: str, sender_name: str, message_preview: str
    ) -> RouteResult:
        return await self.route(
            GroupMessageEvent(group_id, group_name, sender_id, sender_name, message_preview)
        )

    async def notify_group_renamed(
        self, group_id: str, old_name: str, new_name: str, actor_id: str, actor_name: str
    ) -> RouteResult:
        return await self.route(GroupRenamedEvent(group_id, old_name, new_name, actor_id, actor_name))

    async def notify_group_member_joined(
        self, group_id: str, group_name: str, member_id: str, member_name: str
    ) -> RouteResult:
        return await self.route(GroupMemberJoinedEvent(group_id, group_name, member_id, member_name))

    async def notify_group_admin_transfer(
        self, receiver_id: str, sender_id: str, sender_name: str, group_id: str, group_name: str
    ) -> RouteResult:
        return await self.route(
            GroupAdminTransferEvent(receiver_id, sender_id, sender_name, group_id, group_name)
        )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _direct_message(self, event: DirectMessageEvent) -> _Delivery:
        return _Delivery(
            audience=[event.receiver_id],
            payload=payloads.render_direct_message(event),
            category="dm",
            conversation=ConversationRef(ContextKind.DM, event.sender_id),
            actor_id=event.sender_id,
        )

    def _connection_request(self, event: ConnectionRequestEvent) -> _Delivery:
        return _Delivery(
            audience=[event.receiver_id],
            payload=payloads.render_connection_request(event),
            category="connection",
            conversation=CONNECTION_REQUESTS,
            actor_id=event.sender_id,
        )

    def _connection_accepted(self, event: ConnectionAcceptedEvent) -> _Delivery:
        return _Delivery(
            audience=[event.requester_id],
            payload=payloads.render_connection_accepted(event),
            category="connection",
            conversation=ConversationRef(ContextKind.PROFILE, event.accepter_id),
            actor_id=event.accepter_id,
        )

    def _topic_message(self, event: TopicMessageEvent) -> _Delivery:
        return _Delivery(
            audience=self._topic_followers(event.topic_id),
            payload=payloads.render_topic_message(event),
            category="topic",
            conversation=ConversationRef(ContextKind.TOPIC, event.topic_id),
            actor_id=event.sender_id,
        )

    def _mention(self, event: MentionEvent) -> _Delivery:
        if event.group_id:
            conversation = ConversationRef(ContextKind.GROUP, event.group_id)
        elif event.topic_id:
            conversation = ConversationRef(ContextKind.TOPIC, event.topic_id)
        else:
            raise ValueError("MentionEvent needs a topic_id or a group_id")
        return _Delivery(
            audience=self._profiles_named(event.mentioned_names),
            payload=payloads.render_mention(event),
            category="mention",
            conversation=conversation,
            actor_id=event.sender_id,
            check_mute=False,
        )

    def _reaction(self, event: ReactionEvent) -> _Delivery:
        return _Delivery(
            audience=[event.receiver_id],
            payload=payloads.render_reaction(event),
            category="dm",
            conversation=ConversationRef(ContextKind.DM, event.sender_id),
            actor_id=event.sender_id,
        )

    def _group_invite(self, event: GroupInviteEvent) -> _Delivery:
        return _Delivery(
            audience=[event.receiver_id],
            payload=payloads.render_group_invite(event),
            category="group",
            actor_id=event.sender_id,
        )

    def _group_message(self, event: GroupMessageEvent) -> _Delivery:
        return _Delivery(
            audience=self._accepted_members(event.group_id),
            payload=payloads.render_group_message(event),
            category="group",
            conversation=ConversationRef(ContextKind.GROUP, event.group_id),
            actor_id=event.sender_id,
        )

    def _group_renamed(self, event: GroupRenamedEvent) -> _Delivery:
        return _Delivery(
            audience=self._accepted_members(event.group_id),
            payload=payloads.render_group_renamed(event),
            category="group",
            conversation=ConversationRef(ContextKind.GROUP, event.group_id),
            actor_id=event.actor_id,
        )

    def _group_member_joined(self, event: GroupMemberJoinedEvent) -> _Delivery:
        return _Delivery(
            audience=self._accepted_members(event.group_id),
            payload=payloads.render_group_member_joined(event),
            category="group",
            conversation=ConversationRef(ContextKind.GROUP, event.group_id),
            actor_id=event.member_id,
        )

    def _group_admin_transfer(self, event: GroupAdminTransferEvent) -> _Delivery:
        return _Delivery(
            audience=[event.receiver_id],
            payload=payloads.render_group_admin_transfer(event),
            category="group",
            actor_id=event.sender_id,
        )

    def _profile_reminder(self, event: ProfileReminderEvent) -> _Delivery:
        return _Delivery(
            audience=[event.user_id],
            payload=payloads.render_profile_reminder(event),
            category="reminder",
        )

    def _pending_connections(self, event: PendingConnectionsReminderEvent) -> _Delivery:
        return _Delivery(
            audience=[event.user_id],
            payload=payloads.render_pending_connections(event),
            category="connection",
        )

    def _unread_digest(self, event: UnreadDigestEvent) -> _Delivery:
        return _Delivery(
            audience=[event.user_id],
            payload=payloads.render_unread_digest(event),
            category="reminder",
        )

    # ------------------------------------------------------------------
    # Audience queries
    # ------------------------------------------------------------------

    def _topic_followers(self, topic_id: str) -> List[str]:
        rows = (
            self.db.query(TopicFollow.user_id)
            .filter(TopicFollow.topic_id == topic_id)
            .all()
        )
        return [row[0] for row in rows]

    def _accepted_members(self, group_id: str) -> List[str]:
        rows = (
            self.db.query(GroupChatMember.user_id)
            .filter(
                GroupChatMember.group_id == group_id,
                GroupChatMember.status == GroupMemberStatus.ACCEPTED,
            )
            .all()
        )
        return [row[0] for row in rows]

    def _profiles_named(self, names: Iterable[str]) -> List[str]:
        # Display names are not unique; every match is notified
        names = [name for name in names if name]
        if not names:
            return []
        rows = self.db.query(Profile.id).filter(Profile.name.in_(names)).all()
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def _deliver(self, delivery: _Delivery) -> RouteResult:
        result = RouteResult()
        audience = list(dict.fromkeys(delivery.audience))
        if delivery.actor_id is not None:
            result.suppressed += audience.count(delivery.actor_id)
            audience = [user_id for user_id in audience if user_id != delivery.actor_id]
        result.recipients = len(audience)

        semaphore = asyncio.Semaphore(self.fanout_concurrency)

        async def deliver_one(user_id: str) -> None:
            async with semaphore:
                await self._deliver_to(user_id, delivery, result)

        await asyncio.gather(*(deliver_one(user_id) for user_id in audience))
        return result

    async def _deliver_to(self, user_id: str, delivery: _Delivery, result: RouteResult) -> None:
        try:
            reason = self.resolver.suppression_reason(
                user_id,
                delivery.category,
                delivery.conversation,
                actor_id=delivery.actor_id,
                check_presence=delivery.check_presence,
                check_mute=delivery.check_mute,
            )
            if reason is not None:
                result.suppressed += 1
                logger.debug(
                    "Notification suppressed",
                    extra={"user_id": user_id, "reason": reason, "tag": delivery.payload.get("tag")},
                )
                return

            dispatched = await self.dispatcher.dispatch(user_id, delivery.payload)
            result.sent += dispatched.sent_count
            for error in dispatched.errors:
                target = result.removed if error.removed else result.errors
                target.append(f"{user_id}: {error}")
        except Exception as e:
            self.db.rollback()
            result.errors.append(f"{user_id}: {e}")
            logger.error(
                f"Failed to notify recipient: {e}",
                extra={"user_id": user_id, "tag": delivery.payload.get("tag")},
                exc_info=True,
            )


def build_router(db: Session, presence: ViewerPresenceRegistry, settings) -> NotificationEventRouter:
    """
    Wire a router and its dispatcher from application settings.

    Args:
        db: SQLAlchemy session owned by the caller
        presence: Shared presence registry
        settings: AppSettings instance

    Returns:
        Ready-to-use NotificationEventRouter
    """
    if not settings.vapid_configured:
        logger.warning("VAPID keys not configured; push delivery will fail")
    dispatcher = PushSubscriptionFanoutDispatcher(
        db,
        vapid_private_key=settings.vapid_private_key,
        vapid_claims=settings.vapid_claims,
        ttl=settings.push_ttl_seconds,
        timeout=settings.push_timeout_seconds,
        max_concurrency=settings.fanout_concurrency,
    )
    return NotificationEventRouter(
        db,
        presence,
        dispatcher,
        fanout_concurrency=settings.fanout_concurrency,
    )
