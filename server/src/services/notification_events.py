"""
Notification events: the value types handed from trigger endpoints and the
reminder scheduler to the NotificationEventRouter.

Each event kind is a frozen dataclass carrying only what is needed to render
a payload and resolve an audience. ``NotificationEvent`` is the closed union
of all kinds; the router keeps one handler per member.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class DirectMessageEvent:
    receiver_id: str
    sender_id: str
    sender_name: str
    message_preview: str = "New message"


@dataclass(frozen=True)
class ConnectionRequestEvent:
    receiver_id: str
    sender_id: str
    sender_name: str


@dataclass(frozen=True)
class ConnectionAcceptedEvent:
    requester_id: str
    accepter_id: str
    accepter_name: str


@dataclass(frozen=True)
class TopicMessageEvent:
    topic_id: str
    topic_name: str
    sender_id: str
    sender_name: str
    message_preview: str = "New message"


@dataclass(frozen=True)
class MentionEvent:
    """
    An @mention in a topic or a group.

    Exactly one of topic_id / group_id is set; context_name is the topic
    or group name shown in the title.
    """
    sender_id: str
    sender_name: str
    context_name: str
    mentioned_names: Tuple[str, ...] = field(default_factory=tuple)
    message_preview: str = "mentioned you"
    topic_id: Optional[str] = None
    group_id: Optional[str] = None


@dataclass(frozen=True)
class ReactionEvent:
    receiver_id: str
    sender_id: str
    sender_name: str
    emoji: str
    message_id: Optional[str] = None


@dataclass(frozen=True)
class GroupInviteEvent:
    receiver_id: str
    sender_id: str
    sender_name: str
    group_id: str
    group_name: str


@dataclass(frozen=True)
class GroupMessageEvent:
    group_id: str
    group_name: str
    sender_id: str
    sender_name: str
    message_preview: str = "New message"


@dataclass(frozen=True)
class GroupRenamedEvent:
    group_id: str
    old_name: str
    new_name: str
    actor_id: str
    actor_name: str


@dataclass(frozen=True)
class GroupMemberJoinedEvent:
    group_id: str
    group_name: str
    member_id: str
    member_name: str


@dataclass(frozen=True)
class GroupAdminTransferEvent:
    receiver_id: str
    sender_id: str
    sender_name: str
    group_id: str
    group_name: str


@dataclass(frozen=True)
class ProfileReminderEvent:
    user_id: str


@dataclass(frozen=True)
class PendingConnectionsReminderEvent:
    user_id: str
    pending_count: int


@dataclass(frozen=True)
class UnreadDigestEvent:
    user_id: str
    unread_dms: int = 0
    unread_group_messages: int = 0
    unread_topic_messages: int = 0

    @property
    def total(self) -> int:
        return self.unread_dms + self.unread_group_messages + self.unread_topic_messages


NotificationEvent = Union[
    DirectMessageEvent,
    ConnectionRequestEvent,
    ConnectionAcceptedEvent,
    TopicMessageEvent,
    MentionEvent,
    ReactionEvent,
    GroupInviteEvent,
    GroupMessageEvent,
    GroupRenamedEvent,
    GroupMemberJoinedEvent,
    GroupAdminTransferEvent,
    ProfileReminderEvent,
    PendingConnectionsReminderEvent,
    UnreadDigestEvent,
]
