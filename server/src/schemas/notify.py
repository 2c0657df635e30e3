"""
Pydantic schemas for the notification trigger endpoints.

Each request maps one-to-one onto a NotificationEvent via ``to_event``.
"""

from typing import List, Optional

from pydantic import Field, model_validator

from server.src.schemas.notifications import CamelModel
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
    ReactionEvent,
    TopicMessageEvent,
)


class DirectMessageNotify(CamelModel):
    receiver_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    sender_name: str = Field(..., min_length=1)
    message_preview: Optional[str] = None

    def to_event(self) -> DirectMessageEvent:
        return DirectMessageEvent(
            receiver_id=self.receiver_id,
            sender_id=self.sender_id,
            sender_name=self.sender_name,
            message_preview=self.message_preview or "New message",
        )


class ConnectionRequestNotify(CamelModel):
    receiver_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    sender_name: str = Field(..., min_length=1)

    def to_event(self) -> ConnectionRequestEvent:
        return ConnectionRequestEvent(self.receiver_id, self.sender_id, self.sender_name)


class ConnectionAcceptedNotify(CamelModel):
    """The receiver is the user who originally sent the request."""

    receiver_id: str = Field(..., min_length=1)
    accepter_id: str = Field(..., min_length=1)
    accepter_name: str = Field(..., min_length=1)

    def to_event(self) -> ConnectionAcceptedEvent:
        return ConnectionAcceptedEvent(
            requester_id=self.receiver_id,
            accepter_id=self.accepter_id,
            accepter_name=self.accepter_name,
        )


class TopicMessageNotify(CamelModel):
    topic_id: str = Field(..., min_length=1)
    topic_name: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    sender_name: str = Field(..., min_length=1)
    message_preview: Optional[str] = None

    def to_event(self) -> TopicMessageEvent:
        return TopicMessageEvent(
            topic_id=self.topic_id,
            topic_name=self.topic_name,
            sender_id=self.sender_id,
            sender_name=self.sender_name,
            message_preview=self.message_preview or "New message",
        )


class MentionNotify(CamelModel):
    """Mentions in a topic (topicId/topicName) or a group (groupId/groupName)."""

    sender_id: str = Field(..., min_length=1)
    sender_name: str = Field(..., min_length=1)
    mentioned_names: List[str] = Field(..., min_length=1)
    message_preview: Optional[str] = None
    topic_id: Optional[str] = None
    topic_name: Optional[str] = None
    group_id: Optional[str] = None
    group_name: Optional[str] = None

    @model_validator(mode="after")
    def validate_single_context(self) -> "MentionNotify":
        if bool(self.topic_id) == bool(self.group_id):
            raise ValueError("Exactly one of topicId or groupId is required")
        return self

    def to_event(self) -> MentionEvent:
        if self.group_id:
            context_name = self.group_name or "a group"
        else:
            context_name = self.topic_name or "a topic"
        return MentionEvent(
            sender_id=self.sender_id,
            sender_name=self.sender_name,
            context_name=context_name,
            mentioned_names=tuple(self.mentioned_names),
            message_preview=self.message_preview or "mentioned you",
            topic_id=self.topic_id,
            group_id=self.group_id,
        )


class ReactionNotify(CamelModel):
    receiver_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    sender_name: str = Field(..., min_length=1)
    emoji: str = Field(..., min_length=1)
    message_id: Optional[str] = None

    def to_event(self) -> ReactionEvent:
        return ReactionEvent(
            receiver_id=self.receiver_id,
            sender_id=self.sender_id,
            sender_name=self.sender_name,
            emoji=self.emoji,
            message_id=self.message_id,
        )


class GroupInviteNotify(CamelModel):
    receiver_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    sender_name: str = Field(..., min_length=1)
    group_id: str = Field(..., min_length=1)
    group_name: str = Field(..., min_length=1)

    def to_event(self) -> GroupInviteEvent:
        return GroupInviteEvent(
            self.receiver_id, self.sender_id, self.sender_name, self.group_id, self.group_name
        )


class GroupMessageNotify(CamelModel):
    group_id: str = Field(..., min_length=1)
    group_name: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    sender_name: str = Field(..., min_length=1)
    message_preview: Optional[str] = None

    def to_event(self) -> GroupMessageEvent:
        return GroupMessageEvent(
            group_id=self.group_id,
            group_name=self.group_name,
            sender_id=self.sender_id,
            sender_name=self.sender_name,
            message_preview=self.message_preview or "New message",
        )


class GroupRenamedNotify(CamelModel):
    group_id: str = Field(..., min_length=1)
    old_name: str
    new_name: str = Field(..., min_length=1)
    actor_id: str = Field(..., min_length=1)
    actor_name: str = Field(..., min_length=1)

    def to_event(self) -> GroupRenamedEvent:
        return GroupRenamedEvent(
            self.group_id, self.old_name, self.new_name, self.actor_id, self.actor_name
        )


class GroupMemberJoinedNotify(CamelModel):
    group_id: str = Field(..., min_length=1)
    group_name: str = Field(..., min_length=1)
    member_id: str = Field(..., min_length=1)
    member_name: str = Field(..., min_length=1)

    def to_event(self) -> GroupMemberJoinedEvent:
        return GroupMemberJoinedEvent(self.group_id, self.group_name, self.member_id, self.member_name)


class GroupAdminTransferNotify(CamelModel):
    receiver_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    sender_name: str = Field(..., min_length=1)
    group_id: str = Field(..., min_length=1)
    group_name: str = Field(..., min_length=1)

    def to_event(self) -> GroupAdminTransferEvent:
        return GroupAdminTransferEvent(
            self.receiver_id, self.sender_id, self.sender_name, self.group_id, self.group_name
        )


class AcceptedResponse(CamelModel):
    """queued is false when the notification queue was full and the event dropped."""

    queued: bool = True
