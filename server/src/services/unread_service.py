"""
Unread message counting for digest reminders.

Counts what a user has not read yet, leaving out their own messages and
anything in a conversation they muted:
- Direct messages: read_at unset and not deleted
- Group messages: newer than the member's last_read_at (joined_at when the
  member never opened the group) in accepted, non-muted groups
- Topic messages: newer than the topic's read watermark (the follow date
  when the topic was never opened) in followed, non-muted topics
"""

from dataclasses import dataclass
from typing import Set

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from server.src.models.chat_settings import DmSetting, TopicSetting
from server.src.models.connection import Connection, ConnectionStatus
from server.src.models.group_chat import GroupChatMember, GroupMemberStatus, GroupMessage
from server.src.models.private_message import PrivateMessage
from server.src.models.topic import TopicFollow, TopicMessage, TopicReadStatus


@dataclass(frozen=True)
class UnreadCounts:
    dms: int = 0
    group_messages: int = 0
    topic_messages: int = 0

    @property
    def total(self) -> int:
        return self.dms + self.group_messages + self.topic_messages


class UnreadService:
    """Read-only queries over the chat tables."""

    def __init__(self, db: Session):
        self.db = db

    def count_unread(self, user_id: str) -> UnreadCounts:
        return UnreadCounts(
            dms=self.count_unread_dms(user_id),
            group_messages=self.count_unread_group_messages(user_id),
            topic_messages=self.count_unread_topic_messages(user_id),
        )

    def count_unread_dms(self, user_id: str) -> int:
        muted_peers = self._muted_dm_peers(user_id)

        query = (
            self.db.query(func.count(PrivateMessage.id))
            .filter(
                PrivateMessage.receiver_id == user_id,
                PrivateMessage.read_at.is_(None),
                PrivateMessage.deleted_at.is_(None),
                PrivateMessage.sender_id.isnot(None),
                PrivateMessage.sender_id != user_id,
            )
        )
        if muted_peers:
            query = query.filter(PrivateMessage.sender_id.notin_(muted_peers))
        return query.scalar() or 0

    def count_unread_group_messages(self, user_id: str) -> int:
        memberships = (
            self.db.query(GroupChatMember)
            .filter(
                GroupChatMember.user_id == user_id,
                GroupChatMember.status == GroupMemberStatus.ACCEPTED,
            )
            .all()
        )

        total = 0
        for membership in memberships:
            if membership.is_silenced:
                continue
            watermark = membership.last_read_at or membership.joined_at
            total += (
                self.db.query(func.count(GroupMessage.id))
                .filter(
                    GroupMessage.group_id == membership.group_id,
                    GroupMessage.deleted_at.is_(None),
                    GroupMessage.created_at > watermark,
                    or_(GroupMessage.user_id.is_(None), GroupMessage.user_id != user_id),
                )
                .scalar()
            ) or 0
        return total

    def count_unread_topic_messages(self, user_id: str) -> int:
        follows = self.db.query(TopicFollow).filter(TopicFollow.user_id == user_id).all()
        if not follows:
            return 0

        muted_topics = self._muted_topics(user_id)
        watermarks = {
            status.topic_id: status.last_read_at
            for status in self.db.query(TopicReadStatus)
            .filter(TopicReadStatus.user_id == user_id)
            .all()
        }

        total = 0
        for follow in follows:
            if follow.topic_id in muted_topics:
                continue
            watermark = watermarks.get(follow.topic_id, follow.created_at)
            total += (
                self.db.query(func.count(TopicMessage.id))
                .filter(
                    TopicMessage.topic_id == follow.topic_id,
                    TopicMessage.deleted_at.is_(None),
                    TopicMessage.created_at > watermark,
                    or_(TopicMessage.user_id.is_(None), TopicMessage.user_id != user_id),
                )
                .scalar()
            ) or 0
        return total

    def count_pending_connections(self, user_id: str) -> int:
        """Incoming connection requests still awaiting an answer."""
        return (
            self.db.query(func.count(Connection.id))
            .filter(
                Connection.following_id == user_id,
                Connection.status == ConnectionStatus.PENDING,
            )
            .scalar()
        ) or 0

    def _muted_dm_peers(self, user_id: str) -> Set[str]:
        rows = (
            self.db.query(DmSetting.other_user_id)
            .filter(
                DmSetting.user_id == user_id,
                or_(DmSetting.muted.is_(True), DmSetting.notifications_enabled.is_(False)),
            )
            .all()
        )
        return {row[0] for row in rows}

    def _muted_topics(self, user_id: str) -> Set[str]:
        rows = (
            self.db.query(TopicSetting.topic_id)
            .filter(
                TopicSetting.user_id == user_id,
                or_(TopicSetting.muted.is_(True), TopicSetting.notifications_enabled.is_(False)),
            )
            .all()
        )
        return {row[0] for row in rows}
