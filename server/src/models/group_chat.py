"""
Group chat models.

Group membership carries the group-level notification flags: ``muted``
(stops badges and pushes) and ``notifications_enabled`` (stops pushes).
Only members with status ACCEPTED are part of a group's audience.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from server.src.models import Base, new_id


class GroupMemberStatus(enum.Enum):
    """Invitation lifecycle of a group member."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class GroupMemberRole(enum.Enum):
    """Member role within a group."""
    ADMIN = "admin"
    MEMBER = "member"


class GroupChat(Base):
    """A private group chat."""

    __tablename__ = "group_chats"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    members = relationship("GroupChatMember", back_populates="group", cascade="all, delete-orphan")


class GroupChatMember(Base):
    """Membership of a user in a group chat."""

    __tablename__ = "group_chat_members"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_chat_members_group_user"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    group_id = Column(String(36), ForeignKey("group_chats.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    invited_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    status = Column(
        Enum(GroupMemberStatus, values_callable=lambda x: [e.value for e in x], native_enum=False),
        default=GroupMemberStatus.PENDING,
        nullable=False,
    )
    role = Column(
        Enum(GroupMemberRole, values_callable=lambda x: [e.value for e in x], native_enum=False),
        default=GroupMemberRole.MEMBER,
        nullable=False,
    )
    muted = Column(Boolean, default=False, nullable=True)
    notifications_enabled = Column(Boolean, default=True, nullable=True)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_read_at = Column(DateTime, nullable=True)

    group = relationship("GroupChat", back_populates="members")

    @property
    def is_silenced(self) -> bool:
        """True when the member muted the group or turned its notifications off."""
        return bool(self.muted) or self.notifications_enabled is False


class GroupMessage(Base):
    """A message posted in a group chat."""

    __tablename__ = "group_messages"

    id = Column(String(36), primary_key=True, default=new_id)
    group_id = Column(String(36), ForeignKey("group_chats.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
