"""
Profile model for community members.

Profiles are created by the web client after sign-up. The notification
server reads them for display-name mention lookup and for the daily
profile-completeness reminder.
"""

from datetime import datetime

from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import relationship

from server.src.models import Base


class Profile(Base):
    """
    Community member profile.

    Attributes:
        id: User id (UUID string, shared with the auth provider)
        name: Display name, matched exactly by @mentions (not unique)
        avatar_url: Profile photo URL
        role: Self-described role (e.g. "Founder")
        bio: Free-form biography

    Relationships:
        push_subscriptions: Registered devices (one-to-many)
    """

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True, unique=True)
    role = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    push_subscriptions = relationship(
        "PushSubscription",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_incomplete(self) -> bool:
        """A profile is incomplete when the avatar, role, or bio is missing."""
        return not self.avatar_url or not self.role or not self.bio

    def __repr__(self) -> str:
        return f"<Profile(id={self.id!r}, name={self.name!r})>"
