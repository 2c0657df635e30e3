"""
NotificationPreference model for coarse per-user category toggles.

Absence of a row, or a NULL column, means the category is enabled.
"""

from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey

from server.src.models import Base, new_id


class NotificationPreference(Base):
    """
    Per-user category toggles.

    Attributes:
        dm_notifications: Direct messages and reactions
        connection_notifications: Connection requests, acceptances, pending reminders
        group_notifications: Group invites, messages, renames, joins, admin changes
        topic_notifications: Messages in followed topics
    """

    __tablename__ = "notification_preferences"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    dm_notifications = Column(Boolean, default=True, nullable=True)
    connection_notifications = Column(Boolean, default=True, nullable=True)
    group_notifications = Column(Boolean, default=True, nullable=True)
    topic_notifications = Column(Boolean, default=True, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
