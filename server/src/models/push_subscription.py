"""
PushSubscription model for Web Push notification subscriptions.

Stores the push service endpoint and encryption keys needed to deliver
push notifications to a specific user's device/browser.
"""

from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from server.src.models import Base, new_id


class PushSubscription(Base):
    """
    Web Push subscription for a specific user on a specific device/browser.

    Attributes:
        endpoint: Push service URL
        p256dh: ECDH public key for payload encryption (Base64url)
        auth: Auth secret for message authentication (Base64url)
        last_used_at: Timestamp of last successful push delivery

    Lifecycle:
        Created when a device registers for notifications.
        Removed on explicit unsubscribe, or when the push service answers
        404 Not Found / 410 Gone for the endpoint.
    """

    __tablename__ = "push_subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "endpoint", name="uq_push_subscriptions_user_endpoint"),
    )

    id = Column(String(36), primary_key=True, default=new_id)

    user_id = Column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    endpoint = Column(Text, nullable=False)
    p256dh = Column(Text, nullable=False)
    auth = Column(Text, nullable=False)

    last_used_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    user = relationship("Profile", back_populates="push_subscriptions")

    @property
    def subscription_info(self) -> dict:
        """Subscription in the shape expected by pywebpush."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }

    def __repr__(self) -> str:
        return f"<PushSubscription(user_id={self.user_id!r}, endpoint={self.endpoint[:40]!r})>"
