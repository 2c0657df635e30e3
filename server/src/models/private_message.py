"""
PrivateMessage model (direct messages).

read_at is the per-message read watermark used by the unread digest.
"""

from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey, Text

from server.src.models import Base, new_id


class PrivateMessage(Base):
    """A direct message from sender_id to receiver_id."""

    __tablename__ = "private_messages"

    id = Column(String(36), primary_key=True, default=new_id)
    sender_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    receiver_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    content = Column(Text, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
