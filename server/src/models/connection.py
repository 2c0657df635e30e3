"""
Connection model (follow/connect requests between members).

follower_id is the requester, following_id the receiver of the request.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, UniqueConstraint

from server.src.models import Base, new_id


class ConnectionStatus(enum.Enum):
    """Connection request lifecycle."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Connection(Base):
    """A connection request from follower_id to following_id."""

    __tablename__ = "connections"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_connections_pair"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    follower_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum(ConnectionStatus, values_callable=lambda x: [e.value for e in x], native_enum=False),
        default=ConnectionStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
