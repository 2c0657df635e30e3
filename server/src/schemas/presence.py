"""
Pydantic schemas for viewer presence endpoints.
"""

from typing import List, Literal

from pydantic import Field

from server.src.schemas.notifications import CamelModel


ContextKindLiteral = Literal["dm", "group", "topic", "connections", "profile"]


class PresenceRequest(CamelModel):
    """A client entering, leaving, or heartbeating a chat screen."""

    user_id: str = Field(..., min_length=1)
    kind: ContextKindLiteral
    context_id: str = Field(..., min_length=1, description="Peer user id, group id, topic id, 'requests' or profile id")


class HeartbeatResponse(CamelModel):
    refreshed: bool = Field(..., description="False when the viewer had expired and must re-enter")


class ViewersResponse(CamelModel):
    kind: str
    context_id: str
    viewers: List[str]
