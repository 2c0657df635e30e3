"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints.
"""

from server.src.schemas.notifications import (
    CamelModel,
    PushSubscriptionKeys,
    PushSubscriptionInfo,
    PushSubscriptionCreate,
    PushSubscriptionRemove,
    PushSubscriptionResponse,
    UnsubscribeResponse,
    VapidKeyResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    MuteUpdate,
    MuteResponse,
    BatchResultResponse,
)
from server.src.schemas.presence import (
    PresenceRequest,
    HeartbeatResponse,
    ViewersResponse,
)

__all__ = [
    "CamelModel",
    "PushSubscriptionKeys",
    "PushSubscriptionInfo",
    "PushSubscriptionCreate",
    "PushSubscriptionRemove",
    "PushSubscriptionResponse",
    "UnsubscribeResponse",
    "VapidKeyResponse",
    "NotificationPreferencesResponse",
    "NotificationPreferencesUpdate",
    "MuteUpdate",
    "MuteResponse",
    "BatchResultResponse",
    "PresenceRequest",
    "HeartbeatResponse",
    "ViewersResponse",
]
