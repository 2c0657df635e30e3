"""
Pydantic schemas for push subscription, preference and mute endpoints.

Request and response bodies use the camelCase keys the web client sends
(``userId``, ``subscription.keys.p256dh``...); snake_case names are accepted
as well.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Push Subscription Schemas
# ============================================================================


class PushSubscriptionKeys(CamelModel):
    """Browser-generated encryption material for a subscription."""

    p256dh: str = Field(..., min_length=1, description="Base64url-encoded ECDH public key")
    auth: str = Field(..., min_length=1, description="Base64url-encoded auth secret")


class PushSubscriptionInfo(CamelModel):
    """The browser's PushSubscription.toJSON() output."""

    endpoint: str = Field(..., description="Push service endpoint URL (must be HTTPS)")
    keys: PushSubscriptionKeys
    expiration_time: Optional[float] = None

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint_https(cls, v: str) -> str:
        """Ensure endpoint uses HTTPS."""
        if not v.startswith("https://"):
            raise ValueError("Push subscription endpoint must use HTTPS")
        return v


class PushSubscriptionCreate(CamelModel):
    """
    Schema for registering a device.

    Required:
        user_id: Owning user's id
        subscription: Browser subscription (endpoint + keys)
    """

    user_id: str = Field(..., min_length=1)
    subscription: PushSubscriptionInfo

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "userId": "6f1c2a0e-3f59-4f7e-9d1b-2f0f3e4c5a6b",
                "subscription": {
                    "endpoint": "https://fcm.googleapis.com/fcm/send/abc123...",
                    "keys": {
                        "p256dh": "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0...",
                        "auth": "tBHItJI5svbpC7htUH8g...",
                    },
                },
            }
        },
    )


class PushSubscriptionRemove(CamelModel):
    """Schema for unsubscribing one device, or every device when endpoint is omitted."""

    user_id: str = Field(..., min_length=1)
    endpoint: Optional[str] = Field(default=None, description="The push service endpoint URL to unsubscribe")


class PushSubscriptionResponse(CamelModel):
    """Response schema for a push subscription."""

    id: str
    user_id: str
    endpoint: str
    created_at: datetime
    last_used_at: Optional[datetime] = None

    @field_serializer("created_at", "last_used_at")
    def serialize_datetime_utc(self, v: Optional[datetime]) -> Optional[str]:
        """Serialize datetime as ISO 8601 with explicit UTC timezone."""
        return v.isoformat() + "Z" if v else None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UnsubscribeResponse(CamelModel):
    removed: int = Field(..., ge=0, description="Number of subscriptions removed")


class VapidKeyResponse(CamelModel):
    """Response schema for VAPID public key."""

    vapid_public_key: str = Field(..., description="Base64url-encoded VAPID public key")


# ============================================================================
# Notification Preferences Schemas
# ============================================================================


class NotificationPreferencesResponse(CamelModel):
    """Response schema for notification preferences (missing values read as enabled)."""

    dm_notifications: bool = True
    connection_notifications: bool = True
    group_notifications: bool = True
    topic_notifications: bool = True


class NotificationPreferencesUpdate(CamelModel):
    """
    Schema for updating notification preferences.

    All fields are optional: only provided fields are updated.
    """

    dm_notifications: Optional[bool] = None
    connection_notifications: Optional[bool] = None
    group_notifications: Optional[bool] = None
    topic_notifications: Optional[bool] = None


class MuteUpdate(CamelModel):
    """Mute or unmute one conversation for one user."""

    user_id: str = Field(..., min_length=1)
    kind: Literal["dm", "topic", "group"]
    context_id: str = Field(..., min_length=1, description="Peer user id, topic id or group id")
    muted: bool


class MuteResponse(CamelModel):
    user_id: str
    kind: str
    context_id: str
    muted: bool


# ============================================================================
# Batch Reminder Schemas
# ============================================================================


class BatchResultResponse(CamelModel):
    """Result of a reminder batch run."""

    sent: int = Field(..., ge=0, description="Users that received the reminder")
    errors: List[str] = Field(default_factory=list)
