"""
Application settings configuration for the Co:Lab notification server.

Centralized settings loaded from environment variables.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        VAPID_PUBLIC_KEY: Web Push VAPID public key (Base64url-encoded)
        VAPID_PRIVATE_KEY: Web Push VAPID private key (Base64url-encoded)
        VAPID_SUBJECT: VAPID subject identifier (mailto: or https: URL)
        PUSH_TTL_SECONDS: How long the push service keeps an undelivered message
        PUSH_TIMEOUT_SECONDS: Per-device transport timeout
        PRESENCE_LIVENESS_SECONDS: Max gap since last heartbeat before a viewer is stale
        PRESENCE_SWEEP_SECONDS: Period of the background stale-viewer sweep
        PROFILE_REMINDER_HOUR: Local hour (0-23) of the daily profile reminder
        DIGEST_INTERVAL_HOURS: Interval of pending-connection and unread-digest
            batches (default: 0 = on-demand only)
        FANOUT_CONCURRENCY: Max concurrent recipients per event and concurrent
            device sends per dispatcher
        NOTIFICATION_WORKERS: Worker tasks routing queued events (default: 4)
        NOTIFICATION_QUEUE_SIZE: Max queued events before dropping (default: 1000)
        RATE_LIMIT_STORAGE_URI: Storage backend URI for rate limiting (default: "memory://")
        SCHEDULER_ENABLED: Start reminder timers in the app lifespan (default: True)
    """

    # VAPID settings for Web Push notifications
    vapid_public_key: str = Field(
        default="",
        validation_alias="VAPID_PUBLIC_KEY",
        description="Base64url-encoded VAPID public key for Web Push subscriptions"
    )

    vapid_private_key: str = Field(
        default="",
        validation_alias="VAPID_PRIVATE_KEY",
        description="Base64url-encoded VAPID private key for signing push messages"
    )

    vapid_subject: str = Field(
        default="mailto:hello@colabpensacola.com",
        validation_alias="VAPID_SUBJECT",
        description="VAPID subject (mailto: or https: URL identifying the push sender)"
    )

    # Transport
    push_ttl_seconds: int = Field(
        default=86400,
        validation_alias="PUSH_TTL_SECONDS",
        ge=0,
    )

    push_timeout_seconds: float = Field(
        default=10.0,
        validation_alias="PUSH_TIMEOUT_SECONDS",
        gt=0,
    )

    # Presence
    # Default allows four missed heartbeats at the client's 10s period
    presence_liveness_seconds: float = Field(
        default=45.0,
        validation_alias="PRESENCE_LIVENESS_SECONDS",
        gt=0,
    )

    presence_sweep_seconds: float = Field(
        default=10.0,
        validation_alias="PRESENCE_SWEEP_SECONDS",
        gt=0,
    )

    # Reminders
    profile_reminder_hour: int = Field(
        default=10,
        validation_alias="PROFILE_REMINDER_HOUR",
        ge=0,
        le=23,
    )

    digest_interval_hours: float = Field(
        default=0,
        validation_alias="DIGEST_INTERVAL_HOURS",
        ge=0,
        description="Interval for pending-connection and unread-digest batches (0 = on-demand only)"
    )

    scheduler_enabled: bool = Field(
        default=True,
        validation_alias="SCHEDULER_ENABLED",
    )

    # Fan-out
    fanout_concurrency: int = Field(
        default=20,
        validation_alias="FANOUT_CONCURRENCY",
        ge=1,
        le=500,
    )

    # Notification queue
    notification_workers: int = Field(
        default=4,
        validation_alias="NOTIFICATION_WORKERS",
        ge=1,
        le=64,
        description="Worker tasks routing queued events concurrently"
    )

    notification_queue_size: int = Field(
        default=1000,
        validation_alias="NOTIFICATION_QUEUE_SIZE",
        ge=1,
        description="Max queued events before new ones are dropped"
    )

    # Rate limiting storage backend
    #   "memory://"               - in-process, single worker
    #   "redis://localhost:6379"  - shared across workers
    rate_limit_storage_uri: str = Field(
        default="memory://",
        validation_alias="RATE_LIMIT_STORAGE_URI",
        description="Storage backend URI for rate limiting counters"
    )

    class Config:
        env_file = ".env"
        extra = "ignore"

    @model_validator(mode="after")
    def validate_sweep_shorter_than_liveness(self) -> "AppSettings":
        """The sweep must run more often than entries expire."""
        if self.presence_sweep_seconds >= self.presence_liveness_seconds:
            raise ValueError(
                "PRESENCE_SWEEP_SECONDS must be shorter than PRESENCE_LIVENESS_SECONDS"
            )
        return self

    @property
    def vapid_configured(self) -> bool:
        """Check if VAPID keys are properly configured for Web Push."""
        return bool(self.vapid_public_key and self.vapid_private_key and self.vapid_subject)

    @property
    def vapid_claims(self) -> dict:
        """VAPID claims dict passed to pywebpush."""
        return {"sub": self.vapid_subject} if self.vapid_subject else {}


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()
