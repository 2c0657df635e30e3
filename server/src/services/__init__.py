"""
Service layer for business logic.

This module exports the service classes used by the API endpoints and the
application lifespan.
"""

from server.src.services.exceptions import (
    ServiceError,
    NotFoundError,
    ValidationError,
)
from server.src.services.presence_registry import ContextKind, ViewerPresenceRegistry
from server.src.services.preference_resolver import NotificationPreferenceResolver
from server.src.services.push_subscription_service import PushSubscriptionService
from server.src.services.push_dispatcher import PushSubscriptionFanoutDispatcher
from server.src.services.notification_router import NotificationEventRouter
from server.src.services.notification_queue import NotificationQueue
from server.src.services.reminder_scheduler import ReminderScheduler
from server.src.services.preferences_service import PreferencesService
from server.src.services.unread_service import UnreadService

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ValidationError",
    "ContextKind",
    "ViewerPresenceRegistry",
    "NotificationPreferenceResolver",
    "PushSubscriptionService",
    "PushSubscriptionFanoutDispatcher",
    "NotificationEventRouter",
    "NotificationQueue",
    "ReminderScheduler",
    "PreferencesService",
    "UnreadService",
]
