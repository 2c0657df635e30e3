"""
Push fan-out dispatcher: delivers one payload to every device of one user.

Delivery flow:
1. Load the user's subscriptions (none is a successful no-op)
2. Send to all devices concurrently via pywebpush, each call in a worker
   thread with its own transport timeout
3. Wait for every attempt (never fail-fast)
4. 404/410 endpoints are deleted from the store and reported as
   informational entries; other failures are reported and left alone
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pywebpush import webpush, WebPushException
from sqlalchemy.orm import Session

from server.src.services.push_subscription_service import PushSubscriptionService
from server.src.utils.logging_config import get_logger


logger = get_logger("push")


GONE_STATUS_CODES = (404, 410)


class PushGoneError(Exception):
    """Raised when push service returns 410 Gone or 404 Not Found (subscription invalid)."""

    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        super().__init__(f"Push subscription gone: {endpoint[:60]}")


class PushDeliveryError(Exception):
    """Raised when push delivery fails for any other reason."""
    pass


ERROR_REMOVED = "removed"
ERROR_FAILED = "failed"


@dataclass
class DispatchError:
    """
    One per-device problem reported by a dispatch.

    ``removed`` entries are informational: the endpoint was dead and its
    subscription has been deleted. ``failed`` entries left the store untouched.
    """
    kind: str
    endpoint: str
    message: str = ""

    @property
    def removed(self) -> bool:
        return self.kind == ERROR_REMOVED

    def __str__(self) -> str:
        if self.removed:
            return f"Removed expired subscription: {self.endpoint}"
        return f"Failed to send to {self.endpoint}: {self.message}"


@dataclass
class DispatchResult:
    """Outcome of delivering one payload to one user's devices."""
    sent_count: int = 0
    errors: List[DispatchError] = field(default_factory=list)

    @property
    def removed(self) -> List[DispatchError]:
        return [e for e in self.errors if e.kind == ERROR_REMOVED]

    @property
    def failed(self) -> List[DispatchError]:
        return [e for e in self.errors if e.kind == ERROR_FAILED]


class PushSubscriptionFanoutDispatcher:
    """
    Delivers payloads to all of a user's registered devices.

    The DB session is only touched from the event loop thread; worker threads
    receive plain subscription dicts. A semaphore shared by every dispatch
    made through this instance caps in-flight transport calls.
    """

    def __init__(
        self,
        db: Session,
        vapid_private_key: str = "",
        vapid_claims: Optional[Dict[str, str]] = None,
        ttl: int = 86400,
        timeout: float = 10.0,
        max_concurrency: int = 20,
    ):
        """
        Initialize the dispatcher.

        Args:
            db: SQLAlchemy database session
            vapid_private_key: VAPID private key for push authentication
            vapid_claims: VAPID claims dict (e.g., {"sub": "mailto:..."})
            ttl: Seconds the push service keeps an undelivered message
            timeout: Per-device transport timeout in seconds
            max_concurrency: Max concurrent transport calls
        """
        self.db = db
        self.subscriptions = PushSubscriptionService(db)
        self.vapid_private_key = vapid_private_key
        self.vapid_claims = vapid_claims or {}
        self.ttl = ttl
        self.timeout = timeout
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def dispatch(self, user_id: str, payload: Dict[str, Any]) -> DispatchResult:
        """
        Send a push notification to all of a user's subscriptions.

        Args:
            user_id: Recipient user's id
            payload: Rendered push payload (JSON-serializable)

        Returns:
            DispatchResult with the number of devices reached and per-device errors
        """
        subscriptions = self.subscriptions.list_subscriptions(user_id)
        if not subscriptions:
            return DispatchResult()

        payload_json = json.dumps(payload)
        urgency = "high" if payload.get("requireInteraction") else "normal"
        targets = [(sub, sub.subscription_info) for sub in subscriptions]

        outcomes = await asyncio.gather(
            *(self._deliver(info, payload_json, urgency) for _, info in targets),
            return_exceptions=True,
        )

        result = DispatchResult()
        delivered = []
        gone_endpoints = []

        for (sub, info), outcome in zip(targets, outcomes):
            endpoint = info["endpoint"]
            if outcome is None:
                result.sent_count += 1
                delivered.append(sub)
            elif isinstance(outcome, PushGoneError):
                gone_endpoints.append(endpoint)
                result.errors.append(DispatchError(ERROR_REMOVED, endpoint, str(outcome)))
            else:
                result.errors.append(DispatchError(ERROR_FAILED, endpoint, str(outcome)))
                logger.warning(
                    f"Push delivery failed: {outcome}",
                    extra={"user_id": user_id, "endpoint": endpoint[:60]},
                )

        for endpoint in gone_endpoints:
            logger.info(
                "Removing expired push subscription",
                extra={"user_id": user_id, "endpoint": endpoint[:60]},
            )
            self.subscriptions.remove_invalid(endpoint)

        self.subscriptions.mark_used(delivered)

        if result.errors:
            logger.info(
                "Push delivery summary",
                extra={
                    "user_id": user_id,
                    "tag": payload.get("tag"),
                    "total": len(targets),
                    "success": result.sent_count,
                    "failed": len(result.failed),
                    "removed": len(result.removed),
                },
            )

        return result

    async def _deliver(
        self,
        subscription_info: Dict[str, Any],
        payload_json: str,
        urgency: str,
    ) -> None:
        async with self._semaphore:
            await asyncio.to_thread(self._send_push, subscription_info, payload_json, urgency)

    def _send_push(
        self,
        subscription_info: Dict[str, Any],
        payload_json: str,
        urgency: str = "normal",
    ) -> None:
        """
        Send a push notification to a single subscription via pywebpush.

        Args:
            subscription_info: {"endpoint": ..., "keys": {"p256dh": ..., "auth": ...}}
            payload_json: JSON-encoded push payload
            urgency: Web Push Urgency header value

        Raises:
            PushGoneError: If the endpoint returned 404 Not Found or 410 Gone
            PushDeliveryError: If delivery failed for other reasons
        """
        endpoint = subscription_info["endpoint"]
        try:
            webpush(
                subscription_info=subscription_info,
                data=payload_json,
                vapid_private_key=self.vapid_private_key,
                # pywebpush writes "aud"/"exp" into the claims it is given
                vapid_claims=dict(self.vapid_claims),
                ttl=self.ttl,
                timeout=self.timeout,
                headers={"Urgency": urgency},
            )
        except WebPushException as e:
            response = getattr(e, "response", None)
            if response is not None and response.status_code in GONE_STATUS_CODES:
                raise PushGoneError(endpoint) from e
            raise PushDeliveryError(str(e)) from e
        except Exception as e:
            raise PushDeliveryError(str(e)) from e
