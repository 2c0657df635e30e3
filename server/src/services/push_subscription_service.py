"""
Push subscription service for managing Web Push subscriptions.

Provides business logic for subscribing, unsubscribing, listing,
and self-healing removal of dead push endpoints.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from server.src.models.push_subscription import PushSubscription
from server.src.services.exceptions import NotFoundError
from server.src.utils.logging_config import get_logger


logger = get_logger("services")


class PushSubscriptionService:
    """
    Service for managing Web Push subscriptions.

    Handles subscription lifecycle:
    - Create (upsert by user + endpoint)
    - Remove (one endpoint, or every device of a user)
    - List (by user, or every subscribed user id)
    - Remove invalid (404/410 from the push service)
    """

    def __init__(self, db: Session):
        self.db = db

    def create_subscription(
        self,
        user_id: str,
        endpoint: str,
        p256dh: str,
        auth: str,
    ) -> PushSubscription:
        """
        Create or refresh a push subscription.

        A browser that re-subscribes with the same endpoint gets its keys
        updated in place rather than a duplicate row.

        Args:
            user_id: Owning user's id
            endpoint: Push service endpoint URL
            p256dh: ECDH public key (Base64url)
            auth: Auth secret (Base64url)

        Returns:
            Created or updated PushSubscription
        """
        existing = (
            self.db.query(PushSubscription)
            .filter(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == endpoint,
            )
            .first()
        )

        if existing:
            existing.p256dh = p256dh
            existing.auth = auth
            existing.updated_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(existing)
            logger.info(
                "Updated push subscription",
                extra={"endpoint_prefix": endpoint[:60], "user_id": user_id},
            )
            return existing

        subscription = PushSubscription(
            user_id=user_id,
            endpoint=endpoint,
            p256dh=p256dh,
            auth=auth,
        )
        self.db.add(subscription)
        self.db.commit()
        self.db.refresh(subscription)
        logger.info(
            "Created push subscription",
            extra={"endpoint_prefix": endpoint[:60], "user_id": user_id},
        )
        return subscription

    def remove_subscription(self, user_id: str, endpoint: Optional[str] = None) -> int:
        """
        Remove a user's push subscription(s).

        Args:
            user_id: Owning user's id
            endpoint: Endpoint to remove; when omitted every device of the
                user is unsubscribed

        Returns:
            Number of subscriptions removed

        Raises:
            NotFoundError: If an endpoint was given and no subscription matches
        """
        query = self.db.query(PushSubscription).filter(PushSubscription.user_id == user_id)
        if endpoint is not None:
            query = query.filter(PushSubscription.endpoint == endpoint)

        subscriptions = query.all()
        if endpoint is not None and not subscriptions:
            raise NotFoundError("PushSubscription", endpoint)

        for subscription in subscriptions:
            self.db.delete(subscription)
        self.db.commit()

        logger.info(
            "Removed push subscription",
            extra={
                "user_id": user_id,
                "endpoint_prefix": endpoint[:60] if endpoint else None,
                "removed": len(subscriptions),
            },
        )
        return len(subscriptions)

    def list_subscriptions(self, user_id: str) -> List[PushSubscription]:
        """
        List all push subscriptions for a user.

        Args:
            user_id: User's id

        Returns:
            List of PushSubscription instances, newest first
        """
        return (
            self.db.query(PushSubscription)
            .filter(PushSubscription.user_id == user_id)
            .order_by(PushSubscription.created_at.desc())
            .all()
        )

    def list_subscribed_user_ids(self) -> List[str]:
        """
        List the distinct ids of users holding at least one subscription.

        Returns:
            Sorted list of user ids
        """
        rows = (
            self.db.query(PushSubscription.user_id)
            .distinct()
            .order_by(PushSubscription.user_id)
            .all()
        )
        return [row[0] for row in rows]

    def remove_invalid(self, endpoint: str) -> int:
        """
        Remove subscriptions whose endpoint the push service reported gone.

        Called when push delivery receives a 404 or 410 response. Every row
        with the endpoint is removed since the browser registration behind it
        no longer exists.

        Args:
            endpoint: The invalid push service endpoint

        Returns:
            Number of rows removed
        """
        subscriptions = (
            self.db.query(PushSubscription)
            .filter(PushSubscription.endpoint == endpoint)
            .all()
        )

        for subscription in subscriptions:
            logger.info(
                "Removing invalid push subscription (410 Gone)",
                extra={"user_id": subscription.user_id, "endpoint_prefix": endpoint[:60]},
            )
            self.db.delete(subscription)

        if subscriptions:
            self.db.commit()
        return len(subscriptions)

    def mark_used(self, subscriptions: List[PushSubscription]) -> None:
        """
        Stamp last_used_at after successful push delivery.

        Args:
            subscriptions: Subscriptions that accepted a push
        """
        if not subscriptions:
            return
        now = datetime.utcnow()
        for subscription in subscriptions:
            subscription.last_used_at = now
        self.db.commit()
