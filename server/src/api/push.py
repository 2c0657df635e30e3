"""
Push subscription API endpoints.

Provides endpoints for:
- VAPID public key retrieval
- Registering a device (upsert by user + endpoint)
- Unregistering one device, or every device of a user
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from server.src.config.settings import get_settings
from server.src.db.database import get_db
from server.src.schemas.notifications import (
    PushSubscriptionCreate,
    PushSubscriptionRemove,
    PushSubscriptionResponse,
    UnsubscribeResponse,
    VapidKeyResponse,
)
from server.src.services.exceptions import NotFoundError
from server.src.services.push_subscription_service import PushSubscriptionService
from server.src.utils.logging_config import get_logger


logger = get_logger("api")

# Rate limiter for subscription endpoints
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=get_settings().rate_limit_storage_uri,
)

router = APIRouter(
    prefix="/push",
    tags=["Push"],
)


def get_push_subscription_service(
    db: Session = Depends(get_db),
) -> PushSubscriptionService:
    """Create PushSubscriptionService instance with database session."""
    return PushSubscriptionService(db=db)


@router.get(
    "/vapid-key",
    response_model=VapidKeyResponse,
    summary="Get VAPID public key",
)
async def get_vapid_key() -> VapidKeyResponse:
    """
    Return the VAPID public key the browser needs to subscribe.

    Raises:
        HTTPException 503: If VAPID keys are not configured
    """
    settings = get_settings()
    if not settings.vapid_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Push notifications are not configured",
        )
    return VapidKeyResponse(vapid_public_key=settings.vapid_public_key)


@router.post(
    "/subscribe",
    response_model=PushSubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a device for push notifications",
)
@limiter.limit("30/minute")
def subscribe(
    request: Request,  # Required for rate limiter
    data: PushSubscriptionCreate,
    service: PushSubscriptionService = Depends(get_push_subscription_service),
) -> PushSubscriptionResponse:
    """
    Store the browser's subscription for a user.

    Re-subscribing the same endpoint refreshes its keys instead of creating
    a second row.
    """
    subscription = service.create_subscription(
        user_id=data.user_id,
        endpoint=data.subscription.endpoint,
        p256dh=data.subscription.keys.p256dh,
        auth=data.subscription.keys.auth,
    )
    return PushSubscriptionResponse.model_validate(subscription)


@router.delete(
    "/subscribe",
    response_model=UnsubscribeResponse,
    summary="Unregister push notifications",
)
@limiter.limit("30/minute")
def unsubscribe(
    request: Request,  # Required for rate limiter
    data: PushSubscriptionRemove,
    service: PushSubscriptionService = Depends(get_push_subscription_service),
) -> UnsubscribeResponse:
    """
    Remove one device by endpoint, or every device of the user.

    Raises:
        HTTPException 404: If an endpoint was given and is not registered
    """
    try:
        removed = service.remove_subscription(data.user_id, data.endpoint)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return UnsubscribeResponse(removed=removed)
