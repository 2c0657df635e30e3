"""
Notification settings API endpoints.

Provides endpoints for:
- Category preferences (get, update)
- Per-conversation mute (DM peer, topic, group)
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from server.src.db.database import get_db
from server.src.schemas.notifications import (
    MuteResponse,
    MuteUpdate,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
)
from server.src.services.exceptions import NotFoundError, ValidationError
from server.src.services.preferences_service import PreferencesService
from server.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
)


def get_preferences_service(db: Session = Depends(get_db)) -> PreferencesService:
    """Create PreferencesService instance with database session."""
    return PreferencesService(db=db)


@router.get(
    "/preferences/{user_id}",
    response_model=NotificationPreferencesResponse,
    summary="Get notification preferences",
)
def get_preferences(
    user_id: str,
    service: PreferencesService = Depends(get_preferences_service),
) -> NotificationPreferencesResponse:
    return NotificationPreferencesResponse(**service.get_preferences(user_id))


@router.put(
    "/preferences/{user_id}",
    response_model=NotificationPreferencesResponse,
    summary="Update notification preferences",
)
def update_preferences(
    user_id: str,
    data: NotificationPreferencesUpdate,
    service: PreferencesService = Depends(get_preferences_service),
) -> NotificationPreferencesResponse:
    """Update only the provided category toggles."""
    try:
        prefs = service.update_preferences(user_id, data.model_dump(exclude_unset=True))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return NotificationPreferencesResponse(**prefs)


@router.put(
    "/mute",
    response_model=MuteResponse,
    summary="Mute or unmute a conversation",
)
def set_mute(
    data: MuteUpdate,
    service: PreferencesService = Depends(get_preferences_service),
) -> MuteResponse:
    """
    Raises:
        HTTPException 404: If muting a group the user does not belong to
    """
    try:
        muted = service.set_mute(data.user_id, data.kind, data.context_id, data.muted)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return MuteResponse(
        user_id=data.user_id,
        kind=data.kind,
        context_id=data.context_id,
        muted=muted,
    )
