"""
Viewer presence API endpoints.

Clients report which chat screen they have open so that pushes for that
conversation are suppressed:
- enter: screen opened (idempotent)
- heartbeat: screen still open, sent about every 10 seconds
- leave: screen closed
"""

from fastapi import APIRouter, Depends, Request, status

from server.src.schemas.presence import (
    ContextKindLiteral,
    HeartbeatResponse,
    PresenceRequest,
    ViewersResponse,
)
from server.src.services.presence_registry import ViewerPresenceRegistry
from server.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/presence",
    tags=["Presence"],
)


def get_presence_registry(request: Request) -> ViewerPresenceRegistry:
    """Get the presence registry from application state."""
    return request.app.state.presence


@router.post("/enter", status_code=status.HTTP_204_NO_CONTENT)
def enter_view(
    data: PresenceRequest,
    presence: ViewerPresenceRegistry = Depends(get_presence_registry),
) -> None:
    presence.enter_view(data.kind, data.context_id, data.user_id)


@router.post("/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_view(
    data: PresenceRequest,
    presence: ViewerPresenceRegistry = Depends(get_presence_registry),
) -> None:
    presence.leave_view(data.kind, data.context_id, data.user_id)


@router.post("/heartbeat", response_model=HeartbeatResponse)
def heartbeat(
    data: PresenceRequest,
    presence: ViewerPresenceRegistry = Depends(get_presence_registry),
) -> HeartbeatResponse:
    """A ``refreshed: false`` reply tells the client to call enter again."""
    return HeartbeatResponse(refreshed=presence.heartbeat(data.kind, data.context_id, data.user_id))


@router.get("/{kind}/{context_id}", response_model=ViewersResponse)
def get_viewers(
    kind: ContextKindLiteral,
    context_id: str,
    presence: ViewerPresenceRegistry = Depends(get_presence_registry),
) -> ViewersResponse:
    """List the live viewers of a context."""
    return ViewersResponse(
        kind=kind,
        context_id=context_id,
        viewers=presence.get_viewers(kind, context_id),
    )
