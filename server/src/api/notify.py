"""
Notification trigger API endpoints.

The web client calls these after a social action succeeds (message sent,
request made, member invited...). Event triggers are fire-and-forget: the
event is queued and 202 is returned before any push is attempted.

Batch reminders run synchronously and report ``{sent, errors}``.
"""

from fastapi import APIRouter, Depends, Request, status

from server.src.schemas.notifications import BatchResultResponse
from server.src.schemas.notify import (
    AcceptedResponse,
    ConnectionAcceptedNotify,
    ConnectionRequestNotify,
    DirectMessageNotify,
    GroupAdminTransferNotify,
    GroupInviteNotify,
    GroupMemberJoinedNotify,
    GroupMessageNotify,
    GroupRenamedNotify,
    MentionNotify,
    ReactionNotify,
    TopicMessageNotify,
)
from server.src.services.notification_events import NotificationEvent
from server.src.services.notification_queue import NotificationQueue
from server.src.services.reminder_scheduler import BatchResult, ReminderScheduler
from server.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/notify",
    tags=["Notify"],
)


def get_notification_queue(request: Request) -> NotificationQueue:
    """Get the notification queue from application state."""
    return request.app.state.notification_queue


def get_reminder_scheduler(request: Request) -> ReminderScheduler:
    """Get the reminder scheduler from application state."""
    return request.app.state.reminder_scheduler


def _enqueue(queue: NotificationQueue, event: NotificationEvent) -> AcceptedResponse:
    return AcceptedResponse(queued=queue.enqueue(event))


def _batch_response(job: str, result: BatchResult) -> BatchResultResponse:
    logger.info(
        f"{job} sent: {result.sent}, errors: {len(result.errors)}",
        extra={"job": job, "sent": result.sent, "errors": len(result.errors)},
    )
    return BatchResultResponse(sent=result.sent, errors=result.errors)


# ============================================================================
# Event triggers
# ============================================================================


@router.post("/dm", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_dm(
    data: DirectMessageNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


@router.post("/connection", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_connection(
    data: ConnectionRequestNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


@router.post("/connection-accepted", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_connection_accepted(
    data: ConnectionAcceptedNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


@router.post("/chat", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_chat(
    data: TopicMessageNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


@router.post("/mention", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_mention(
    data: MentionNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


@router.post("/reaction", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_reaction(
    data: ReactionNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


@router.post("/group-invite", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_group_invite(
    data: GroupInviteNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


@router.post("/group-message", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_group_message(
    data: GroupMessageNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


@router.post("/group-rename", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_group_rename(
    data: GroupRenamedNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


@router.post("/group-member-joined", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_group_member_joined(
    data: GroupMemberJoinedNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


@router.post("/group-admin", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def notify_group_admin(
    data: GroupAdminTransferNotify,
    queue: NotificationQueue = Depends(get_notification_queue),
) -> AcceptedResponse:
    return _enqueue(queue, data.to_event())


# ============================================================================
# Batch reminders
# ============================================================================


@router.post("/profile-reminders", response_model=BatchResultResponse)
async def send_profile_reminders(
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> BatchResultResponse:
    """Remind subscribed users with an incomplete profile (also runs daily)."""
    return _batch_response("Profile reminders", await scheduler.send_profile_reminders())


@router.post("/pending-connection-reminders", response_model=BatchResultResponse)
async def send_pending_connection_reminders(
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> BatchResultResponse:
    return _batch_response(
        "Pending connection reminders", await scheduler.send_pending_connection_reminders()
    )


@router.post("/unread-digest", response_model=BatchResultResponse)
async def send_unread_digests(
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> BatchResultResponse:
    return _batch_response("Unread digests", await scheduler.send_unread_digests())
