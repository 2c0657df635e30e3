"""
Reminder scheduler: daily profile reminders plus on-demand batch reminders.

The daily job fires at a configured local hour (10:00 by default). The next
fire instant is recomputed after every run instead of sleeping a fixed 24h,
so the schedule does not drift. The wait is measured between epoch
timestamps of the local wall-clock times, so a DST change between now and
the next run still fires at the configured hour.

Batch jobs:
- Profile reminders: every user with a push subscription whose profile
  lacks a photo, role, or bio
- Pending connection reminders: every subscribed user with incoming
  connection requests awaiting an answer
- Unread digests: every subscribed user with unread messages in
  non-muted conversations

Each job isolates failures per user and reports ``{sent, errors}``.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, List, Optional

from sqlalchemy.orm import Session

from server.src.config.settings import AppSettings
from server.src.models.profile import Profile
from server.src.services.notification_events import (
    NotificationEvent,
    PendingConnectionsReminderEvent,
    ProfileReminderEvent,
    UnreadDigestEvent,
)
from server.src.services.notification_router import NotificationEventRouter, build_router
from server.src.services.presence_registry import ViewerPresenceRegistry
from server.src.services.push_subscription_service import PushSubscriptionService
from server.src.services.unread_service import UnreadService
from server.src.utils.logging_config import get_logger


logger = get_logger("scheduler")


SessionFactory = Callable[[], Session]
Job = Callable[[], Awaitable[Any]]
EventBuilder = Callable[[Session, str], Optional[NotificationEvent]]


@dataclass
class BatchResult:
    """Outcome of one batch reminder run."""
    sent: int = 0
    errors: List[str] = field(default_factory=list)


def next_fire_time(now: datetime, hour: int) -> datetime:
    """
    Compute the next instant at ``hour:00:00`` strictly after ``now``.

    Args:
        now: Current local time
        hour: Target hour of day (0-23)

    Returns:
        Today at the target hour if still ahead, otherwise tomorrow

    Example:
        >>> next_fire_time(datetime(2024, 3, 1, 9, 0), 10)
        datetime.datetime(2024, 3, 1, 10, 0)
    """
    if not 0 <= hour <= 23:
        raise ValueError(f"hour must be between 0 and 23, got {hour}")
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def seconds_until(fire_at: datetime, now: Optional[float] = None) -> float:
    """
    Seconds from ``now`` (epoch seconds, default current time) until the
    naive local time ``fire_at``.

    ``datetime.timestamp()`` resolves the local UTC offset of ``fire_at``
    itself, so a DST shift in between is accounted for.
    """
    if now is None:
        now = time.time()
    return max(0.0, fire_at.timestamp() - now)


class ReminderScheduler:
    """
    Owns the reminder batch jobs and their background loops.

    Each batch run opens its own session from the session factory, so it
    never shares a session with a request handler.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        presence: ViewerPresenceRegistry,
        settings: AppSettings,
        router_factory: Optional[Callable[[Session], NotificationEventRouter]] = None,
    ):
        self.session_factory = session_factory
        self.presence = presence
        self.settings = settings
        self._router_factory = router_factory or (
            lambda db: build_router(db, self.presence, self.settings)
        )
        self._tasks: List[asyncio.Task] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the daily profile reminder loop and, if configured, the digest loop."""
        self._tasks.append(
            asyncio.create_task(
                self.run_daily(self.settings.profile_reminder_hour, self.send_profile_reminders),
                name="profile-reminders",
            )
        )
        if self.settings.digest_interval_hours > 0:
            interval = timedelta(hours=self.settings.digest_interval_hours)
            self._tasks.append(
                asyncio.create_task(
                    self.run_interval(interval, self._send_periodic_reminders),
                    name="periodic-reminders",
                )
            )
        logger.info(
            "Reminder scheduler started",
            extra={
                "profile_reminder_hour": self.settings.profile_reminder_hour,
                "digest_interval_hours": self.settings.digest_interval_hours,
            },
        )

    async def stop(self) -> None:
        """Cancel every loop and wait for them to finish."""
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        logger.info("Reminder scheduler stopped")

    async def run_daily(self, hour: int, job: Job) -> None:
        """
        Run ``job`` every day at ``hour:00`` local time, forever.

        Job failures are logged and the loop carries on.
        """
        while True:
            now = datetime.now()
            fire_at = next_fire_time(now, hour)
            delay = seconds_until(fire_at)
            logger.info(
                "Next reminder run scheduled",
                extra={"fire_at": fire_at.isoformat(), "in_minutes": round(delay / 60)},
            )
            await asyncio.sleep(delay)
            await self._run_job(job)

    async def run_interval(self, interval: timedelta, job: Job) -> None:
        """
        Run ``job`` every ``interval`` against absolute deadlines.

        A slow run shortens the following wait instead of pushing every
        later run back.
        """
        loop = asyncio.get_running_loop()
        period = interval.total_seconds()
        deadline = loop.time() + period
        while True:
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            await self._run_job(job)
            deadline += period
            while deadline <= loop.time():
                deadline += period

    async def _run_job(self, job: Job) -> None:
        name = getattr(job, "__name__", repr(job))
        try:
            result = await job()
            if isinstance(result, BatchResult):
                logger.info(
                    f"Reminder job {name} finished",
                    extra={"sent": result.sent, "errors": len(result.errors)},
                )
        except Exception as e:
            logger.error(f"Reminder job {name} failed: {e}", exc_info=True)

    async def _send_periodic_reminders(self) -> None:
        await self.send_pending_connection_reminders()
        await self.send_unread_digests()

    # ------------------------------------------------------------------
    # Batch jobs
    # ------------------------------------------------------------------

    async def send_profile_reminders(self) -> BatchResult:
        """
        Remind subscribed users whose profile is incomplete.

        Users without a profile row are skipped.
        """

        def build(db: Session, user_id: str) -> Optional[ProfileReminderEvent]:
            profile = db.query(Profile).filter(Profile.id == user_id).first()
            if profile is None or not profile.is_incomplete:
                return None
            return ProfileReminderEvent(user_id=user_id)

        return await self._run_batch("profile_reminders", build)

    async def send_pending_connection_reminders(self) -> BatchResult:
        """Remind subscribed users about unanswered incoming connection requests."""

        def build(db: Session, user_id: str) -> Optional[PendingConnectionsReminderEvent]:
            pending = UnreadService(db).count_pending_connections(user_id)
            if pending <= 0:
                return None
            return PendingConnectionsReminderEvent(user_id=user_id, pending_count=pending)

        return await self._run_batch("pending_connection_reminders", build)

    async def send_unread_digests(self) -> BatchResult:
        """Send each subscribed user a summary of their unread messages."""

        def build(db: Session, user_id: str) -> Optional[UnreadDigestEvent]:
            counts = UnreadService(db).count_unread(user_id)
            if counts.total <= 0:
                return None
            return UnreadDigestEvent(
                user_id=user_id,
                unread_dms=counts.dms,
                unread_group_messages=counts.group_messages,
                unread_topic_messages=counts.topic_messages,
            )

        return await self._run_batch("unread_digests", build)

    async def _run_batch(self, job_name: str, build_event: EventBuilder) -> BatchResult:
        result = BatchResult()
        db = self.session_factory()
        try:
            router = self._router_factory(db)
            user_ids = PushSubscriptionService(db).list_subscribed_user_ids()

            for user_id in user_ids:
                try:
                    event = build_event(db, user_id)
                    if event is None:
                        continue
                    routed = await router.route(event)
                    result.errors.extend(routed.errors)
                    if routed.sent > 0:
                        result.sent += 1
                except Exception as e:
                    db.rollback()
                    result.errors.append(f"{user_id}: {e}")
                    logger.warning(
                        f"Reminder failed for user: {e}",
                        extra={"job": job_name, "user_id": user_id},
                    )
        finally:
            db.close()

        logger.info(
            f"Reminder batch {job_name} complete",
            extra={"job": job_name, "sent": result.sent, "errors": len(result.errors)},
        )
        return result
