"""
Fire-and-forget boundary between trigger endpoints and the router.

Endpoints enqueue events and return 202 straight away. A small pool of
worker tasks takes events off the queue and routes each one with a fresh DB
session, so a large topic or group fan-out never holds up a DM queued after
it. Failures are logged; nothing is ever propagated back to the triggering
request.

The queue is bounded: when it is full the event is dropped and logged,
since delivery is best-effort.
"""

import asyncio
from typing import Callable, List

from sqlalchemy.orm import Session

from server.src.services.notification_events import NotificationEvent
from server.src.services.notification_router import NotificationEventRouter
from server.src.utils.logging_config import get_logger


logger = get_logger("services")


DEFAULT_WORKERS = 4
DEFAULT_MAX_PENDING = 1000


class NotificationQueue:
    """
    In-process queue of pending notification events.

    Usage:
        queue = NotificationQueue(SessionLocal, router_factory, workers=4)
        queue.start()
        queue.enqueue(DirectMessageEvent(...))
        await queue.drain()
        await queue.stop()
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        router_factory: Callable[[Session], NotificationEventRouter],
        workers: int = DEFAULT_WORKERS,
        max_pending: int = DEFAULT_MAX_PENDING,
    ):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.session_factory = session_factory
        self.router_factory = router_factory
        self.workers = workers
        self._queue: "asyncio.Queue[NotificationEvent]" = asyncio.Queue(maxsize=max_pending)
        self._workers: List[asyncio.Task] = []
        self.dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._workers)

    def enqueue(self, event: NotificationEvent) -> bool:
        """
        Queue an event without waiting for delivery.

        Returns:
            False when the queue is full and the event was dropped
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Notification queue full, event dropped",
                extra={
                    "event_type": type(event).__name__,
                    "max_pending": self._queue.maxsize,
                    "dropped": self.dropped,
                },
            )
            return False

        logger.debug(
            "Notification event queued",
            extra={"event_type": type(event).__name__, "pending": self._queue.qsize()},
        )
        return True

    def start(self) -> None:
        if self.running:
            return
        self._workers = [
            asyncio.create_task(self._work(), name=f"notification-queue-{n}")
            for n in range(self.workers)
        ]
        logger.info("Notification queue workers started", extra={"workers": self.workers})

    async def stop(self) -> None:
        if not self._workers:
            return
        for task in self._workers:
            task.cancel()
        outcomes = await asyncio.gather(*self._workers, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.error(f"Notification queue worker crashed: {outcome}")
        self._workers = []
        logger.info("Notification queue workers stopped")

    async def drain(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    async def process(self, event: NotificationEvent) -> None:
        """Route one event with its own session, logging any failure."""
        db = self.session_factory()
        try:
            router = self.router_factory(db)
            await router.route(event)
        except Exception as e:
            logger.error(
                f"Notification event failed: {e}",
                extra={"event_type": type(event).__name__},
                exc_info=True,
            )
        finally:
            db.close()

    async def _work(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.process(event)
            finally:
                self._queue.task_done()
