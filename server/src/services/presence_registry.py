"""
In-memory registry of which users are currently looking at which chat context.

Used to suppress push notifications for a conversation the recipient already
has open. Presence is kept alive by client heartbeats (~10s period) and is
never persisted; a restart simply forgets all viewers.

Context keys are (kind, id) pairs:
- ("dm", peer_user_id): the viewer has a DM with peer_user_id open
- ("group", group_id), ("topic", topic_id)
- ("connections", "requests"): the connection-requests list
- ("profile", user_id): a specific profile page

Usage:
    registry = ViewerPresenceRegistry()
    registry.enter_view("group", group_id, user_id)
    registry.heartbeat("group", group_id, user_id)
    if registry.is_viewing("group", group_id, user_id):
        ...  # skip the push
"""

import asyncio
import enum
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple, Union

from server.src.utils.logging_config import get_logger


logger = get_logger("presence")


LIVENESS_WINDOW = timedelta(seconds=45)
SWEEP_INTERVAL = timedelta(seconds=10)


class ContextKind(str, enum.Enum):
    """Kinds of screens whose viewers are tracked."""
    DM = "dm"
    GROUP = "group"
    TOPIC = "topic"
    CONNECTIONS = "connections"
    PROFILE = "profile"


ContextKey = Tuple[str, str]


@dataclass
class ViewerEntry:
    """A single user viewing a single context."""
    user_id: str
    last_heartbeat: datetime


def context_key(kind: Union[ContextKind, str], context_id: str) -> ContextKey:
    """Build the (kind, id) key for a context, validating the kind."""
    return (ContextKind(kind).value, str(context_id))


class ViewerPresenceRegistry:
    """
    Tracks live viewers per chat context.

    The structure is ``{context_key: {user_id: ViewerEntry}}``. Empty buckets
    are dropped as soon as their last viewer leaves or expires.

    Thread Safety:
        All operations hold a single threading.Lock. Writers are the
        presence endpoints and the sweeper; readers are suppression checks
        running both in the event loop and in FastAPI's threadpool. No
        operation performs I/O while holding the lock.
    """

    def __init__(
        self,
        liveness_window: timedelta = LIVENESS_WINDOW,
        sweep_interval: timedelta = SWEEP_INTERVAL,
    ):
        if sweep_interval >= liveness_window:
            raise ValueError("sweep_interval must be shorter than liveness_window")
        self.liveness_window = liveness_window
        self.sweep_interval = sweep_interval
        self._viewers: Dict[ContextKey, Dict[str, ViewerEntry]] = {}
        self._lock = threading.Lock()

    def _is_live(self, entry: ViewerEntry, now: datetime) -> bool:
        return now - entry.last_heartbeat <= self.liveness_window

    def _remove(self, key: ContextKey, user_id: str) -> bool:
        """Remove one entry and its bucket if emptied. Caller holds the lock."""
        bucket = self._viewers.get(key)
        if bucket is None or user_id not in bucket:
            return False
        del bucket[user_id]
        if not bucket:
            del self._viewers[key]
        return True

    def enter_view(self, kind: Union[ContextKind, str], context_id: str, user_id: str) -> None:
        """
        Record that user_id is viewing the context.

        Idempotent: re-entering refreshes the heartbeat of the existing entry.
        """
        key = context_key(kind, context_id)
        now = datetime.utcnow()
        with self._lock:
            bucket = self._viewers.setdefault(key, {})
            entry = bucket.get(user_id)
            if entry is None:
                bucket[user_id] = ViewerEntry(user_id=user_id, last_heartbeat=now)
            else:
                entry.last_heartbeat = now
        logger.debug(
            "Viewer entered",
            extra={"context": f"{key[0]}:{key[1]}", "user_id": user_id},
        )

    def heartbeat(self, kind: Union[ContextKind, str], context_id: str, user_id: str) -> bool:
        """
        Refresh an existing entry.

        A heartbeat never creates an entry, so it cannot resurrect a view
        that was explicitly left.

        Returns:
            True if an entry existed and was refreshed
        """
        key = context_key(kind, context_id)
        with self._lock:
            entry = self._viewers.get(key, {}).get(user_id)
            if entry is None:
                return False
            entry.last_heartbeat = datetime.utcnow()
            return True

    def leave_view(self, kind: Union[ContextKind, str], context_id: str, user_id: str) -> None:
        """Remove the entry immediately, dropping the context if it was the last viewer."""
        key = context_key(kind, context_id)
        with self._lock:
            removed = self._remove(key, user_id)
        if removed:
            logger.debug(
                "Viewer left",
                extra={"context": f"{key[0]}:{key[1]}", "user_id": user_id},
            )

    def is_viewing(self, kind: Union[ContextKind, str], context_id: str, user_id: str) -> bool:
        """
        Check whether user_id is live on the context.

        A stale entry found here is deleted on the spot, so the answer never
        depends on whether the sweeper has run yet.
        """
        key = context_key(kind, context_id)
        now = datetime.utcnow()
        with self._lock:
            entry = self._viewers.get(key, {}).get(user_id)
            if entry is None:
                return False
            if not self._is_live(entry, now):
                self._remove(key, user_id)
                return False
            return True

    def is_viewing_dm(self, receiver_id: str, sender_id: str) -> bool:
        """
        Check whether the receiver has their DM with the sender open.

        DM contexts are keyed by the peer being viewed, so the receiver is
        looked up under ("dm", sender_id).
        """
        return self.is_viewing(ContextKind.DM, sender_id, receiver_id)

    def get_viewers(self, kind: Union[ContextKind, str], context_id: str) -> List[str]:
        """List the user ids currently live on a context."""
        key = context_key(kind, context_id)
        now = datetime.utcnow()
        with self._lock:
            bucket = self._viewers.get(key, {})
            return [
                user_id for user_id, entry in bucket.items()
                if self._is_live(entry, now)
            ]

    def sweep(self, now: Optional[datetime] = None) -> int:
        """
        Drop every stale entry and every emptied context.

        Bounds memory for sessions that closed without sending "leave".

        Returns:
            Number of entries removed
        """
        now = now or datetime.utcnow()
        removed = 0
        with self._lock:
            for key in list(self._viewers.keys()):
                bucket = self._viewers[key]
                for user_id in [u for u, e in bucket.items() if not self._is_live(e, now)]:
                    del bucket[user_id]
                    removed += 1
                if not bucket:
                    del self._viewers[key]
        if removed:
            logger.debug("Swept stale viewers", extra={"removed": removed})
        return removed

    async def run_sweeper(self) -> None:
        """
        Sweep forever on a fixed period (cancelled at application shutdown).
        """
        interval = self.sweep_interval.total_seconds()
        logger.info("Presence sweeper started", extra={"interval_seconds": interval})
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    @property
    def context_count(self) -> int:
        """Number of contexts with at least one (possibly stale) entry."""
        with self._lock:
            return len(self._viewers)

    def entry_count(self, kind: Union[ContextKind, str], context_id: str) -> int:
        """Number of entries held for a context, stale ones included."""
        key = context_key(kind, context_id)
        with self._lock:
            return len(self._viewers.get(key, {}))
