"""
Unit tests for ViewerPresenceRegistry.

Covers enter/heartbeat/leave semantics, lazy expiry on read, the asymmetric
DM check and the periodic sweep.
"""

from datetime import timedelta

import pytest
from freezegun import freeze_time

from server.src.services.presence_registry import (
    ContextKind,
    ViewerPresenceRegistry,
    context_key,
)


class TestEnterAndLeave:
    """Tests for enter_view / leave_view."""

    def test_enter_then_is_viewing(self, presence):
        """A user who entered a context is viewing it."""
        presence.enter_view("group", "g1", "alice")
        assert presence.is_viewing("group", "g1", "alice") is True

    def test_is_viewing_unknown_context(self, presence):
        """Nobody views a context nobody entered."""
        assert presence.is_viewing("topic", "t1", "alice") is False

    def test_enter_is_idempotent(self, presence):
        """Entering twice keeps a single entry."""
        presence.enter_view("topic", "t1", "alice")
        presence.enter_view("topic", "t1", "alice")
        assert presence.entry_count("topic", "t1") == 1

    def test_leave_removes_entry_and_empty_context(self, presence):
        """Leaving drops the entry and the context once it is empty."""
        presence.enter_view("group", "g1", "alice")
        presence.leave_view("group", "g1", "alice")
        assert presence.is_viewing("group", "g1", "alice") is False
        assert presence.context_count == 0

    def test_leave_keeps_other_viewers(self, presence):
        """Leaving only affects the leaving user."""
        presence.enter_view("group", "g1", "alice")
        presence.enter_view("group", "g1", "bob")
        presence.leave_view("group", "g1", "alice")
        assert presence.get_viewers("group", "g1") == ["bob"]

    def test_leave_unknown_is_noop(self, presence):
        """Leaving a context never entered does nothing."""
        presence.leave_view("dm", "bob", "alice")
        assert presence.context_count == 0

    def test_unknown_kind_rejected(self, presence):
        """Only known context kinds are accepted."""
        with pytest.raises(ValueError):
            presence.enter_view("channel", "c1", "alice")


class TestHeartbeat:
    """Tests for heartbeat."""

    def test_heartbeat_without_entry_does_not_create(self, presence):
        """A heartbeat cannot resurrect a view that was left."""
        assert presence.heartbeat("group", "g1", "alice") is False
        assert presence.is_viewing("group", "g1", "alice") is False

    def test_heartbeat_after_leave_is_refused(self, presence):
        presence.enter_view("group", "g1", "alice")
        presence.leave_view("group", "g1", "alice")
        assert presence.heartbeat("group", "g1", "alice") is False
        assert presence.is_viewing("group", "g1", "alice") is False

    def test_heartbeat_extends_liveness(self, presence):
        """Heartbeats keep a viewer live past the original window."""
        with freeze_time("2025-01-01 12:00:00") as frozen:
            presence.enter_view("topic", "t1", "alice")
            frozen.tick(timedelta(seconds=30))
            assert presence.heartbeat("topic", "t1", "alice") is True
            frozen.tick(timedelta(seconds=30))
            assert presence.is_viewing("topic", "t1", "alice") is True


class TestLiveness:
    """Tests for the liveness window and lazy expiry."""

    def test_live_at_exactly_window(self, presence):
        """An entry exactly 45s old is still live."""
        with freeze_time("2025-01-01 12:00:00") as frozen:
            presence.enter_view("group", "g1", "alice")
            frozen.tick(timedelta(seconds=45))
            assert presence.is_viewing("group", "g1", "alice") is True

    def test_stale_after_window_without_sweep(self, presence):
        """A stale entry reads as not viewing even before the sweeper runs."""
        with freeze_time("2025-01-01 12:00:00") as frozen:
            presence.enter_view("group", "g1", "alice")
            frozen.tick(timedelta(seconds=46))
            assert presence.is_viewing("group", "g1", "alice") is False
            # Lazy expiry removed the entry
            assert presence.entry_count("group", "g1") == 0

    def test_get_viewers_excludes_stale(self, presence):
        with freeze_time("2025-01-01 12:00:00") as frozen:
            presence.enter_view("topic", "t1", "alice")
            frozen.tick(timedelta(seconds=40))
            presence.enter_view("topic", "t1", "bob")
            frozen.tick(timedelta(seconds=10))
            assert presence.get_viewers("topic", "t1") == ["bob"]

    def test_custom_window(self):
        registry = ViewerPresenceRegistry(
            liveness_window=timedelta(seconds=5),
            sweep_interval=timedelta(seconds=1),
        )
        with freeze_time("2025-01-01 12:00:00") as frozen:
            registry.enter_view("dm", "bob", "alice")
            frozen.tick(timedelta(seconds=6))
            assert registry.is_viewing("dm", "bob", "alice") is False

    def test_sweep_interval_must_be_shorter_than_window(self):
        with pytest.raises(ValueError):
            ViewerPresenceRegistry(
                liveness_window=timedelta(seconds=10),
                sweep_interval=timedelta(seconds=10),
            )


class TestDirectMessageCheck:
    """Tests for the asymmetric DM check."""

    def test_receiver_viewing_sender_thread(self, presence):
        """The receiver is looked up under the sender's DM context."""
        presence.enter_view(ContextKind.DM, "bob", "alice")
        assert presence.is_viewing_dm(receiver_id="alice", sender_id="bob") is True

    def test_reverse_direction_is_not_viewing(self, presence):
        """Alice viewing her thread with Bob says nothing about Bob."""
        presence.enter_view(ContextKind.DM, "bob", "alice")
        assert presence.is_viewing_dm(receiver_id="bob", sender_id="alice") is False


class TestSweep:
    """Tests for sweep."""

    def test_sweep_removes_stale_entries_and_contexts(self, presence):
        with freeze_time("2025-01-01 12:00:00") as frozen:
            presence.enter_view("group", "g1", "alice")
            presence.enter_view("topic", "t1", "bob")
            frozen.tick(timedelta(seconds=30))
            presence.enter_view("topic", "t1", "carol")
            frozen.tick(timedelta(seconds=20))

            removed = presence.sweep()

            assert removed == 2
            assert presence.context_count == 1
            assert presence.get_viewers("topic", "t1") == ["carol"]

    def test_sweep_with_nothing_stale(self, presence):
        presence.enter_view("group", "g1", "alice")
        assert presence.sweep() == 0
        assert presence.context_count == 1

    def test_context_key_normalizes_kind(self):
        assert context_key(ContextKind.TOPIC, "t1") == ("topic", "t1")
        assert context_key("topic", "t1") == ("topic", "t1")
