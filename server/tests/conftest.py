"""
Pytest configuration and fixtures for server tests.

Provides shared fixtures for:
- Test database sessions
- Presence registry
- Sample data factories (profiles, subscriptions, groups, topics)
- Dispatcher and router wired to the test session
- FastAPI test client with overridden dependencies
"""

import os
import pytest
from datetime import timedelta
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ['COLAB_DB_URL'] = 'sqlite:///:memory:'
os.environ['SCHEDULER_ENABLED'] = 'false'
os.environ['VAPID_PUBLIC_KEY'] = 'test-public-key'
os.environ['VAPID_PRIVATE_KEY'] = 'test-private-key'

from server.src.models import (
    Base,
    GroupChat,
    GroupChatMember,
    GroupMemberStatus,
    Profile,
    PushSubscription,
    Topic,
    TopicFollow,
    new_id,
)
from server.src.services.presence_registry import ViewerPresenceRegistry
from server.src.services.push_dispatcher import PushSubscriptionFanoutDispatcher
from server.src.services.notification_router import NotificationEventRouter


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_session_factory(test_db_engine):
    """Session factory bound to the test engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )


@pytest.fixture(scope='function')
def test_db_session(test_session_factory):
    """Create a test database session."""
    session = test_session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def presence():
    """Fresh presence registry with the default 45s liveness window."""
    return ViewerPresenceRegistry(
        liveness_window=timedelta(seconds=45),
        sweep_interval=timedelta(seconds=10),
    )


@pytest.fixture(scope='function')
def dispatcher(test_db_session):
    """Dispatcher bound to the test session with dummy VAPID credentials."""
    return PushSubscriptionFanoutDispatcher(
        db=test_db_session,
        vapid_private_key='test-private-key',
        vapid_claims={'sub': 'mailto:test@example.com'},
        ttl=60,
        timeout=5.0,
    )


@pytest.fixture(scope='function')
def router(test_db_session, presence, dispatcher):
    """Event router bound to the test session."""
    return NotificationEventRouter(test_db_session, presence, dispatcher)


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def create_profile(test_db_session):
    """Factory for creating profiles (complete by default)."""
    def _create(
        name='Test User',
        avatar_url='https://cdn.example.com/avatar.png',
        role='Designer',
        bio='Building things in Pensacola',
        user_id=None,
    ):
        profile = Profile(
            id=user_id or new_id(),
            name=name,
            avatar_url=avatar_url,
            role=role,
            bio=bio,
        )
        test_db_session.add(profile)
        test_db_session.commit()
        test_db_session.refresh(profile)
        return profile

    return _create


@pytest.fixture
def create_subscription(test_db_session):
    """Factory for creating push subscriptions with unique endpoints."""
    counter = {'n': 0}

    def _create(user_id, endpoint=None):
        counter['n'] += 1
        sub = PushSubscription(
            user_id=user_id,
            endpoint=endpoint or f"https://push.example.com/sub/{user_id}/{counter['n']}",
            p256dh='test-p256dh',
            auth='test-auth',
        )
        test_db_session.add(sub)
        test_db_session.commit()
        test_db_session.refresh(sub)
        return sub

    return _create


@pytest.fixture
def create_group(test_db_session):
    """Factory for a group chat with accepted members."""
    def _create(creator_id, member_ids=(), name='Makers'):
        group = GroupChat(name=name, created_by=creator_id)
        test_db_session.add(group)
        test_db_session.flush()
        for user_id in (creator_id, *member_ids):
            test_db_session.add(GroupChatMember(
                group_id=group.id,
                user_id=user_id,
                status=GroupMemberStatus.ACCEPTED,
            ))
        test_db_session.commit()
        test_db_session.refresh(group)
        return group

    return _create


@pytest.fixture
def create_topic(test_db_session):
    """Factory for a topic followed by the given users."""
    def _create(follower_ids=(), name='General', slug=None):
        topic = Topic(name=name, slug=slug or f"topic-{new_id()[:8]}")
        test_db_session.add(topic)
        test_db_session.flush()
        for user_id in follower_ids:
            test_db_session.add(TopicFollow(user_id=user_id, topic_id=topic.id))
        test_db_session.commit()
        test_db_session.refresh(topic)
        return topic

    return _create


# ============================================================================
# API Test Client
# ============================================================================

@pytest.fixture
def test_notification_queue():
    """Stand-in queue recording enqueued events."""
    queue = MagicMock()
    queue.enqueue.return_value = True
    return queue


@pytest.fixture
def test_reminder_scheduler(test_session_factory, presence, dispatcher):
    """Reminder scheduler using the test session factory."""
    from server.src.services.reminder_scheduler import ReminderScheduler
    from server.src.config.settings import get_settings

    return ReminderScheduler(
        test_session_factory,
        presence,
        get_settings(),
    )


@pytest.fixture
def test_client(test_db_session, presence, test_notification_queue, test_reminder_scheduler):
    """Create a test client for FastAPI application."""
    from fastapi.testclient import TestClient
    from server.src.main import app
    from server.src.db.database import get_db
    from server.src.api.presence import get_presence_registry
    from server.src.api.notify import get_notification_queue, get_reminder_scheduler

    # Override dependencies
    def get_test_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_presence_registry] = lambda: presence
    app.dependency_overrides[get_notification_queue] = lambda: test_notification_queue
    app.dependency_overrides[get_reminder_scheduler] = lambda: test_reminder_scheduler

    with TestClient(app) as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()
