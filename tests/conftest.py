"""Pytest configuration and fixtures."""

import os

import pytest

from jobfinder_sync.config.env_loader import load_environment

# .env.local first, then .env
load_environment()

# Keep unit tests off any real project or emulator
os.environ.pop("FIRESTORE_EMULATOR_HOST", None)
os.environ.setdefault("LOG_LEVEL", "WARNING")

from jobfinder_sync.documents import DocumentStore, SubscriptionCache  # noqa: E402
from jobfinder_sync.util.identity import StaticIdentity  # noqa: E402
from jobfinder_sync.util.retry import RetryPolicy  # noqa: E402
from tests.util.fake_firestore import FakeFirestoreDb  # noqa: E402


@pytest.fixture
def fake_db():
    db = FakeFirestoreDb()
    yield db
    db.dispose()


@pytest.fixture
def store(fake_db):
    return DocumentStore(fake_db, retry_policy=RetryPolicy(max_attempts=3, base_delay_seconds=0))


@pytest.fixture
def cache(store):
    subscription_cache = SubscriptionCache(store)
    yield subscription_cache
    subscription_cache.clear()


@pytest.fixture
def identity():
    return StaticIdentity("user-1", "user1@example.com")
