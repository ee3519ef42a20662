import os

# Settings are read at import time
os.environ.setdefault("DB_HOST", "localhost")
os.environ.setdefault("DB_PORT", "5432")
os.environ.setdefault("DB_NAME", "meetups_test")
os.environ.setdefault("DB_USER", "test")
os.environ.setdefault("DB_PASSWORD", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("PUBLIC_BASE_URL", "https://meetup.example")
os.environ["RATE_LIMIT_ENABLED"] = "false"

from datetime import timedelta  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.dependencies import get_sms_sender, get_store  # noqa: E402
from app.main import app  # noqa: E402
from app.services import capacity  # noqa: E402
from app.services.meetups import create_meetup  # noqa: E402
from fakes import NOW, InMemoryStore, RecordingSender  # noqa: E402


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def clock():
    """Strictly increasing registration times so FIFO order is deterministic."""
    ticks = count()
    return lambda: NOW + timedelta(seconds=next(ticks))


@pytest.fixture
def make_meetup(store):
    async def _make(max_participants=2, max_waitlist=None, date=None, **overrides):
        fields = dict(
            title="Sunday Hike",
            date=date or NOW + timedelta(days=10),
            location="Bukhansan Gate",
            host_name="Jin",
            host_phone="010-9999-0000",
            max_participants=max_participants,
            max_waitlist=max_waitlist,
        )
        fields.update(overrides)
        return await create_meetup(store, **fields)
    return _make


@pytest.fixture
def register(store, clock):
    async def _register(meetup, name, phone):
        participant, _ = await capacity.admit(store, meetup.id, name, phone, now=clock())
        return participant
    return _register


@pytest.fixture
def client(store, sender):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_sms_sender] = lambda: sender
    yield TestClient(app)
    app.dependency_overrides.clear()
