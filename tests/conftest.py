from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app import create_app
from realtime.relay import EventRelay


class RecordingConnection:
    """Connection stand-in that records every event delivered to it."""

    def __init__(self, connection_id: str, fail: bool = False):
        self.id = connection_id
        self.fail = fail
        self.sent = []

    async def send(self, event, *args):
        if self.fail:
            raise ConnectionError(f"connection {self.id} is gone")
        self.sent.append((event, args))

    def received(self, event):
        return [args for name, args in self.sent if name == event]


class FakeStore:
    def __init__(self):
        self.messages = []
        self.last_seen = {}
        self.fail_insert = False
        self.fail_last_seen = False

    async def insert_message(self, record):
        if self.fail_insert:
            raise RuntimeError("insert failed")
        self.messages.append(record)
        return record

    async def update_last_seen(self, email, last_seen):
        if self.fail_last_seen:
            raise RuntimeError("update failed")
        self.last_seen[email] = last_seen
        return True


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def relay(store):
    return EventRelay(store=store)


@pytest.fixture
def connect(relay):
    """Register a RecordingConnection with the relay and return it."""
    def _connect(connection_id, fail=False):
        conn = RecordingConnection(connection_id, fail=fail)
        relay.connect(conn)
        return conn
    return _connect


def join_payload(room_id, email, name=None, user_id=None):
    return {"roomId": room_id, "user": {"id": user_id or email, "name": name or email.split("@")[0], "email": email}}


@pytest.fixture
def backend():
    return MagicMock()


@pytest.fixture
def mailer():
    mock = MagicMock()
    mock.send_credentials = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def client(backend, mailer):
    app = create_app(backend=backend, mailer=mailer, require_admin_token=False)
    with TestClient(app) as test_client:
        yield test_client
