import json
from unittest.mock import MagicMock

import pytest

from backend import ChatStore, RedisBackend, UserExistsError


@pytest.fixture
def redis_client():
    return MagicMock()


@pytest.fixture
def pipe(redis_client):
    """The pipeline handed out by `with redis_client.pipeline() as pipe`."""
    return redis_client.pipeline.return_value.__enter__.return_value


@pytest.fixture
def redis_backend(redis_client):
    return RedisBackend(redis_client=redis_client)


def test_create_user_claims_email_and_indexes_user(redis_backend, redis_client, pipe):
    redis_client.set.return_value = True

    user = redis_backend.create_user("Alice", "Alice@X.com", "hash", role="member")

    key, user_id = redis_client.set.call_args.args
    assert key == "user:email:alice@x.com"
    assert redis_client.set.call_args.kwargs == {"nx": True}
    assert user["id"] == user_id
    assert "password_hash" not in user
    mapping = pipe.hset.call_args.kwargs["mapping"]
    assert mapping["password_hash"] == "hash"
    assert mapping["role"] == "member"
    pipe.sadd.assert_called_once_with("users", user_id)
    pipe.execute.assert_called_once()


def test_create_user_rejects_taken_email(redis_backend, redis_client):
    redis_client.set.return_value = None

    with pytest.raises(UserExistsError):
        redis_backend.create_user("Alice", "a@x.com", "hash")
    redis_client.pipeline.assert_not_called()


def test_create_user_releases_email_when_write_fails(redis_backend, redis_client, pipe):
    redis_client.set.return_value = True
    pipe.execute.side_effect = ConnectionError("redis down")

    with pytest.raises(ConnectionError):
        redis_backend.create_user("Alice", "a@x.com", "hash")
    redis_client.delete.assert_called_once_with("user:email:a@x.com")


def test_get_user_by_email(redis_backend, redis_client):
    redis_client.get.return_value = "u1"
    redis_client.hgetall.return_value = {"id": "u1", "email": "a@x.com", "role": "admin"}

    assert redis_backend.get_user_by_email("a@x.com")["role"] == "admin"
    redis_client.get.assert_called_once_with("user:email:a@x.com")
    redis_client.hgetall.assert_called_once_with("user:u1")


def test_get_user_by_email_missing(redis_backend, redis_client):
    redis_client.get.return_value = None

    assert redis_backend.get_user_by_email("a@x.com") is None


def test_list_users_hides_password_hash(redis_backend, redis_client):
    redis_client.smembers.return_value = {"u1", "u2"}
    records = {
        "user:u1": {"id": "u1", "name": "A", "email": "a@x.com", "password_hash": "h", "created_at": "2024-01-02"},
        "user:u2": {"id": "u2", "name": "B", "email": "b@x.com", "password_hash": "h", "created_at": "2024-01-01"},
    }
    redis_client.hgetall.side_effect = lambda key: records.get(key, {})

    users = redis_backend.list_users()

    assert [u["id"] for u in users] == ["u2", "u1"]
    assert all("password_hash" not in u for u in users)


def test_update_user_moves_email_index(redis_backend, redis_client, pipe):
    redis_client.hgetall.return_value = {"id": "u1", "name": "A", "email": "a@x.com"}
    redis_client.set.return_value = True

    updated = redis_backend.update_user("u1", {"name": "Anna", "email": "anna@x.com"})

    assert updated["email"] == "anna@x.com"
    redis_client.set.assert_called_once_with("user:email:anna@x.com", "u1", nx=True)
    pipe.hset.assert_called_once_with("user:u1", mapping={"name": "Anna", "email": "anna@x.com"})
    pipe.delete.assert_called_once_with("user:email:a@x.com")
    redis_client.delete.assert_not_called()


def test_update_user_email_conflict(redis_backend, redis_client):
    redis_client.hgetall.return_value = {"id": "u1", "name": "A", "email": "a@x.com"}
    redis_client.set.return_value = None

    with pytest.raises(UserExistsError):
        redis_backend.update_user("u1", {"name": "A", "email": "b@x.com"})
    redis_client.pipeline.assert_not_called()


def test_update_user_releases_new_email_when_write_fails(redis_backend, redis_client, pipe):
    redis_client.hgetall.return_value = {"id": "u1", "name": "A", "email": "a@x.com"}
    redis_client.set.return_value = True
    pipe.execute.side_effect = ConnectionError("redis down")

    with pytest.raises(ConnectionError):
        redis_backend.update_user("u1", {"name": "A", "email": "b@x.com"})
    redis_client.delete.assert_called_once_with("user:email:b@x.com")


def test_update_missing_user_returns_none(redis_backend, redis_client):
    redis_client.hgetall.return_value = {}

    assert redis_backend.update_user("nope", {"name": "A", "email": "a@x.com"}) is None


def test_delete_user(redis_backend, redis_client):
    redis_client.hgetall.return_value = {"id": "u1", "email": "a@x.com"}

    assert redis_backend.delete_user("u1") is True
    redis_client.srem.assert_called_once_with("users", "u1")


def test_update_last_seen(redis_backend, redis_client):
    redis_client.get.return_value = "u1"

    assert redis_backend.update_last_seen("a@x.com", "2024-01-01T00:00:00.000Z") is True
    redis_client.hset.assert_called_once_with("user:u1", "last_seen", "2024-01-01T00:00:00.000Z")


def test_update_last_seen_for_unknown_email(redis_backend, redis_client):
    redis_client.get.return_value = None

    assert redis_backend.update_last_seen("ghost@x.com", "ts") is False
    redis_client.hset.assert_not_called()


def test_insert_and_read_messages(redis_backend, redis_client):
    record = {"room_id": "r1", "sender_id": "u1", "sender_email": "a@x.com", "content": "hi", "created_at": "ts"}

    stored = redis_backend.insert_message(record)

    key, raw = redis_client.rpush.call_args.args
    assert key == "room:messages:r1"
    assert json.loads(raw) == stored
    assert stored["content"] == "hi" and stored["id"]

    redis_client.lrange.return_value = [raw, "not json"]
    assert redis_backend.get_messages("r1", limit=10) == [stored]
    redis_client.lrange.assert_called_with("room:messages:r1", -10, -1)


@pytest.mark.asyncio
async def test_chat_store_runs_backend_calls_off_loop():
    backend = MagicMock()
    backend.insert_message.return_value = {"id": "m1"}
    backend.update_last_seen.return_value = True
    store = ChatStore(backend)

    assert await store.insert_message({"room_id": "r1"}) == {"id": "m1"}
    assert await store.update_last_seen("a@x.com", "ts") is True
    backend.insert_message.assert_called_once_with({"room_id": "r1"})
    backend.update_last_seen.assert_called_once_with("a@x.com", "ts")


@pytest.mark.asyncio
async def test_chat_store_propagates_errors():
    backend = MagicMock()
    backend.insert_message.side_effect = ConnectionError("redis down")

    with pytest.raises(ConnectionError):
        await ChatStore(backend).insert_message({"room_id": "r1"})
