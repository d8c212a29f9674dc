import asyncio
import json
import uuid
from datetime import datetime, timezone
from typing import Optional

import redis

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD
from redis_keys import REDIS_USER_KEY, REDIS_USER_EMAIL_KEY, REDIS_USERS_INDEX_KEY, REDIS_ROOM_MESSAGES_KEY
from logging_config import get_logger

logger = get_logger(__name__)

PUBLIC_USER_FIELDS = ("id", "name", "email", "role", "created_at", "last_seen")


class UserExistsError(Exception):
    """Raised when an email is already registered to another user."""


class RedisBackend:
    """Users and chat messages stored in Redis.

    Calls are blocking; the realtime path goes through ChatStore, which moves
    them off the event loop.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        # redis.Redis connects lazily, so building the client never touches the network
        self.redis_client = redis_client or redis.Redis(
            host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True
        )
        logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")

    def ping(self):
        try:
            self.redis_client.ping()
            logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
        except Exception as e:
            logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
            raise

    # --- users ---

    @staticmethod
    def _email_key(email: str) -> str:
        return REDIS_USER_EMAIL_KEY.format(email=email.strip().lower())

    @staticmethod
    def _public(user: dict) -> dict:
        return {k: user.get(k) for k in PUBLIC_USER_FIELDS}

    def create_user(self, name: str, email: str, password_hash: str, role: str = "member") -> dict:
        logger.info(f"Creating user {email} with role {role}")
        email_key = self._email_key(email)
        user_id = uuid.uuid4().hex
        # SETNX claims the email atomically, so two creates can't share it
        if not self.redis_client.set(email_key, user_id, nx=True):
            logger.warning(f"User creation failed: {email} already registered")
            raise UserExistsError(f"A user with email {email} already exists")

        user = {
            "id": user_id,
            "name": name,
            "email": email,
            "role": role,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            with self.redis_client.pipeline() as pipe:
                pipe.hset(REDIS_USER_KEY.format(user_id=user_id), mapping=user)
                pipe.sadd(REDIS_USERS_INDEX_KEY, user_id)
                pipe.execute()
        except Exception:
            # Release the email so a retry isn't told it already exists
            self.redis_client.delete(email_key)
            logger.error(f"User creation failed for {email}, released email claim", exc_info=True)
            raise
        logger.debug(f"User {user_id} created for {email}")
        return self._public(user)

    def get_user(self, user_id: str) -> Optional[dict]:
        logger.debug(f"Fetching user {user_id}")
        user = self.redis_client.hgetall(REDIS_USER_KEY.format(user_id=user_id))
        if not user:
            logger.debug(f"User {user_id} not found in Redis")
            return None
        return user

    def get_user_by_email(self, email: str) -> Optional[dict]:
        """Full user record, password hash included."""
        user_id = self.redis_client.get(self._email_key(email))
        if not user_id:
            logger.debug(f"No user registered for {email}")
            return None
        return self.get_user(user_id)

    def list_users(self) -> list:
        user_ids = self.redis_client.smembers(REDIS_USERS_INDEX_KEY)
        users = []
        for user_id in user_ids:
            user = self.get_user(user_id)
            if user:
                users.append(self._public(user))
        users.sort(key=lambda u: u.get("created_at") or "")
        logger.debug(f"Listed {len(users)} users")
        return users

    def update_user(self, user_id: str, fields: dict) -> Optional[dict]:
        """Update name/email/role/password_hash. Returns None if the user doesn't exist."""
        user = self.get_user(user_id)
        if user is None:
            return None

        new_key = None
        new_email = fields.get("email")
        if new_email and new_email.strip().lower() != user["email"].strip().lower():
            new_key = self._email_key(new_email)
            if not self.redis_client.set(new_key, user_id, nx=True):
                logger.warning(f"User update failed: {new_email} already registered")
                raise UserExistsError(f"A user with email {new_email} already exists")

        updates = {k: v for k, v in fields.items() if v is not None}
        try:
            with self.redis_client.pipeline() as pipe:
                if updates:
                    pipe.hset(REDIS_USER_KEY.format(user_id=user_id), mapping=updates)
                if new_key:
                    pipe.delete(self._email_key(user["email"]))
                pipe.execute()
        except Exception:
            if new_key:
                self.redis_client.delete(new_key)
            logger.error(f"User update failed for {user_id}", exc_info=True)
            raise
        user.update(updates)
        logger.info(f"User {user_id} updated: {sorted(updates)}")
        return self._public(user)

    def delete_user(self, user_id: str) -> bool:
        user = self.get_user(user_id)
        if user is None:
            return False
        self.redis_client.delete(REDIS_USER_KEY.format(user_id=user_id))
        self.redis_client.delete(self._email_key(user["email"]))
        self.redis_client.srem(REDIS_USERS_INDEX_KEY, user_id)
        logger.info(f"User {user_id} ({user['email']}) deleted")
        return True

    def update_last_seen(self, email: str, last_seen: str) -> bool:
        user_id = self.redis_client.get(self._email_key(email))
        if not user_id:
            logger.debug(f"last_seen not recorded: no user registered for {email}")
            return False
        self.redis_client.hset(REDIS_USER_KEY.format(user_id=user_id), "last_seen", last_seen)
        logger.debug(f"Updated last_seen for {email} to {last_seen}")
        return True

    # --- messages ---

    def insert_message(self, record: dict) -> dict:
        room_id = record["room_id"]
        stored = {"id": uuid.uuid4().hex, **record}
        key = REDIS_ROOM_MESSAGES_KEY.format(slug=room_id)
        self.redis_client.rpush(key, json.dumps(stored))
        logger.debug(f"Stored message {stored['id']} in room {room_id}")
        return stored

    def get_messages(self, room_id: str, limit: int = 50) -> list:
        key = REDIS_ROOM_MESSAGES_KEY.format(slug=room_id)
        raw = self.redis_client.lrange(key, -limit, -1) if limit else self.redis_client.lrange(key, 0, -1)
        messages = []
        for item in raw:
            try:
                messages.append(json.loads(item))
            except (json.JSONDecodeError, TypeError):
                logger.warning(f"Skipping unreadable message in room {room_id}")
        return messages


class ChatStore:
    """Async facade over RedisBackend for the realtime relay.

    Blocking Redis calls run in the loop's default executor so other
    connections keep being served while a write is outstanding.
    """

    def __init__(self, backend: RedisBackend):
        self.backend = backend

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def insert_message(self, record: dict) -> dict:
        return await self._run(self.backend.insert_message, record)

    async def update_last_seen(self, email: str, last_seen: str) -> bool:
        return await self._run(self.backend.update_last_seen, email, last_seen)
