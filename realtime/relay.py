"""Per-connection event handling for the realtime channel.

Each inbound event runs to completion before the next event from the same
connection is read. Store calls are the only awaits that can interleave
events from different connections, so registry and presence are always
mutated before a handler awaits anything.
"""

from datetime import datetime, timezone
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from logging_config import get_logger
from realtime.broadcaster import RoomBroadcaster
from realtime.connection import Connection
from realtime.presence import PresenceTracker
from realtime.registry import ConnectionRegistry, UserIdentity

logger = get_logger(__name__)

# WebRTC signaling events and the payload field each one carries
SIGNAL_FIELDS = {
    "offer": "sdp",
    "answer": "sdp",
    "ice-candidate": "candidate",
}


class MessageStore(Protocol):
    async def insert_message(self, record: dict) -> Any:
        ...

    async def update_last_seen(self, email: str, last_seen: str) -> Any:
        ...


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EventRelay:
    def __init__(
        self,
        store: MessageStore,
        registry: Optional[ConnectionRegistry] = None,
        presence: Optional[PresenceTracker] = None,
        broadcaster: Optional[RoomBroadcaster] = None,
    ):
        self.store = store
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.presence = presence if presence is not None else PresenceTracker()
        self.broadcaster = broadcaster if broadcaster is not None else RoomBroadcaster(self.registry)
        self._handlers: Dict[str, Callable[[str, dict], Awaitable[None]]] = {
            "join-room": self.on_join_room,
            "typing": self.on_typing,
            "send_message": self.on_send_message,
            "new_room_created": self.on_new_room_created,
        }
        for event in SIGNAL_FIELDS:
            self._handlers[event] = partial(self.on_signal, event=event)

    def connect(self, connection: Connection) -> None:
        self.registry.register(connection)
        logger.info(f"Socket connected: {connection.id}")

    async def dispatch(self, connection_id: str, event: str, data: Any) -> bool:
        """Route one inbound event. Returns False when the event was ignored or its handler failed."""
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(f"Ignoring unknown event {event!r} from connection {connection_id}")
            return False

        try:
            await handler(connection_id, data)
        except Exception as e:
            logger.error(f"Error handling {event} from connection {connection_id}: {e}", exc_info=True)
            return False
        return True

    async def on_join_room(self, connection_id: str, data: dict) -> None:
        room_id = data["roomId"]
        identity = UserIdentity.from_payload(data["user"])
        previous = self.registry.get_identity(connection_id)

        if not self.registry.join_room(connection_id, room_id, identity):
            return
        # Rejoining under another email: the old email no longer has a connection behind it
        if previous is not None and previous.email != identity.email:
            self.presence.mark_offline(previous.email, connection_id)
        self.presence.mark_online(identity.email, connection_id)
        logger.info(f"{identity.name} joined room {room_id}")

        await self.broadcaster.broadcast(room_id, "user_online", identity.email)

    async def on_typing(self, connection_id: str, data: dict) -> None:
        payload = {"isTyping": data.get("isTyping"), "senderName": data.get("senderName")}
        await self.broadcaster.broadcast(data["roomId"], "typing", payload, exclude=connection_id)

    async def on_send_message(self, connection_id: str, data: dict) -> None:
        room_id = data["roomId"]
        record = {
            "room_id": room_id,
            "sender_id": data["sender_id"],
            "sender_email": data["sender_email"],
            "content": data["content"],
            "created_at": data["created_at"],
        }

        # Only messages that made it to storage are delivered
        try:
            await self.store.insert_message(record)
        except Exception as e:
            logger.error(f"Message insert error for room {room_id} from connection {connection_id}: {e}", exc_info=True)
            return

        await self.broadcaster.broadcast(room_id, "receive_message", data)

    async def on_new_room_created(self, connection_id: str, data: dict) -> None:
        # Nobody has joined the new room yet, so announce it to everyone
        room = {
            "id": data.get("id"),
            "name": data.get("name"),
            "is_group": data.get("is_group"),
            "members": data.get("members"),
        }
        await self.broadcaster.broadcast_global("room_added", room)

    async def on_signal(self, connection_id: str, data: dict, event: str) -> None:
        field = SIGNAL_FIELDS[event]
        payload = {"from": connection_id, field: data.get(field)}
        await self.broadcaster.broadcast(data["roomId"], event, payload, exclude=connection_id)

    async def disconnect(self, connection_id: str) -> None:
        identity = self.registry.unregister(connection_id)
        if identity is None:
            logger.info(f"Socket disconnected before joining: {connection_id}")
            return

        self.presence.mark_offline(identity.email, connection_id)
        last_seen = utc_timestamp()

        # Announce before writing so a slow or failing store can't hold back the offline notice
        await self.broadcaster.broadcast_global("user_offline", identity.email, last_seen)
        logger.info(f"{identity.name} disconnected")

        try:
            await self.store.update_last_seen(identity.email, last_seen)
        except Exception as e:
            logger.error(f"Failed to update last_seen for {identity.email}: {e}", exc_info=True)
