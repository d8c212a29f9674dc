from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from logging_config import get_logger
from realtime.connection import Connection

logger = get_logger(__name__)


@dataclass(frozen=True)
class UserIdentity:
    """Client-supplied identity attached to a connection on join-room. Not verified."""

    id: Any
    name: Optional[str]
    email: str

    @classmethod
    def from_payload(cls, user: dict) -> "UserIdentity":
        return cls(id=user.get("id"), name=user.get("name"), email=user["email"])

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass
class ConnectionState:
    connection: Connection
    identity: Optional[UserIdentity] = None
    rooms: Set[str] = field(default_factory=set)


class ConnectionRegistry:
    """Per-connection state: handle, identity and joined rooms.

    Rooms have no entity of their own; a room is the set of connections that
    joined it, kept here as a reverse index so broadcasts don't scan every
    connection.
    """

    def __init__(self):
        # Format: {connection_id: ConnectionState}
        self._connections: Dict[str, ConnectionState] = {}
        # Format: {room_id: {connection_id, ...}}
        self._rooms: Dict[str, Set[str]] = {}

    def register(self, connection: Connection) -> None:
        self._connections[connection.id] = ConnectionState(connection=connection)
        logger.debug(f"Registered connection {connection.id} (total: {len(self._connections)})")

    def is_registered(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def get(self, connection_id: str) -> Optional[Connection]:
        state = self._connections.get(connection_id)
        return state.connection if state else None

    def join_room(self, connection_id: str, room_id: str, identity: UserIdentity) -> bool:
        """Add room membership and (re)set identity. Joining the same room twice is a no-op."""
        state = self._connections.get(connection_id)
        if state is None:
            logger.warning(f"join_room for unknown connection {connection_id}")
            return False
        state.identity = identity
        state.rooms.add(room_id)
        self._rooms.setdefault(room_id, set()).add(connection_id)
        logger.debug(f"Connection {connection_id} joined room {room_id} (members: {len(self._rooms[room_id])})")
        return True

    def get_identity(self, connection_id: str) -> Optional[UserIdentity]:
        state = self._connections.get(connection_id)
        return state.identity if state else None

    def rooms_of(self, connection_id: str) -> Set[str]:
        state = self._connections.get(connection_id)
        return set(state.rooms) if state else set()

    def members(self, room_id: str) -> List[Connection]:
        return [self._connections[conn_id].connection for conn_id in self._rooms.get(room_id, ())]

    def member_states(self, room_id: str) -> List[ConnectionState]:
        return [self._connections[conn_id] for conn_id in self._rooms.get(room_id, ())]

    def connections(self) -> List[Connection]:
        return [state.connection for state in self._connections.values()]

    def unregister(self, connection_id: str) -> Optional[UserIdentity]:
        """Drop all state for a connection and return the identity it last joined with."""
        state = self._connections.pop(connection_id, None)
        if state is None:
            return None
        for room_id in state.rooms:
            members = self._rooms.get(room_id)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self._rooms[room_id]
                logger.debug(f"Room {room_id} has no more members")
        logger.debug(f"Unregistered connection {connection_id} (total: {len(self._connections)})")
        return state.identity

    def __len__(self) -> int:
        return len(self._connections)
