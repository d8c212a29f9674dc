import asyncio
from typing import Any, List, Optional

from logging_config import get_logger
from realtime.connection import Connection
from realtime.registry import ConnectionRegistry

logger = get_logger(__name__)


class RoomBroadcaster:
    """Fire-and-forget fan-out over the connections known to a registry."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def broadcast(self, room_id: str, event: str, *args: Any, exclude: Optional[str] = None) -> int:
        """Deliver event to every member of room_id except the exclude connection.

        Returns the number of connections the event was delivered to.
        """
        targets = [conn for conn in self.registry.members(room_id) if conn.id != exclude]
        logger.debug(f"Broadcasting {event} to {len(targets)} connections in room {room_id}")
        return await self._deliver(targets, event, args)

    async def broadcast_global(self, event: str, *args: Any) -> int:
        """Deliver event to every registered connection regardless of room."""
        targets = self.registry.connections()
        logger.debug(f"Broadcasting {event} to all {len(targets)} connections")
        return await self._deliver(targets, event, args)

    async def _deliver(self, targets: List[Connection], event: str, args: tuple) -> int:
        if not targets:
            return 0

        # Send to all connections concurrently; one failing socket must not stop the rest
        results = await asyncio.gather(*(conn.send(event, *args) for conn in targets), return_exceptions=True)

        delivered = 0
        for conn, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning(f"Error sending {event} to connection {conn.id}: {result!r}")
            else:
                delivered += 1
        return delivered
