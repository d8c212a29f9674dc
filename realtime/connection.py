import json
import uuid
from typing import Any, Protocol

from fastapi import WebSocket

from logging_config import get_logger

logger = get_logger(__name__)


class Connection(Protocol):
    """Anything the relay can deliver events to."""

    id: str

    async def send(self, event: str, *args: Any) -> None:
        ...


class WebSocketConnection:
    """Adapts a FastAPI WebSocket to the Connection interface.

    Outbound frames are JSON text: {"event": <name>, "args": [...]}.
    """

    def __init__(self, websocket: WebSocket, connection_id: str = None):
        self.websocket = websocket
        self.id = connection_id or str(uuid.uuid4())

    async def send(self, event: str, *args: Any) -> None:
        frame = json.dumps({"event": event, "args": list(args)}, default=str)
        await self.websocket.send_text(frame)
        logger.debug(f"Sent {event} to connection {self.id}")

    def __repr__(self) -> str:
        return f"WebSocketConnection(id={self.id!r})"
