from typing import Dict, List, Optional

from logging_config import get_logger

logger = get_logger(__name__)


class PresenceTracker:
    """Maps a user key (email) to the connection that most recently joined as that user."""

    def __init__(self):
        self._online: Dict[str, str] = {}

    def mark_online(self, user_key: str, connection_id: str) -> bool:
        """Point user_key at connection_id. Returns True if an existing entry was replaced."""
        previous = self._online.get(user_key)
        self._online[user_key] = connection_id
        if previous is not None and previous != connection_id:
            logger.info(f"Presence for {user_key} moved from connection {previous} to {connection_id}")
        return previous is not None

    def mark_offline(self, user_key: str, connection_id: str) -> bool:
        """Remove user_key only while it still points at connection_id.

        A reconnect can register a newer connection before the old one's
        disconnect is processed; that late disconnect must leave the newer
        entry alone.
        """
        current = self._online.get(user_key)
        if current != connection_id:
            if current is not None:
                logger.debug(f"Ignoring stale offline for {user_key}: {connection_id} superseded by {current}")
            return False
        del self._online[user_key]
        return True

    def is_online(self, user_key: str) -> bool:
        return user_key in self._online

    def connection_for(self, user_key: str) -> Optional[str]:
        return self._online.get(user_key)

    def online_users(self) -> List[str]:
        return list(self._online)

    def __len__(self) -> int:
        return len(self._online)
