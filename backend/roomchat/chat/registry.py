"""Connection registry: which user currently owns which live connection.

One entry per user. A later ``register`` for the same user silently replaces
the earlier handle; the only way to delete an entry is ``remove_if_current``,
so a stale disconnect can never evict a newer connection.
"""

import logging
import threading
from typing import Dict, List, NamedTuple, Optional


logger = logging.getLogger(__name__)


class ConnectionHandle(NamedTuple):
    """Opaque reference to one Socket.IO connection."""

    sid: str
    namespace: str = '/'


class ConnectionRegistry:

    def __init__(self):
        self._entries: Dict[str, ConnectionHandle] = {}
        self._lock = threading.Lock()

    def register(self, user_id: str, handle: ConnectionHandle) -> Optional[ConnectionHandle]:
        """Map ``user_id`` to ``handle``; return the handle it replaced, if any."""
        with self._lock:
            previous = self._entries.get(user_id)
            self._entries[user_id] = handle
        if previous is not None and previous != handle:
            logger.info(f"[register-supersede] user={user_id} old_sid={previous.sid} new_sid={handle.sid}")
        return previous

    def lookup(self, user_id: str) -> Optional[ConnectionHandle]:
        with self._lock:
            return self._entries.get(user_id)

    def remove_if_current(self, user_id: str, handle: ConnectionHandle) -> bool:
        """Remove the entry for ``user_id`` only if it still points at ``handle``."""
        with self._lock:
            if self._entries.get(user_id) != handle:
                return False
            del self._entries[user_id]
            return True

    def is_online(self, user_id: str) -> bool:
        return self.lookup(user_id) is not None

    def online_users(self) -> List[str]:
        with self._lock:
            return sorted(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
