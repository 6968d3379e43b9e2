import logging

from .registry import ConnectionHandle, ConnectionRegistry


logger = logging.getLogger(__name__)


class DisconnectReaper:
    """Drops a user's registry entry when the connection that owns it closes."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def reap(self, user_id, handle: ConnectionHandle) -> bool:
        if not user_id:
            # Connection closed before it ever registered
            return False
        removed = self.registry.remove_if_current(user_id, handle)
        if removed:
            logger.info(f"[reap] user={user_id} sid={handle.sid} offline")
        else:
            logger.info(f"[reap-skip] user={user_id} sid={handle.sid} superseded by a newer connection")
        return removed
