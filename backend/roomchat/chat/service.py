import logging
from typing import Optional

from .reaper import DisconnectReaper
from .registry import ConnectionHandle, ConnectionRegistry
from .relay import DEFAULT_MAX_LENGTH, Deliver, MessageRelay
from .store import MessageRecord, MessageStore


logger = logging.getLogger(__name__)


class ChatService:
    """Owns the registry, relay and reaper for one server process.

    Built once by the app factory and reached through
    ``current_app.extensions['chat']``.
    """

    def __init__(self, store: MessageStore, deliver: Deliver, max_length: int = DEFAULT_MAX_LENGTH):
        self.registry = ConnectionRegistry()
        self.store = store
        self.relay = MessageRelay(self.registry, store, deliver, max_length=max_length)
        self.reaper = DisconnectReaper(self.registry)

    def register(self, user_id: str, handle: ConnectionHandle) -> Optional[ConnectionHandle]:
        previous = self.registry.register(user_id, handle)
        logger.info(f"[register] user={user_id} sid={handle.sid}")
        return previous

    def send(self, sender_id, receiver_id, content) -> MessageRecord:
        return self.relay.send(sender_id, receiver_id, content)

    def disconnect(self, user_id, handle: ConnectionHandle) -> bool:
        return self.reaper.reap(user_id, handle)

    def is_online(self, user_id: str) -> bool:
        return self.registry.is_online(user_id)

    def shutdown(self) -> None:
        dropped = len(self.registry)
        self.registry.clear()
        logger.info(f"[shutdown] dropped={dropped} presence entries")
