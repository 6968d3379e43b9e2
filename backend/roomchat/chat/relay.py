"""Message relay: persist first, then best-effort live delivery.

``send`` is a two-phase operation. Phase one writes the message to the store
and must succeed before anything else happens; phase two looks the receiver up
in the registry and pushes a delivery event if they are online. A failure in
phase two is logged and never turns a stored message into a failed send.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Hashable, List

from roomchat.models import USER_ID_LENGTH
from .errors import PersistenceError, TransportError, ValidationError
from .registry import ConnectionHandle, ConnectionRegistry
from .store import MessageRecord, MessageStore


logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 2000

# Pushes one event to a connection; raises TransportError if the channel is gone
Deliver = Callable[[ConnectionHandle, dict], None]


def normalize_user_id(value, field: str = 'user_id') -> str:
    """Return the identity as a non-empty string or raise ValidationError."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError(f'{field} must be a string or integer', field=field)
    normalized = str(value).strip()
    if not normalized:
        raise ValidationError(f'{field} is required', field=field)
    if len(normalized) > USER_ID_LENGTH:
        raise ValidationError(f'{field} exceeds {USER_ID_LENGTH} characters', field=field)
    return normalized


def delivery_payload(record: MessageRecord) -> dict:
    return {
        'senderId': record.sender_id,
        'content': record.content,
        'timestamp': record.timestamp.isoformat(),
    }


class KeyedLocks:
    """Locks created per key on demand and dropped once nobody holds or waits on them."""

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._entries: Dict[Hashable, List] = {}

    @contextmanager
    def hold(self, key):
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


class MessageRelay:

    def __init__(self, registry: ConnectionRegistry, store: MessageStore, deliver: Deliver,
                 max_length: int = DEFAULT_MAX_LENGTH):
        self.registry = registry
        self.store = store
        self.deliver = deliver
        self.max_length = max_length
        self.sender_locks = KeyedLocks()
        self.pair_locks = KeyedLocks()

    def _validate(self, sender_id, receiver_id, content):
        sender = normalize_user_id(sender_id, 'sender_id')
        receiver = normalize_user_id(receiver_id, 'receiver_id')
        if not isinstance(content, str):
            raise ValidationError('content must be a string', field='content')
        if not content.strip():
            raise ValidationError('content is required', field='content')
        if len(content) > self.max_length:
            raise ValidationError(f'content exceeds {self.max_length} characters', field='content')
        return sender, receiver, content

    def send(self, sender_id, receiver_id, content) -> MessageRecord:
        """Store a message and push it to the receiver if they are connected.

        Raises ValidationError for malformed input and PersistenceError when the
        store fails; in both cases nothing is delivered. Returns the stored
        record otherwise, whether or not a live delivery happened.
        """
        sender, receiver, content = self._validate(sender_id, receiver_id, content)

        # The pair lock keeps store and push order equal for one sender/receiver
        # pair; the sender lock covers only the store write, so a stalled push
        # to one receiver never holds up the sender's messages to anyone else.
        with self.pair_locks.hold((sender, receiver)):
            with self.sender_locks.hold(sender):
                try:
                    record = self.store.append(sender, receiver, content)
                except PersistenceError:
                    logger.warning(f"[persist-failed] sender={sender} receiver={receiver}")
                    raise
            logger.info(f"[send] message={record.id} sender={sender} receiver={receiver}")
            self._deliver_live(record)
        return record

    def _deliver_live(self, record: MessageRecord) -> bool:
        handle = self.registry.lookup(record.receiver_id)
        if handle is None:
            logger.debug(f"[deliver-skip] message={record.id} receiver={record.receiver_id} offline")
            return False
        try:
            self.deliver(handle, delivery_payload(record))
        except TransportError as err:
            logger.warning(f"[deliver-failed] message={record.id} receiver={record.receiver_id} {err.message}")
            # The handle is dead; drop it unless the receiver already reconnected
            self.registry.remove_if_current(record.receiver_id, handle)
            return False
        logger.info(f"[deliver] message={record.id} receiver={record.receiver_id} sid={handle.sid}")
        return True
