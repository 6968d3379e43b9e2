"""Message store: durable, append-only persistence of direct messages."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError

from roomchat import db
from roomchat.models import Message, utcnow
from .errors import PersistenceError


@dataclass(frozen=True)
class MessageRecord:
    id: int
    sender_id: str
    receiver_id: str
    content: str
    timestamp: datetime

    @classmethod
    def from_model(cls, message: Message) -> 'MessageRecord':
        return cls(
            id=message.id,
            sender_id=message.sender_id,
            receiver_id=message.receiver_id,
            content=message.content,
            timestamp=message.timestamp,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'sender_id': self.sender_id,
            'receiver_id': self.receiver_id,
            'content': self.content,
            'timestamp': self.timestamp.isoformat(),
        }


class MessageStore(Protocol):
    def append(self, sender_id: str, receiver_id: str, content: str,
               timestamp: Optional[datetime] = None) -> MessageRecord:
        """Persist one message and return it with its store-assigned id.

        Raises PersistenceError if the message was not durably recorded.
        """
        ...


class SqlAlchemyMessageStore:
    """Message store backed by the application's SQLAlchemy session."""

    def append(self, sender_id, receiver_id, content, timestamp=None):
        message = Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            timestamp=timestamp or utcnow(),
        )
        try:
            db.session.add(message)
            # Read id and timestamp back before committing so nothing after the
            # commit can fail for a row that is already stored
            db.session.flush()
            db.session.refresh(message)
            record = MessageRecord.from_model(message)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError(f'could not store message: {exc.__class__.__name__}') from exc
        return record

    def conversation(self, user_a: str, user_b: str, limit: int = 50) -> List[MessageRecord]:
        """Messages exchanged between two users, oldest first (most recent ``limit``)."""
        rows = (
            Message.query
            .filter(or_(
                and_(Message.sender_id == user_a, Message.receiver_id == user_b),
                and_(Message.sender_id == user_b, Message.receiver_id == user_a),
            ))
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(limit)
            .all()
        )
        return [MessageRecord.from_model(m) for m in reversed(rows)]
