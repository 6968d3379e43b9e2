from datetime import datetime, timezone

from roomchat import db, bcrypt
from flask_login import UserMixin


# Width of the sender_id / receiver_id columns
USER_ID_LENGTH = 64


def utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class Message(db.Model):
    """A persisted direct message. Rows are only ever inserted."""
    __tablename__ = 'message'
    id = db.Column(db.Integer, primary_key=True)
    # Identities are opaque strings issued by the auth layer; not re-validated here
    sender_id = db.Column(db.String(USER_ID_LENGTH), nullable=False, index=True)
    receiver_id = db.Column(db.String(USER_ID_LENGTH), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'sender_id': self.sender_id,
            'receiver_id': self.receiver_id,
            'content': self.content,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }
