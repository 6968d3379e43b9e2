class ChatError(Exception):
    """Base class for errors raised by the chat core."""

    code = 'chat_error'

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'code': self.code, 'message': self.message}


class ValidationError(ChatError):
    """Malformed input to a send request."""

    code = 'validation_error'

    def __init__(self, message: str = '', field: str = None):
        super().__init__(message)
        self.field = field

    def to_dict(self):
        payload = super().to_dict()
        if self.field:
            payload['field'] = self.field
        return payload


class PersistenceError(ChatError):
    """The message store could not durably record a message."""

    code = 'persistence_error'


class TransportError(ChatError):
    """A live push to a connection failed (the channel went away)."""

    code = 'transport_error'
