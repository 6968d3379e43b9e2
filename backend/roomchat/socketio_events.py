from flask import current_app, request, session
from flask_login import current_user
from flask_socketio import emit
from roomchat import socketio
from roomchat.chat import ChatError, ConnectionHandle, TransportError, ValidationError
from roomchat.chat.relay import normalize_user_id

# Key in the connection's private Socket.IO session holding its registered identity
SESSION_USER_KEY = 'chat_user_id'


def _chat():
    return current_app.extensions['chat']


def _current_handle() -> ConnectionHandle:
    return ConnectionHandle(request.sid, request.namespace)  # type: ignore


def deliver_event(handle: ConnectionHandle, payload: dict) -> None:
    """Push a receiveMessage event onto one connection's outbound channel."""
    try:
        socketio.emit('receiveMessage', payload, to=handle.sid, namespace=handle.namespace)
    except Exception as exc:
        raise TransportError(f'push to sid={handle.sid} failed: {exc}') from exc


def handle_connect(auth=None):
    if current_app.config.get('CHAT_REQUIRE_AUTH') and not current_user.is_authenticated:
        current_app.logger.info(f"[connect-refused] sid={request.sid} unauthenticated")  # type: ignore
        return False
    emit('connected', {'message': f'Connected to {request.namespace}'})  # type: ignore


def handle_disconnect(reason=None):
    user_id = session.get(SESSION_USER_KEY)
    _chat().disconnect(user_id, _current_handle())


def handle_register(data):
    raw = data
    if isinstance(data, dict):
        raw = data.get('userId', data.get('user_id'))
    try:
        user_id = normalize_user_id(raw, 'userId')
    except ValidationError as err:
        emit('error', err.to_dict())
        return
    if current_user.is_authenticated and str(current_user.id) != user_id:
        emit('error', {'code': 'forbidden', 'message': 'Cannot register as another user'})
        return

    handle = _current_handle()
    previous_user = session.get(SESSION_USER_KEY)
    if previous_user and previous_user != user_id:
        # Same connection switching identity: release the old entry first
        _chat().disconnect(previous_user, handle)
    session[SESSION_USER_KEY] = user_id
    _chat().register(user_id, handle)
    emit('registered', {'userId': user_id})


def handle_send_message(data):
    sender_id = session.get(SESSION_USER_KEY)
    if not sender_id:
        emit('error', {'code': 'not_registered', 'message': 'Register before sending messages'})
        return
    if not isinstance(data, dict):
        data = {}
    try:
        # Any senderId in the payload is ignored; the connection's identity is authoritative
        record = _chat().send(sender_id, data.get('receiverId'), data.get('content'))
    except ChatError as err:
        emit('error', err.to_dict())
        return
    payload = record.to_dict()
    emit('message_sent', payload)
    return payload


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register the chat Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('register', handle_register, namespace=namespace)
    socketio.on_event('sendMessage', handle_send_message, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
