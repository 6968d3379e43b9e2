from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from roomchat.chat import PersistenceError, ValidationError


messages = Blueprint('messages', __name__)

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 200


def _chat():
    return current_app.extensions['chat']


@messages.route('', methods=['POST'])
@login_required
def send_message():
    """Send a direct message over HTTP; live delivery works as for sockets."""
    data = request.get_json(silent=True) or {}
    try:
        record = _chat().send(str(current_user.id), data.get('receiverId'), data.get('content'))
    except ValidationError as err:
        return jsonify({'error': err.message, **err.to_dict()}), 400
    except PersistenceError as err:
        current_app.logger.error(f"[http-send] user={current_user.id} {err.message}")
        return jsonify({'error': 'Message could not be stored', 'code': err.code}), 503
    return jsonify(record.to_dict()), 201


@messages.route('/<string:other_id>', methods=['GET'])
@login_required
def get_conversation(other_id):
    try:
        limit = int(request.args.get('limit', DEFAULT_HISTORY_LIMIT))
    except ValueError:
        return jsonify({'error': 'limit must be an integer', 'code': 'validation_error'}), 400
    limit = max(1, min(limit, MAX_HISTORY_LIMIT))
    records = _chat().store.conversation(str(current_user.id), other_id, limit=limit)
    return jsonify([r.to_dict() for r in records])


@messages.route('/presence/<string:user_id>', methods=['GET'])
@login_required
def get_presence(user_id):
    return jsonify({'user_id': user_id, 'online': _chat().is_online(user_id)})
