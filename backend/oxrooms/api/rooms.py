from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, login_user, current_user
from oxrooms import db, room_store
from oxrooms.errors import RoomStoreError
from oxrooms.models import Participant


rooms = Blueprint('rooms', __name__)


@rooms.errorhandler(RoomStoreError)
def handle_store_error(exc):
    return jsonify(exc.to_dict()), exc.http_status


def _caller_id():
    return current_user.get_id() if current_user.is_authenticated else None


@rooms.route('/identity', methods=['POST'])
def create_identity():
    """
    Mints an anonymous participant and logs it in for this browser session.
    The token is only ever returned here; send it back as a bearer token.
    """
    identity = room_store.create_identity()
    participant = db.session.get(Participant, identity['id'])
    login_user(participant)
    return jsonify(identity), 201


@rooms.route('/rooms', methods=['POST'])
@login_required
def create_room():
    """
    Creates a waiting room hosted by the current participant.
    """
    room = room_store.create_room(current_user.id)
    return jsonify(room), 201


@rooms.route('/rooms/join', methods=['POST'])
@login_required
def join_room():
    """
    Joins a waiting room as its guest. Codes are case-insensitive.
    """
    data = request.get_json(silent=True) or {}
    code = (data.get('code') or '').strip()
    if not code:
        return jsonify({'error': 'missing_code', 'message': 'Room code is required'}), 400
    room = room_store.join_room(code, current_user.id)
    return jsonify(room), 200


@rooms.route('/rooms/<string:code>', methods=['GET'])
def get_room(code):
    room = room_store.get_room(code, _caller_id())
    return jsonify(room), 200


@rooms.route('/rooms/<string:code>/board', methods=['PUT'])
@login_required
def update_board(code):
    """
    Overwrites board, turn, outcome and status. Only the host or guest may write.
    """
    data = request.get_json(silent=True) or {}
    missing = [k for k in ('board', 'turn', 'status') if k not in data]
    if missing:
        return jsonify({'error': 'invalid_move', 'message': f"Missing fields: {', '.join(missing)}"}), 400
    room = room_store.update_board(
        code,
        data['board'],
        data['turn'],
        data.get('outcome'),
        data['status'],
        participant_id=current_user.id,
    )
    current_app.logger.debug(f"[http-update] code={room['code']} by={current_user.id}")
    return jsonify(room), 200
