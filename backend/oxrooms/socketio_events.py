from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from oxrooms import room_store
from oxrooms.errors import AccessDenied, RoomStoreError
from oxrooms.services.rooms.store import NAMESPACE, channel_for
from typing import Dict, Any


# Socket id -> {'participant_id': ..., 'rooms': set of subscribed codes, 'namespace': ...}
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _ctx() -> Dict[str, Any]:
    return _sid_to_ctx.setdefault(
        _get_sid(), {'participant_id': None, 'rooms': set(), 'namespace': request.namespace}
    )


def _participant_id():
    return _ctx().get('participant_id')


def _require_participant():
    participant_id = _participant_id()
    if not participant_id:
        raise AccessDenied('Call identify before using rooms')
    return participant_id


def _ok(**payload):
    return {'ok': True, **payload}


def _fail(exc: RoomStoreError):
    return {'ok': False, **exc.to_dict()}


def _code(data):
    return ((data or {}).get('code') or '').strip().upper()


def handle_connect():
    _ctx()
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*args):
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if ctx and ctx.get('participant_id'):
        current_app.logger.info(f"[ws-disconnect] participant={ctx['participant_id']} rooms={sorted(ctx['rooms'])}")


def handle_identify(data):
    """Bind this socket to a participant, minting a new one unless valid credentials are given."""
    data = data or {}
    try:
        if data.get('id'):
            participant = room_store.authenticate(data.get('id'), data.get('token'))
            if participant is None:
                raise AccessDenied('Invalid participant credentials')
            identity = {'id': participant.id}
        else:
            identity = room_store.create_identity()
    except RoomStoreError as exc:
        return _fail(exc)
    _ctx()['participant_id'] = identity['id']
    return _ok(participant=identity)


def handle_create_room(data=None):
    try:
        room = room_store.create_room(_require_participant())
    except RoomStoreError as exc:
        return _fail(exc)
    return _ok(room=room)


def handle_join_room(data):
    code = _code(data)
    if not code:
        return {'ok': False, 'error': 'missing_code', 'message': 'Room code is required'}
    try:
        room = room_store.join_room(code, _require_participant())
    except RoomStoreError as exc:
        return _fail(exc)
    return _ok(room=room)


def handle_update_board(data):
    data = data or {}
    try:
        room = room_store.update_board(
            _code(data),
            data.get('board'),
            data.get('turn'),
            data.get('outcome'),
            data.get('status'),
            participant_id=_require_participant(),
        )
    except RoomStoreError as exc:
        return _fail(exc)
    return _ok(room=room)


def handle_get_room(data):
    try:
        room = room_store.get_room(_code(data), _participant_id())
    except RoomStoreError as exc:
        return _fail(exc)
    return _ok(room=room)


def handle_subscribe(data):
    code = _code(data)
    try:
        room = room_store.get_room(code, _participant_id())
    except RoomStoreError as exc:
        return _fail(exc)
    join_room(channel_for(code))
    _ctx()['rooms'].add(code)
    return _ok(room=room)


def handle_unsubscribe(data):
    code = _code(data)
    leave_room(channel_for(code))
    _ctx()['rooms'].discard(code)
    return _ok()


def evict_outsiders(room: dict) -> None:
    """Remove sockets of non-players from a room's channel once it has left ``waiting``."""
    code = room['code']
    players = {room.get('host_id'), room.get('guest_id')}
    channel = channel_for(code)
    for sid, ctx in list(_sid_to_ctx.items()):
        if code in ctx['rooms'] and ctx.get('participant_id') not in players:
            leave_room(channel, sid=sid, namespace=ctx.get('namespace') or NAMESPACE)
            ctx['rooms'].discard(code)
            current_app.logger.info(f"[ws-evict] code={code} participant={ctx.get('participant_id')}")


def handle_ping(data):
    emit('pong', data or {})


_HANDLERS = (
    ('connect', handle_connect),
    ('disconnect', handle_disconnect),
    ('identify', handle_identify),
    ('create_room', handle_create_room),
    ('join_room', handle_join_room),
    ('update_board', handle_update_board),
    ('get_room', handle_get_room),
    ('subscribe', handle_subscribe),
    ('unsubscribe', handle_unsubscribe),
    ('ping', handle_ping),
)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from oxrooms import socketio

    for event, handler in _HANDLERS:
        socketio.on_event(event, handler, namespace=NAMESPACE)

    if testing:
        for event, handler in _HANDLERS:
            socketio.on_event(event, handler, namespace='/')
