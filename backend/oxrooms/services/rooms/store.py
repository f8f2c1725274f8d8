import secrets
import threading
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from oxrooms import db, socketio
from oxrooms.errors import (
    AccessDenied, IdentityCreationFailed, InvalidMove, RoomFull, RoomNotFound, StoreUnavailable,
)
from oxrooms.models import Participant, Room, generate_room_code, normalize_code
from .rules import (
    FINISHED, PLAYING, WAITING, Mark, check_transition, compute_outcome, empty_board,
    parse_board, parse_mark, parse_outcome, parse_status, serialize_outcome,
)

NAMESPACE = '/ws'

Listener = Callable[[dict], None]


def channel_for(code: str) -> str:
    return f"room:{normalize_code(code)}"


class Subscription:
    """Handle returned by ``RoomStore.subscribe``; ``unsubscribe`` is idempotent."""

    def __init__(self, store: 'RoomStore', code: str, callback: Listener):
        self.store = store
        self.code = code
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.store._remove_listener(self.code, self.callback)


class RoomStore:
    """Durable room state plus change notification.

    Every operation runs in a single database transaction. Committed changes
    are fanned out to in-process listeners and to the Socket.IO channel
    ``room:<CODE>`` on the ``/ws`` namespace.
    """

    def __init__(self, app=None, code_factory=generate_room_code):
        self.code_factory = code_factory
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions['room_store'] = self
        with self._lock:
            self._listeners.clear()

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"[store-error] action={action} error={exc}")
            raise StoreUnavailable() from exc

    # ---- Identity ----

    def create_identity(self) -> dict:
        token = secrets.token_urlsafe(24)
        participant = Participant()
        try:
            participant.set_token(token)
            db.session.add(participant)
            db.session.commit()
        except (SQLAlchemyError, ValueError) as exc:
            db.session.rollback()
            current_app.logger.error(f"[identity-error] error={exc}")
            raise IdentityCreationFailed() from exc
        current_app.logger.info(f"[identity] participant={participant.id}")
        return {'id': participant.id, 'token': token}

    def authenticate(self, participant_id, token) -> Optional[Participant]:
        if not participant_id or not token:
            return None
        with self._guard('authenticate'):
            participant = db.session.get(Participant, str(participant_id))
        if participant and participant.check_token(token):
            return participant
        return None

    def _require_participant(self, participant_id) -> None:
        if not participant_id or db.session.get(Participant, str(participant_id)) is None:
            raise AccessDenied('Unknown participant')

    # ---- Rooms ----

    def create_room(self, host_id) -> dict:
        cfg = current_app.config
        attempts = max(1, int(cfg.get('ROOM_CODE_ATTEMPTS', 5)))
        length = int(cfg.get('ROOM_CODE_LENGTH', 6))
        with self._guard('create_room'):
            self._require_participant(host_id)
            for attempt in range(1, attempts + 1):
                code = normalize_code(self.code_factory(length))
                room = Room(code=code, host_id=host_id, turn=Mark.X.value, status=WAITING)
                room.board = empty_board()
                db.session.add(room)
                try:
                    db.session.commit()
                except IntegrityError:
                    db.session.rollback()
                    current_app.logger.info(f"[room-code-collision] code={code} attempt={attempt}")
                    continue
                current_app.logger.info(f"[room-create] code={code} host={host_id}")
                return room.to_dict()
        raise StoreUnavailable(f'Could not allocate a unique room code after {attempts} attempts')

    def join_room(self, code, guest_id) -> dict:
        """Attach ``guest_id`` to a waiting room; exactly one concurrent join can win."""
        code = normalize_code(code)
        with self._guard('join_room'):
            self._require_participant(guest_id)
            result = db.session.execute(
                update(Room)
                .where(Room.code == code, Room.status == WAITING, Room.guest_id.is_(None))
                .values(guest_id=str(guest_id), status=PLAYING)
                .execution_options(synchronize_session=False)
            )
            db.session.commit()
            room = Room.query.filter_by(code=code).first()
            if result.rowcount != 1:
                if room is None:
                    raise RoomNotFound(f'No room with code {code}')
                current_app.logger.info(f"[room-join-rejected] code={code} guest={guest_id}")
                raise RoomFull(f'Room {code} already has two players')
            snapshot = room.to_dict()
        current_app.logger.info(f"[room-join] code={code} guest={guest_id}")
        # Spectators of the waiting room lose read access once it starts
        from oxrooms.socketio_events import evict_outsiders
        evict_outsiders(snapshot)
        self._publish(snapshot)
        return snapshot

    def update_board(self, code, board, turn, outcome, status, participant_id=None) -> dict:
        """Overwrite the mutable game fields of a room (last writer wins)."""
        code = normalize_code(code)
        after = {
            'board': parse_board(board),
            'turn': parse_mark(turn),
            'outcome': parse_outcome(outcome),
            'status': parse_status(status),
        }
        if after['status'] == WAITING or (after['status'] == FINISHED) != (after['outcome'] is not None):
            raise InvalidMove('Status does not agree with outcome')
        if after['outcome'] != compute_outcome(after['board']):
            raise InvalidMove('Outcome does not match the board')

        with self._guard('update_board'):
            room = Room.query.filter_by(code=code).first()
            if room is None:
                raise RoomNotFound(f'No room with code {code}')
            current = room.to_dict()
            if participant_id is not None and not self.can_update(current, participant_id):
                raise AccessDenied()
            if room.status == WAITING:
                raise InvalidMove('Room is still waiting for an opponent')
            if current_app.config.get('ENFORCE_TURN_ORDER'):
                check_transition(room.to_state(), after, mover=self.mark_for(current, participant_id))
            room.board = after['board']
            room.turn = after['turn'].value
            room.outcome = serialize_outcome(after['outcome'])
            room.status = after['status']
            db.session.commit()
            snapshot = room.to_dict()
        current_app.logger.info(
            f"[room-update] code={code} by={participant_id} turn={snapshot['turn']} "
            f"outcome={snapshot['outcome']} status={snapshot['status']}"
        )
        self._publish(snapshot)
        return snapshot

    def get_room(self, code, participant_id=None) -> dict:
        code = normalize_code(code)
        with self._guard('get_room'):
            room = Room.query.filter_by(code=code).first()
            if room is None:
                raise RoomNotFound(f'No room with code {code}')
            snapshot = room.to_dict()
        if not self.can_read(snapshot, participant_id):
            raise AccessDenied()
        return snapshot

    # ---- Access control ----

    @staticmethod
    def can_read(snapshot: dict, participant_id) -> bool:
        if snapshot['status'] == WAITING and snapshot['guest_id'] is None:
            return True
        return participant_id is not None and str(participant_id) in (snapshot['host_id'], snapshot['guest_id'])

    @staticmethod
    def can_update(snapshot: dict, participant_id) -> bool:
        return participant_id is not None and str(participant_id) in (snapshot['host_id'], snapshot['guest_id'])

    @staticmethod
    def mark_for(snapshot: dict, participant_id) -> Optional[Mark]:
        if participant_id is None:
            return None
        if str(participant_id) == snapshot['host_id']:
            return Mark.X
        if str(participant_id) == snapshot['guest_id']:
            return Mark.O
        return None

    # ---- Notification ----

    def subscribe(self, code, callback: Listener) -> Subscription:
        code = normalize_code(code)
        with self._lock:
            self._listeners.setdefault(code, []).append(callback)
        return Subscription(self, code, callback)

    def _remove_listener(self, code: str, callback: Listener) -> None:
        with self._lock:
            listeners = self._listeners.get(code, [])
            if callback in listeners:
                listeners.remove(callback)
            if not listeners:
                self._listeners.pop(code, None)

    def _publish(self, snapshot: dict) -> None:
        code = snapshot['code']
        with self._lock:
            listeners = list(self._listeners.get(code, ()))
        for callback in listeners:
            try:
                callback({**snapshot, 'board': list(snapshot['board'])})
            except Exception:
                current_app.logger.exception(f"[listener-error] code={code}")
        socketio.emit('room_update', snapshot, to=channel_for(code), namespace=NAMESPACE)

    def close_room(self, code) -> None:
        """Tell listeners and socket subscribers that a deleted room is gone, then drop them.

        In-process listeners receive ``{"code": code, "closed": True}``.
        """
        code = normalize_code(code)
        with self._lock:
            listeners = self._listeners.pop(code, [])
        for callback in listeners:
            try:
                callback({'code': code, 'closed': True})
            except Exception:
                current_app.logger.exception(f"[listener-error] code={code}")
        socketio.emit('room_closed', {'code': code}, to=channel_for(code), namespace=NAMESPACE)

    def expire_rooms(self, now=None) -> int:
        from .expiry import expire_rooms
        return expire_rooms(self, now=now)
