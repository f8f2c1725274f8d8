"""Per-participant session over a room store.

A ``SessionClient`` creates or joins one room, mirrors its state locally,
pushes local moves and applies remote snapshots. The mirror is disposable:
the room in the store is always the source of truth, and every remote
snapshot replaces local state wholesale (last writer wins).

The store can be the in-process ``RoomStore`` or a ``RemoteRoomStore``; both
expose ``create_identity``, ``create_room``, ``join_room``, ``update_board``,
``get_room`` and ``subscribe``.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from oxrooms.errors import InvalidMove, RoomStoreError
from oxrooms.services.rooms.rules import (
    FINISHED, PLAYING, WAITING, Mark, apply_move, compute_outcome, empty_board,
    next_turn, parse_board, parse_mark, parse_outcome, serialize_board, serialize_outcome, status_for,
)

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = 'idle'
    CREATING = 'creating'
    JOINING = 'joining'
    WAITING_FOR_OPPONENT = 'waiting_for_opponent'
    ACTIVE = 'active'
    FINISHED = 'finished'
    ERROR = 'error'


class Role(str, Enum):
    HOST = 'host'
    GUEST = 'guest'


ROLE_MARKS = {Role.HOST: Mark.X, Role.GUEST: Mark.O}


@dataclass(frozen=True)
class SessionView:
    """What the presentation layer renders."""
    room_code: Optional[str]
    role: Optional[Role]
    mark: Optional[Mark]
    board: List[Optional[Mark]] = field(default_factory=empty_board)
    turn: Mark = Mark.X
    outcome: Optional[object] = None
    status: Optional[str] = None
    connected: bool = False
    error_message: Optional[str] = None
    phase: Phase = Phase.IDLE
    guest_id: Optional[str] = None


class SessionClient:

    def __init__(self, store):
        self.store = store
        self._lock = threading.RLock()
        self._listeners: List[Callable[[SessionView], None]] = []
        self._game_over_listeners: List[Callable] = []
        self._subscription = None
        self._clear()

    def _clear(self):
        self.room_code = None
        self.role = None
        self.participant_id = None
        self.guest_id = None
        self.board = empty_board()
        self.turn = Mark.X
        self.outcome = None
        self.status = None
        self.connected = False
        self.error_message = None
        self.phase = Phase.IDLE

    # ---- Observation ----

    @property
    def mark(self) -> Optional[Mark]:
        return ROLE_MARKS.get(self.role)

    @property
    def view(self) -> SessionView:
        with self._lock:
            return SessionView(
                room_code=self.room_code,
                role=self.role,
                mark=self.mark,
                board=list(self.board),
                turn=self.turn,
                outcome=self.outcome,
                status=self.status,
                connected=self.connected,
                error_message=self.error_message,
                phase=self.phase,
                guest_id=self.guest_id,
            )

    def add_listener(self, callback: Callable[[SessionView], None]) -> None:
        self._listeners.append(callback)

    def add_game_over_listener(self, callback: Callable) -> None:
        """``callback(outcome, board, timestamp)`` fires once per finished game."""
        self._game_over_listeners.append(callback)

    def _notify(self, finished_game=None):
        view = self.view
        for callback in list(self._listeners):
            callback(view)
        if finished_game is not None:
            for callback in list(self._game_over_listeners):
                callback(*finished_game)

    def _fail(self, message: str, exc: Exception) -> None:
        logger.warning("%s: %s", message, exc)
        with self._lock:
            self.phase = Phase.ERROR
            self.error_message = message
        self._notify()

    # ---- Room lifecycle ----

    def create_room(self) -> Optional[str]:
        self.leave_room()
        with self._lock:
            self.phase = Phase.CREATING
        try:
            identity = self.store.create_identity()
            room = self.store.create_room(identity['id'])
        except RoomStoreError as exc:
            self._fail('Failed to create room', exc)
            return None
        with self._lock:
            self.participant_id = identity['id']
            self.role = Role.HOST
            self.room_code = room['code']
        if not self._attach(room):
            return None
        logger.info("created room %s as host", self.room_code)
        return self.room_code

    def join_room(self, code: str) -> Optional[str]:
        code = (code or '').strip().upper()
        if not code:
            return None
        self.leave_room()
        with self._lock:
            self.phase = Phase.JOINING
        try:
            identity = self.store.create_identity()
            room = self.store.join_room(code, identity['id'])
        except RoomStoreError as exc:
            self._fail('Failed to join room', exc)
            return None
        with self._lock:
            self.participant_id = identity['id']
            self.role = Role.GUEST
            self.room_code = room['code']
        if not self._attach(room):
            return None
        logger.info("joined room %s as guest", self.room_code)
        return self.room_code

    def _attach(self, room: dict) -> bool:
        """Subscribe, then re-read the room so a change racing the subscription is not lost."""
        self._apply_snapshot(room, notify=False)
        try:
            self._subscription = self.store.subscribe(room['code'], self.on_remote_update)
            latest = self.store.get_room(room['code'], self.participant_id)
        except RoomStoreError as exc:
            self._fail('Lost connection to room', exc)
            return False
        with self._lock:
            self.connected = True
            self.error_message = None
        self._apply_snapshot(latest, force_notify=True)
        return True

    def leave_room(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.unsubscribe()
            logger.info("left room %s", self.room_code)
        with self._lock:
            had_room = self.room_code is not None
            self._clear()
        if had_room:
            self._notify()

    # ---- Game actions ----

    def submit_move(self, cell_index: int) -> bool:
        with self._lock:
            if self.phase != Phase.ACTIVE or self.outcome is not None or self.turn != self.mark:
                return False
            try:
                board = apply_move(self.board, self.mark, cell_index)
            except InvalidMove:
                return False
            outcome = compute_outcome(board)
            self.board = board
            self.outcome = outcome
            if outcome is None:
                self.turn = next_turn(self.turn)
            self.status = status_for(outcome)
            self.phase = Phase.FINISHED if outcome is not None else Phase.ACTIVE
            finished_game = (outcome, list(board), time.time()) if outcome is not None else None
            state = self._wire_state()
        self._notify(finished_game)
        self._push(state)
        return True

    def reset_game(self) -> bool:
        with self._lock:
            if self.phase not in (Phase.ACTIVE, Phase.FINISHED):
                return False
            self.board = empty_board()
            self.turn = Mark.X
            self.outcome = None
            self.status = PLAYING
            self.phase = Phase.ACTIVE
            state = self._wire_state()
        self._notify()
        self._push(state)
        return True

    def _wire_state(self) -> dict:
        return {
            'board': serialize_board(self.board),
            'turn': self.turn.value,
            'outcome': serialize_outcome(self.outcome),
            'status': self.status,
        }

    def _push(self, state: dict) -> None:
        code, participant_id = self.room_code, self.participant_id
        try:
            self.store.update_board(code, participant_id=participant_id, **state)
        except RoomStoreError as exc:
            if code == self.room_code:
                self._fail('Failed to sync move', exc)

    # ---- Remote updates ----

    def on_remote_update(self, room: dict) -> None:
        """Store listener: a room snapshot, or ``{"code": ..., "closed": True}`` once the room is deleted."""
        if not room or room.get('code') != self.room_code or not self.connected:
            return
        if room.get('closed'):
            self._room_closed()
            return
        self._apply_snapshot(room)

    def _room_closed(self) -> None:
        logger.info("room %s was closed by the store", self.room_code)
        with self._lock:
            self._subscription = None
            self.connected = False
            self.phase = Phase.ERROR
            self.error_message = 'Room was closed'
        self._notify()

    def _apply_snapshot(self, room: dict, notify=True, force_notify=False) -> None:
        board = parse_board(room['board'])
        turn = parse_mark(room['turn'])
        outcome = parse_outcome(room['outcome'])
        status = room['status']
        guest_id = room.get('guest_id')
        with self._lock:
            if room['code'] != self.room_code:
                return
            phase = self._phase_for(status)
            changed = (board, turn, outcome, status, guest_id, phase) != (
                self.board, self.turn, self.outcome, self.status, self.guest_id, self.phase)
            finished_game = None
            if self.outcome is None and outcome is not None and self.status is not None:
                finished_game = (outcome, list(board), time.time())
            self.board, self.turn, self.outcome, self.status = board, turn, outcome, status
            self.guest_id = guest_id
            if self.phase == Phase.ERROR:
                # a fresh snapshot supersedes the failed sync
                self.error_message = None
            self.phase = phase
        if (notify and changed) or force_notify:
            self._notify(finished_game)

    def _phase_for(self, status: str) -> Phase:
        if status == WAITING:
            return Phase.WAITING_FOR_OPPONENT
        if status == FINISHED:
            return Phase.FINISHED
        return Phase.ACTIVE
