"""Room store contract spoken over Socket.IO to a running oxrooms server."""

import logging
import threading
from typing import Callable, Dict, List, Optional

import socketio
from socketio.exceptions import SocketIOError

from oxrooms.errors import AccessDenied, StoreUnavailable, error_for
from oxrooms.models import normalize_code

logger = logging.getLogger(__name__)

NAMESPACE = '/ws'


class RemoteSubscription:

    def __init__(self, store: 'RemoteRoomStore', code: str, callback: Callable[[dict], None]):
        self.store = store
        self.code = code
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.store._remove_listener(self.code, self.callback)


class RemoteRoomStore:
    """Client side of the room store.

    Requests are Socket.IO events acknowledged with ``{"ok": ...}`` payloads;
    failed acks are turned back into the matching ``RoomStoreError`` and
    transport failures into ``StoreUnavailable``. ``room_update`` pushes are
    dispatched to the listeners registered through ``subscribe``; a
    ``room_closed`` push reaches them as ``{"code": ..., "closed": True}``.
    """

    def __init__(self, url: Optional[str] = None, sio=None, namespace: str = NAMESPACE, timeout: int = 60):
        self.url = url
        self.namespace = namespace
        self.timeout = timeout
        self.sio = sio if sio is not None else socketio.Client()
        self.participant = None
        self._listeners: Dict[str, List[Callable[[dict], None]]] = {}
        self._lock = threading.Lock()
        self.sio.on('room_update', self._on_room_update, namespace=namespace)
        self.sio.on('room_closed', self._on_room_closed, namespace=namespace)

    def connect(self) -> None:
        try:
            self.sio.connect(self.url, namespaces=[self.namespace])
        except SocketIOError as exc:
            raise StoreUnavailable(f'Could not connect to {self.url}') from exc

    def close(self) -> None:
        with self._lock:
            self._listeners.clear()
        self.sio.disconnect()

    def _call(self, event: str, data: Optional[dict] = None) -> dict:
        try:
            ack = self.sio.call(event, data or {}, namespace=self.namespace, timeout=self.timeout)
        except SocketIOError as exc:
            logger.warning("room store call %s failed: %s", event, exc)
            raise StoreUnavailable(str(exc) or None) from exc
        if not isinstance(ack, dict):
            raise StoreUnavailable(f'Malformed reply to {event}')
        if not ack.get('ok'):
            raise error_for(ack.get('error'), ack.get('message'))
        return ack

    # ---- Store contract ----

    def create_identity(self) -> dict:
        """Mint a fresh participant; this connection acts as it from now on."""
        self.participant = self._call('identify')['participant']
        return self.participant

    def identify(self, participant_id: str, token: str) -> dict:
        self.participant = self._call('identify', {'id': participant_id, 'token': token})['participant']
        return self.participant

    def _check_identity(self, participant_id) -> None:
        if participant_id is not None and (self.participant or {}).get('id') != participant_id:
            raise AccessDenied('This connection is bound to another participant')

    def create_room(self, host_id) -> dict:
        self._check_identity(host_id)
        return self._call('create_room')['room']

    def join_room(self, code, guest_id) -> dict:
        self._check_identity(guest_id)
        return self._call('join_room', {'code': code})['room']

    def update_board(self, code, board, turn, outcome, status, participant_id=None) -> dict:
        self._check_identity(participant_id)
        return self._call('update_board', {
            'code': code,
            'board': board,
            'turn': turn,
            'outcome': outcome,
            'status': status,
        })['room']

    def get_room(self, code, participant_id=None) -> dict:
        self._check_identity(participant_id)
        return self._call('get_room', {'code': code})['room']

    def subscribe(self, code, callback: Callable[[dict], None]) -> RemoteSubscription:
        code = normalize_code(code)
        with self._lock:
            first = code not in self._listeners
            self._listeners.setdefault(code, []).append(callback)
        if first:
            try:
                self._call('subscribe', {'code': code})
            except Exception:
                self._remove_listener(code, callback, notify_server=False)
                raise
        return RemoteSubscription(self, code, callback)

    def _remove_listener(self, code: str, callback, notify_server: bool = True) -> None:
        with self._lock:
            listeners = self._listeners.get(code, [])
            if callback in listeners:
                listeners.remove(callback)
            last = not listeners and self._listeners.pop(code, None) is not None
        if last and notify_server and self.sio.connected:
            try:
                self._call('unsubscribe', {'code': code})
            except StoreUnavailable as exc:
                logger.info("unsubscribe from %s not acknowledged: %s", code, exc)

    # ---- Push handlers ----

    def _on_room_update(self, room):
        code = (room or {}).get('code')
        with self._lock:
            listeners = list(self._listeners.get(code, ()))
        for callback in listeners:
            callback(dict(room))

    def _on_room_closed(self, data):
        code = (data or {}).get('code')
        with self._lock:
            listeners = self._listeners.pop(code, [])
        logger.info("room %s was closed by the server", code)
        for callback in listeners:
            callback({'code': code, 'closed': True})
