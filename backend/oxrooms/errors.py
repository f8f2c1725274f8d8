"""Error kinds shared by the room store, its network surfaces and the client."""


class RoomStoreError(Exception):
    code = 'store_error'
    http_status = 500
    default_message = 'Room store error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class StoreUnavailable(RoomStoreError):
    code = 'store_unavailable'
    http_status = 503
    default_message = 'Room store is unavailable'


class RoomNotFound(RoomStoreError):
    code = 'room_not_found'
    http_status = 404
    default_message = 'Room not found'


class RoomFull(RoomStoreError):
    code = 'room_full'
    http_status = 409
    default_message = 'Room is full'


class AccessDenied(RoomStoreError):
    code = 'access_denied'
    http_status = 403
    default_message = 'You are not a participant in this room'


class IdentityCreationFailed(RoomStoreError):
    code = 'identity_creation_failed'
    http_status = 503
    default_message = 'Could not create a participant identity'


class InvalidMove(RoomStoreError, ValueError):
    code = 'invalid_move'
    http_status = 400
    default_message = 'Invalid move'


_BY_CODE = {
    cls.code: cls
    for cls in (StoreUnavailable, RoomNotFound, RoomFull, AccessDenied, IdentityCreationFailed, InvalidMove)
}


def error_for(code, message=None) -> RoomStoreError:
    """Rebuild an exception from a wire error code; unknown codes become StoreUnavailable."""
    return _BY_CODE.get(code, StoreUnavailable)(message)
