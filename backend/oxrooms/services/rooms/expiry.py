import time

from flask import current_app
from sqlalchemy import and_, or_, select

from oxrooms import db
from oxrooms.models import Participant, Room
from .rules import FINISHED, WAITING


def expire_rooms(store, now=None) -> int:
    """Delete stale rooms and the throwaway identities they leave behind.

    - finished rooms untouched for ROOM_FINISHED_TTL_SEC
    - waiting rooms nobody joined within ROOM_WAITING_TTL_SEC
    - any room idle for ROOM_IDLE_TTL_SEC (abandoned mid-game)

    Returns the number of rooms removed.
    """
    cfg = current_app.config
    now = time.time() if now is None else now
    waiting_ttl = int(cfg.get('ROOM_WAITING_TTL_SEC', 3600))
    finished_ttl = int(cfg.get('ROOM_FINISHED_TTL_SEC', 1800))
    idle_ttl = int(cfg.get('ROOM_IDLE_TTL_SEC', 86400))

    with store._guard('expire_rooms'):
        expired = Room.query.filter(or_(
            and_(Room.status == FINISHED, Room.updated_at < now - finished_ttl),
            and_(Room.status == WAITING, Room.created_at < now - waiting_ttl),
            Room.updated_at < now - idle_ttl,
        )).all()
        codes = [room.code for room in expired]
        for room in expired:
            db.session.delete(room)
        db.session.flush()

        hosts = select(Room.host_id)
        guests = select(Room.guest_id).where(Room.guest_id.isnot(None))
        orphans = Participant.query.filter(
            Participant.created_at < now - waiting_ttl,
            Participant.id.notin_(hosts),
            Participant.id.notin_(guests),
        ).delete(synchronize_session=False)
        db.session.commit()

    for code in codes:
        store.close_room(code)
    current_app.logger.info(f"[rooms-expire] rooms={len(codes)} participants={orphans}")
    return len(codes)
