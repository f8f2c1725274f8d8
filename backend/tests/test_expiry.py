import time

from oxrooms import db
from oxrooms.models import Participant, Room


def test_expire_rooms_applies_ttls(flask_app, store, fixed_codes):
    now = time.time()
    fixed_codes.extend(['WAIT01', 'FRESH1', 'DONE01', 'IDLE01'])
    host, guest = store.create_identity(), store.create_identity()
    for _ in range(4):
        store.create_room(host['id'])
    store.join_room('DONE01', guest['id'])
    store.update_board('DONE01', ['X', 'X', 'X', 'O', 'O', None, None, None, None], 'X', 'X', 'finished')
    store.join_room('IDLE01', store.create_identity()['id'])

    # Room.updated_at is maintained by onupdate; pin timestamps directly
    db.session.execute(Room.__table__.update().where(Room.code == 'WAIT01').values(created_at=now - 7200, updated_at=now - 7200))
    db.session.execute(Room.__table__.update().where(Room.code == 'DONE01').values(updated_at=now - 3600))
    db.session.execute(Room.__table__.update().where(Room.code == 'IDLE01').values(updated_at=now - 2 * 86400))
    db.session.commit()

    seen = []
    store.subscribe('DONE01', seen.append)
    assert store.expire_rooms(now=now) == 3
    assert [r.code for r in Room.query.all()] == ['FRESH1']
    assert 'DONE01' not in store._listeners
    assert seen == [{'code': 'DONE01', 'closed': True}]


def test_expire_removes_orphaned_participants(flask_app, store):
    old = store.create_identity()
    fresh = store.create_identity()
    db.session.get(Participant, old['id']).created_at = time.time() - 7200
    db.session.commit()
    store.expire_rooms()
    assert db.session.get(Participant, old['id']) is None
    assert db.session.get(Participant, fresh['id']) is not None


def test_rooms_expire_cli(flask_app):
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['rooms-expire'])
    assert 'Expired 0 room(s).' in result.output
