from oxrooms import db, bcrypt
from flask_login import UserMixin
import json
import random
import string
import time
import uuid

from oxrooms.services.rooms.rules import (
    Mark, WAITING, empty_board, parse_board, parse_outcome, serialize_board, serialize_outcome,
)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def _new_id():
    return str(uuid.uuid4())


def generate_room_code(length=6):
    """Generate a short room code. Uniqueness is enforced by the table."""
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def normalize_code(code):
    return (code or '').strip().upper()


class Participant(UserMixin, db.Model):
    """Throwaway identity minted per session so two strangers can play without signup."""
    __tablename__ = 'participant'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    token_hash = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.Float, nullable=False, default=time.time)

    def set_token(self, token):
        self.token_hash = bcrypt.generate_password_hash(token).decode('utf-8')

    def check_token(self, token):
        return bool(token) and bcrypt.check_password_hash(self.token_hash, token)


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    code = db.Column(db.String(12), unique=True, nullable=False, index=True)
    host_id = db.Column(db.String(36), db.ForeignKey('participant.id'), nullable=False)
    guest_id = db.Column(db.String(36), db.ForeignKey('participant.id'), nullable=True)
    board_json = db.Column('board', db.Text, nullable=False, default=lambda: json.dumps([None] * 9))
    turn = db.Column(db.String(1), nullable=False, default=Mark.X.value)
    outcome = db.Column(db.String(8), nullable=True)  # X, O, Draw
    status = db.Column(db.String(16), nullable=False, default=WAITING)  # waiting, playing, finished
    created_at = db.Column(db.Float, nullable=False, default=time.time)
    updated_at = db.Column(db.Float, nullable=False, default=time.time, onupdate=time.time)

    @property
    def board(self):
        return parse_board(json.loads(self.board_json)) if self.board_json else empty_board()

    @board.setter
    def board(self, cells):
        self.board_json = json.dumps(serialize_board(cells))

    def to_state(self):
        """Parsed game state, as consumed by the rules engine."""
        return {
            'board': self.board,
            'turn': Mark(self.turn),
            'outcome': parse_outcome(self.outcome),
            'status': self.status,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'host_id': self.host_id,
            'guest_id': self.guest_id,
            'board': serialize_board(self.board),
            'turn': self.turn,
            'outcome': serialize_outcome(parse_outcome(self.outcome)),
            'status': self.status,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }
