import time
from dataclasses import dataclass, field
from typing import List, Optional

from oxrooms.services.rooms.rules import DRAW, Mark


@dataclass
class PlayerInfo:
    name: str
    mark: Mark
    score: int = 0


@dataclass
class GameRecord:
    board: List[Optional[Mark]]
    outcome: object
    timestamp: float = field(default_factory=time.time)


class ScoreBoard:
    """Running tally and history of finished games for one device."""

    def __init__(self, x_name='Player 1', o_name='Player 2'):
        self.players = {
            Mark.X: PlayerInfo(x_name, Mark.X),
            Mark.O: PlayerInfo(o_name, Mark.O),
        }
        self.draws = 0
        self.history: List[GameRecord] = []

    def record(self, outcome, board, timestamp=None) -> GameRecord:
        if outcome is None:
            raise ValueError('Only finished games can be recorded')
        if outcome == DRAW:
            self.draws += 1
        else:
            self.players[Mark(outcome)].score += 1
        entry = GameRecord(list(board), outcome, timestamp if timestamp is not None else time.time())
        self.history.append(entry)
        return entry

    def attach(self, session) -> None:
        """Record every game a ``SessionClient`` or ``LocalGame`` finishes."""
        session.add_game_over_listener(self.record)

    def rename(self, mark, name) -> None:
        self.players[Mark(mark)].name = name

    def reset_scores(self) -> None:
        for player in self.players.values():
            player.score = 0
        self.draws = 0
        self.history = []

    def leader(self) -> Optional[PlayerInfo]:
        x, o = self.players[Mark.X], self.players[Mark.O]
        if x.score == o.score:
            return None
        return x if x.score > o.score else o
