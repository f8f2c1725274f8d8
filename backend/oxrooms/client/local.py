import time
from typing import Callable, List

from oxrooms.errors import InvalidMove
from oxrooms.services.rooms.rules import Mark, apply_move, compute_outcome, empty_board, next_turn


class LocalGame:
    """Two players sharing one device: no store, marks simply alternate."""

    def __init__(self, scoreboard=None):
        self._game_over_listeners: List[Callable] = []
        self.reset()
        if scoreboard is not None:
            scoreboard.attach(self)

    def add_game_over_listener(self, callback: Callable) -> None:
        self._game_over_listeners.append(callback)

    def submit_move(self, cell_index: int) -> bool:
        try:
            board = apply_move(self.board, self.turn, cell_index)
        except InvalidMove:
            return False
        self.board = board
        self.move_count += 1
        self.outcome = compute_outcome(board)
        if self.outcome is None:
            self.turn = next_turn(self.turn)
        else:
            for callback in list(self._game_over_listeners):
                callback(self.outcome, list(board), time.time())
        return True

    def reset(self) -> None:
        self.board = empty_board()
        self.turn = Mark.X
        self.outcome = None
        self.move_count = 0
