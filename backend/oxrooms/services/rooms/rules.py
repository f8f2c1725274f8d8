"""Tic-tac-toe rules: move validation, outcome detection and wire parsing.

Everything here is pure. Boards are lists of nine cells in row-major order,
each cell holding ``None``, ``Mark.X`` or ``Mark.O``.
"""

from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from oxrooms.errors import InvalidMove


class Mark(str, Enum):
    X = 'X'
    O = 'O'  # noqa: E741

    @property
    def other(self) -> 'Mark':
        return Mark.O if self is Mark.X else Mark.X


DRAW = 'Draw'

WAITING = 'waiting'
PLAYING = 'playing'
FINISHED = 'finished'
STATUSES = (WAITING, PLAYING, FINISHED)

Board = List[Optional[Mark]]
Outcome = Optional[Union[Mark, str]]

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


def empty_board() -> Board:
    return [None] * 9


def next_turn(mark: Mark) -> Mark:
    return Mark(mark).other


def compute_outcome(board: Sequence[Optional[Mark]]) -> Outcome:
    """Return the winning mark, ``DRAW`` for a full board, or ``None``.

    Lines are checked rows first, then columns, then diagonals; a board where
    both marks complete a line cannot arise from legal play.
    """
    for a, b, c in WINNING_LINES:
        if board[a] is not None and board[a] == board[b] == board[c]:
            return Mark(board[a])
    if all(cell is not None for cell in board):
        return DRAW
    return None


def apply_move(board: Sequence[Optional[Mark]], mark: Mark, cell_index: int) -> Board:
    """Return a copy of ``board`` with ``mark`` placed on ``cell_index``."""
    if isinstance(cell_index, bool) or not isinstance(cell_index, int):
        raise InvalidMove(f'Cell index must be an integer, got {cell_index!r}')
    if not 0 <= cell_index < 9:
        raise InvalidMove(f'Cell index {cell_index} is out of range')
    if compute_outcome(board) is not None:
        raise InvalidMove('The game is already over')
    if board[cell_index] is not None:
        raise InvalidMove(f'Cell {cell_index} is already occupied')
    new_board = list(board)
    new_board[cell_index] = Mark(mark)
    return new_board


def status_for(outcome: Outcome) -> str:
    return FINISHED if outcome is not None else PLAYING


# ---- Wire parsing ----

def parse_mark(raw) -> Mark:
    try:
        return Mark(raw)
    except ValueError:
        raise InvalidMove(f'Unknown mark {raw!r}') from None


def parse_board(raw) -> Board:
    if not isinstance(raw, (list, tuple)) or len(raw) != 9:
        raise InvalidMove('Board must be a list of 9 cells')
    return [None if cell is None else parse_mark(cell) for cell in raw]


def parse_outcome(raw) -> Outcome:
    if raw is None:
        return None
    if raw == DRAW:
        return DRAW
    return parse_mark(raw)


def parse_status(raw) -> str:
    if raw not in STATUSES:
        raise InvalidMove(f'Unknown status {raw!r}')
    return raw


def serialize_board(board: Sequence[Optional[Mark]]) -> List[Optional[str]]:
    return [None if cell is None else Mark(cell).value for cell in board]


def serialize_outcome(outcome: Outcome) -> Optional[str]:
    if outcome is None or outcome == DRAW:
        return outcome
    return Mark(outcome).value


# ---- Server-side validation ----

def check_transition(before: dict, after: dict, mover: Optional[Mark] = None) -> None:
    """Validate that ``after`` follows from ``before`` by one legal move or a reset.

    Both arguments are parsed states with ``board``, ``turn``, ``outcome`` and
    ``status`` keys. ``mover`` is the mark of the writer when known; a move
    must then be that writer's own. Raises ``InvalidMove`` for anything else.
    """
    board = after['board']
    if board == empty_board():
        if after['turn'] != Mark.X or after['outcome'] is not None or after['status'] != PLAYING:
            raise InvalidMove('A reset must start a new game with X to move')
        return

    if mover is not None and mover != before['turn']:
        raise InvalidMove(f'It is {before["turn"].value}\'s turn')
    placed = [i for i in range(9) if before['board'][i] != board[i]]
    if len(placed) != 1:
        raise InvalidMove('Exactly one cell may change per move')
    cell = placed[0]
    if before['board'][cell] is not None:
        raise InvalidMove(f'Cell {cell} is already occupied')
    if board[cell] != before['turn']:
        raise InvalidMove(f'It is {before["turn"].value}\'s turn')

    expected_board = apply_move(before['board'], before['turn'], cell)
    outcome = compute_outcome(expected_board)
    turn = before['turn'] if outcome is not None else next_turn(before['turn'])
    if after['outcome'] != outcome or after['status'] != status_for(outcome):
        raise InvalidMove('Outcome does not match the board')
    if outcome is None and after['turn'] != turn:
        raise InvalidMove('Turn was not passed to the other player')
