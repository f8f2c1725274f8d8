"""Unit tests for the tic-tac-toe rules engine."""

import pytest

from oxrooms.errors import InvalidMove
from oxrooms.services.rooms.rules import (
    DRAW, PLAYING, FINISHED, WINNING_LINES, Mark, apply_move, check_transition,
    compute_outcome, empty_board, next_turn, parse_board, parse_outcome,
)

X, O = Mark.X, Mark.O


def board_from(text):
    """'XO.X.O...' -> board, '.' is empty."""
    return [None if ch == '.' else Mark(ch) for ch in text]


@pytest.mark.parametrize('line', WINNING_LINES)
@pytest.mark.parametrize('mark', [X, O])
def test_every_line_wins(line, mark):
    board = empty_board()
    for i in line:
        board[i] = mark
    # One stray opposing mark that cannot complete a line
    stray = next(i for i in range(9) if i not in line)
    board[stray] = mark.other
    assert compute_outcome(board) == mark


def test_full_board_without_line_is_draw():
    # Scenario C: X O X / X O O / O X X
    assert compute_outcome(board_from('XOXXOOOXX')) == DRAW


def test_partial_board_has_no_outcome():
    assert compute_outcome(empty_board()) is None
    assert compute_outcome(board_from('XO.......')) is None


def test_win_on_last_cell_is_not_a_draw():
    assert compute_outcome(board_from('XOXOXOOXX')) == X


def test_apply_move_does_not_mutate_and_is_pure():
    board = board_from('X...O....')
    snapshot = list(board)
    first = apply_move(board, X, 8)
    second = apply_move(board, X, 8)
    assert board == snapshot
    assert first == second
    assert first[8] == X
    assert first is not board


@pytest.mark.parametrize('cell', [-1, 9, 100, '3', 1.0, True, None])
def test_apply_move_rejects_bad_index(cell):
    board = empty_board()
    with pytest.raises(InvalidMove):
        apply_move(board, X, cell)
    assert board == empty_board()


def test_apply_move_rejects_occupied_cell():
    board = board_from('X........')
    with pytest.raises(InvalidMove):
        apply_move(board, O, 0)
    assert board == board_from('X........')


def test_apply_move_rejects_finished_game():
    board = board_from('XXXOO....')
    with pytest.raises(InvalidMove):
        apply_move(board, O, 5)


def test_marks_alternate_in_sequence():
    board, turn = empty_board(), X
    played = []
    for cell in (4, 0, 8, 2, 6, 1, 7, 3, 5):
        if compute_outcome(board) is not None:
            break
        board = apply_move(board, turn, cell)
        played.append(board[cell])
        turn = next_turn(turn)
    assert played == [X, O, X, O, X, O, X, O, X][:len(played)]


def test_parse_rejects_malformed_wire_values():
    with pytest.raises(InvalidMove):
        parse_board(['X'] * 8)
    with pytest.raises(InvalidMove):
        parse_board(['Z'] + [None] * 8)
    with pytest.raises(InvalidMove):
        parse_outcome('draw')
    assert parse_outcome('Draw') == DRAW
    assert parse_board(['X', 'O'] + [None] * 7)[:2] == [X, O]


def state(board, turn, outcome=None, status=PLAYING):
    return {'board': board, 'turn': turn, 'outcome': outcome, 'status': status}


def test_check_transition_accepts_single_move_and_reset():
    before = state(board_from('X........'), O)
    check_transition(before, state(board_from('X...O....'), X), mover=O)
    check_transition(before, state(empty_board(), X))


def test_check_transition_accepts_winning_move():
    before = state(board_from('XX.OO....'), X)
    check_transition(before, state(board_from('XXXOO....'), X, X, FINISHED), mover=X)


@pytest.mark.parametrize('after, mover', [
    (state(board_from('X...X....'), O), None),   # wrong mark placed
    (state(board_from('X...O...O'), X), O),      # two cells changed
    (state(board_from('O........'), X), O),      # overwrote a cell
    (state(board_from('X...O....'), O), O),      # turn not passed
    (state(board_from('X...O....'), X), X),      # writer moved out of turn
    (state(empty_board(), O), None),             # reset with O to move
])
def test_check_transition_rejects_illegal_writes(after, mover):
    with pytest.raises(InvalidMove):
        check_transition(state(board_from('X........'), O), after, mover=mover)
