import pytest

from oxrooms.client import ScoreBoard
from oxrooms.services.rooms.rules import DRAW, Mark


def test_record_tallies_wins_and_draws():
    board = ScoreBoard()
    board.record(Mark.O, ['O'] * 9, timestamp=10.0)
    board.record('X', ['X'] * 9)
    board.record(DRAW, ['X'] * 9)
    assert board.players[Mark.X].score == 1
    assert board.players[Mark.O].score == 1
    assert board.draws == 1
    assert [r.outcome for r in board.history] == [Mark.O, 'X', DRAW]
    assert board.history[0].timestamp == 10.0
    assert board.leader() is None


def test_rename_and_reset_scores():
    board = ScoreBoard()
    board.rename('O', 'Grace')
    board.record(Mark.O, [None] * 9)
    assert board.leader().name == 'Grace'
    board.reset_scores()
    assert board.players[Mark.O].score == 0
    assert board.players[Mark.O].name == 'Grace'
    assert board.history == []
    assert board.draws == 0


def test_unfinished_games_are_not_recorded():
    with pytest.raises(ValueError):
        ScoreBoard().record(None, [None] * 9)
