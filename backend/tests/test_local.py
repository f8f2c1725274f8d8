"""Local (same device) play."""

from oxrooms.client import LocalGame, ScoreBoard
from oxrooms.services.rooms.rules import DRAW, Mark


def test_marks_alternate():
    game = LocalGame()
    placed = []
    for cell in (0, 4, 8, 2, 6):
        assert game.submit_move(cell)
        placed.append(game.board[cell])
    assert placed == [Mark.X, Mark.O, Mark.X, Mark.O, Mark.X]
    assert game.move_count == 5


def test_illegal_moves_are_ignored():
    game = LocalGame()
    game.submit_move(4)
    assert not game.submit_move(4)
    assert not game.submit_move(12)
    assert game.turn == Mark.O
    assert game.move_count == 1


def test_finished_game_is_recorded_and_reset():
    scoreboard = ScoreBoard('Ada', 'Grace')
    game = LocalGame(scoreboard)
    for cell in (0, 3, 1, 4, 2):
        game.submit_move(cell)
    assert game.outcome == Mark.X
    assert not game.submit_move(5)
    assert scoreboard.players[Mark.X].score == 1
    assert scoreboard.leader().name == 'Ada'

    game.reset()
    assert game.board == [None] * 9
    assert game.turn == Mark.X
    for cell in (0, 1, 2, 4, 3, 5, 7, 6, 8):
        game.submit_move(cell)
    assert game.outcome == DRAW
    assert scoreboard.draws == 1
    assert len(scoreboard.history) == 2
