"""Unit tests for the local DuoXO rules."""

import pytest

from duoxo.local.game import IllegalMove, LocalGame, evaluate, new_board


def test_initial_state_allows_every_cell():
    game = LocalGame(size=4)
    assert len(game.available_moves()) == 16
    assert game.current_player == "X"
    assert game.last_move is None


def test_unsupported_size_rejected():
    with pytest.raises(ValueError):
        new_board(6)
    with pytest.raises(ValueError):
        LocalGame(size=2)


def test_board_must_match_size():
    with pytest.raises(ValueError):
        LocalGame(size=3, board=[["", ""], ["", ""]])


def test_rejection_order_terminal_first():
    game = LocalGame()
    for row, col in ((0, 0), (1, 0), (0, 1), (1, 1), (0, 2)):
        game.play_move(row, col)
    assert game.winner == "X"
    with pytest.raises(IllegalMove, match="finished"):
        game.play_move(9, 9, "O")


def test_rejection_order_bounds_before_occupied():
    game = LocalGame()
    game.play_move(0, 0)
    with pytest.raises(IllegalMove, match="outside"):
        game.play_move(3, 0, "X")
    with pytest.raises(IllegalMove, match="occupied"):
        game.play_move(0, 0, "X")
    with pytest.raises(IllegalMove, match="turn"):
        game.play_move(1, 1, "X")


def test_winning_move_records_line_and_finish_time():
    game = LocalGame(size=5)
    for i in range(4):
        game.play_move(i, i, now=10.0 + i)
        game.play_move(i, 4 - i if i != 2 else 0, now=10.5 + i)
    outcome = game.play_move(4, 4, now=20.0)
    assert outcome is not None
    assert outcome.winner == "X"
    assert game.winning_line == tuple((i, i) for i in range(5))
    assert game.finished_at == 20.0
    assert game.current_player == "X"
    assert game.available_moves() == []


def test_move_log_is_ordered():
    game = LocalGame()
    game.play_move(1, 1, now=1.0)
    game.play_move(0, 0, now=2.0)
    assert [(m.row, m.col, m.player, m.timestamp) for m in game.moves] == [
        (1, 1, "X", 1.0),
        (0, 0, "O", 2.0),
    ]
    assert game.last_move.player == "O"


def test_clone_is_independent():
    game = LocalGame()
    game.play_move(0, 0)
    copy = game.clone()
    copy.play_move(1, 1)
    assert game.board[1][1] == ""
    assert len(game.moves) == 1


def test_evaluate_reports_first_line_when_several_complete():
    board = [
        ["X", "X", "X"],
        ["X", "O", "O"],
        ["X", "O", "O"],
    ]
    outcome = evaluate(board)
    assert outcome.winner == "X"
    assert outcome.line == ((0, 0), (0, 1), (0, 2))


def test_to_dict_marks_draw():
    game = LocalGame()
    for row, col in ((0, 0), (0, 1), (0, 2), (1, 1), (1, 0), (1, 2), (2, 1), (2, 0), (2, 2)):
        game.play_move(row, col)
    data = game.to_dict()
    assert data["winner"] == "draw"
    assert data["winningLine"] == []
    assert data["moveCount"] == 9
