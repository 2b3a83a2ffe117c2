"""Authoritative 3x3 rules for persisted games.

This is deliberately separate from :mod:`duoxo.local.game`: the server trusts
only its own copy when recording outcomes and statistics.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from ..errors import CellOccupied, GameFinished, NotYourTurn, OutOfBounds
from .models import GameRecord, MoveRecord, Position, utcnow

BOARD_SIZE = 3

Line = Tuple[Tuple[int, int], ...]

WINNING_LINES: Tuple[Line, ...] = (
    ((0, 0), (0, 1), (0, 2)),
    ((1, 0), (1, 1), (1, 2)),
    ((2, 0), (2, 1), (2, 2)),  # rows
    ((0, 0), (1, 0), (2, 0)),
    ((0, 1), (1, 1), (2, 1)),
    ((0, 2), (1, 2), (2, 2)),  # cols
    ((0, 0), (1, 1), (2, 2)),
    ((0, 2), (1, 1), (2, 0)),  # diags
)


def empty_board() -> List[List[str]]:
    return [[""] * BOARD_SIZE for _ in range(BOARD_SIZE)]


def check_winner(board: List[List[str]]) -> Tuple[Optional[str], Line]:
    """Return ``(winner, line)``; winner is "X", "O", "draw" or None."""

    for line in WINNING_LINES:
        (ar, ac), (br, bc), (cr, cc) = line
        v = board[ar][ac]
        if v and v == board[br][bc] == board[cr][cc]:
            return v, line
    if all(cell for row in board for cell in row):
        return "draw", ()
    return None, ()


def make_move(
    game: GameRecord,
    row: int,
    col: int,
    mark: str,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """Validate and apply one move in place; returns the winner if it ended the game."""

    if game.isComplete:
        raise GameFinished()
    if not (0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE):
        raise OutOfBounds()
    if game.board[row][col] != "":
        raise CellOccupied()
    if mark != game.currentPlayer:
        raise NotYourTurn()

    stamp = now or utcnow()
    game.board[row][col] = mark
    game.moves.append(
        MoveRecord(player=mark, position=Position(row=row, col=col), timestamp=stamp)
    )

    winner, _ = check_winner(game.board)
    if winner:
        game.winner = winner
        game.isComplete = True
        game.completedAt = stamp
    else:
        game.currentPlayer = "O" if mark == "X" else "X"
    return winner
