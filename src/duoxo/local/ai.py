"""Three-tier heuristic opponent for local DuoXO games."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from .game import Board, Cell, LocalGame, Player, empty_cells, evaluate, other


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# Chance that a medium opponent plays the hard heuristic instead of a random cell.
MEDIUM_SMART_RATE = 0.5


def _completes_line(board: Board, cell: Cell, player: Player) -> bool:
    r, c = cell
    board[r][c] = player
    try:
        outcome = evaluate(board)
    finally:
        board[r][c] = ""
    return outcome is not None and outcome.winner == player


def _corners(size: int) -> List[Cell]:
    last = size - 1
    return [(0, 0), (0, last), (last, 0), (last, last)]


def smart_move(board: Board, player: Player, rng: random.Random) -> Optional[Cell]:
    """One-ply heuristic: win, block, centre, corner, anything.

    No deeper search is done, so larger boards are easy to beat.
    """
    cells = empty_cells(board)
    if not cells:
        return None

    scratch = [row.copy() for row in board]

    # 1) Take a win
    for cell in cells:
        if _completes_line(scratch, cell, player):
            return cell

    # 2) Block the opponent's win
    opponent = other(player)
    for cell in cells:
        if _completes_line(scratch, cell, opponent):
            return cell

    # 3) Centre
    center = len(board) // 2
    if board[center][center] == "":
        return (center, center)

    # 4) Corners
    corners = [(r, c) for r, c in _corners(len(board)) if board[r][c] == ""]
    if corners:
        return rng.choice(corners)

    return rng.choice(cells)


def select_move(
    board: Board,
    difficulty: Union[Difficulty, str],
    player: Player = "O",
    rng: Optional[random.Random] = None,
) -> Optional[Cell]:
    """Pick a cell for ``player``; ``None`` only when the board is full."""

    rng = rng or random.Random()
    level = Difficulty(difficulty)
    cells = empty_cells(board)
    if not cells:
        return None

    if level is Difficulty.HARD:
        return smart_move(board, player, rng)
    if level is Difficulty.MEDIUM and rng.random() < MEDIUM_SMART_RATE:
        return smart_move(board, player, rng)
    return rng.choice(cells)


@dataclass
class HeuristicAI:
    """Computer opponent bound to one mark and difficulty."""

    player: Player = "O"
    difficulty: Difficulty = Difficulty.MEDIUM
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self) -> None:
        self.difficulty = Difficulty(self.difficulty)

    def choose(self, game: LocalGame) -> Cell:
        if game.is_over:
            raise ValueError("Game already finished")
        if game.current_player != self.player:
            raise ValueError("It is not this AI player's turn")
        move = select_move(game.board, self.difficulty, self.player, self.rng)
        if move is None:
            raise RuntimeError("No valid moves available")
        return move
