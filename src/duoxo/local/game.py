"""Client-side rules for local DuoXO games on 3x3 to 5x5 boards.

Nothing in this module touches the network or storage; the server keeps its
own copy of the rules in :mod:`duoxo.server.rules`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

Player = str  # "X" or "O"
Board = List[List[str]]
Cell = Tuple[int, int]

EMPTY = ""
PLAYERS: Tuple[Player, Player] = ("X", "O")
BOARD_SIZES: Tuple[int, ...] = (3, 4, 5)


class IllegalMove(ValueError):
    """Raised when a move is refused; the game is left untouched."""


def other(player: Player) -> Player:
    return "O" if player == "X" else "X"


def new_board(size: int = 3) -> Board:
    if size not in BOARD_SIZES:
        raise ValueError(
            f"Unsupported board size {size}. "
            f"Choose one of {', '.join(map(str, BOARD_SIZES))}."
        )
    return [[EMPTY] * size for _ in range(size)]


def winning_lines(size: int) -> List[Tuple[Cell, ...]]:
    """Rows, then columns, then the two diagonals."""

    lines: List[Tuple[Cell, ...]] = []
    for r in range(size):
        lines.append(tuple((r, c) for c in range(size)))
    for c in range(size):
        lines.append(tuple((r, c) for r in range(size)))
    lines.append(tuple((i, i) for i in range(size)))
    lines.append(tuple((i, size - 1 - i) for i in range(size)))
    return lines


@dataclass(frozen=True)
class Outcome:
    winner: Optional[Player] = None
    draw: bool = False
    line: Tuple[Cell, ...] = ()


def evaluate(board: Board) -> Optional[Outcome]:
    """Return the terminal outcome of ``board`` or ``None`` if play continues."""

    size = len(board)
    for line in winning_lines(size):
        r0, c0 = line[0]
        first = board[r0][c0]
        if first != EMPTY and all(board[r][c] == first for r, c in line):
            return Outcome(winner=first, line=line)
    if all(cell != EMPTY for row in board for cell in row):
        return Outcome(draw=True)
    return None


def empty_cells(board: Board) -> List[Cell]:
    return [
        (r, c)
        for r, row in enumerate(board)
        for c, value in enumerate(row)
        if value == EMPTY
    ]


@dataclass(frozen=True)
class LocalMove:
    row: int
    col: int
    player: Player
    timestamp: float


@dataclass
class LocalGame:
    size: int = 3
    board: Board = field(default_factory=list)
    current_player: Player = "X"
    winner: Optional[Player] = None
    drawn: bool = False
    winning_line: Tuple[Cell, ...] = ()
    moves: List[LocalMove] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.board:
            self.board = new_board(self.size)
        elif len(self.board) != self.size or any(
            len(row) != self.size for row in self.board
        ):
            raise ValueError("Board does not match the declared size")

    # ---- API used by the session & AI ----

    @property
    def is_over(self) -> bool:
        return self.winner is not None or self.drawn

    @property
    def last_move(self) -> Optional[LocalMove]:
        return self.moves[-1] if self.moves else None

    def available_moves(self) -> List[Cell]:
        if self.is_over:
            return []
        return empty_cells(self.board)

    def play_move(
        self,
        row: int,
        col: int,
        mark: Optional[Player] = None,
        now: Optional[float] = None,
    ) -> Optional[Outcome]:
        """Apply a move for ``mark`` (default: whoever is to move).

        Returns the terminal outcome if this move ended the game.
        """
        if self.is_over:
            raise IllegalMove("Game already finished")
        if not (0 <= row < self.size and 0 <= col < self.size):
            raise IllegalMove("Move is outside the board")
        if self.board[row][col] != EMPTY:
            raise IllegalMove("Cell already occupied")
        player = self.current_player if mark is None else mark
        if player != self.current_player:
            raise IllegalMove(f"It is {self.current_player}'s turn")

        stamp = time.time() if now is None else now
        self.board[row][col] = player
        self.moves.append(LocalMove(row=row, col=col, player=player, timestamp=stamp))

        outcome = evaluate(self.board)
        if outcome is None:
            self.current_player = other(player)
            return None

        self.winner = outcome.winner
        self.drawn = outcome.draw
        self.winning_line = outcome.line
        self.finished_at = stamp
        return outcome

    def clone(self) -> "LocalGame":
        return LocalGame(
            size=self.size,
            board=[row.copy() for row in self.board],
            current_player=self.current_player,
            winner=self.winner,
            drawn=self.drawn,
            winning_line=self.winning_line,
            moves=list(self.moves),
            started_at=self.started_at,
            finished_at=self.finished_at,
        )

    def to_dict(self) -> Dict[str, object]:
        last = self.last_move
        return {
            "size": self.size,
            "board": [row.copy() for row in self.board],
            "currentPlayer": self.current_player,
            "winner": "draw" if self.drawn else self.winner,
            "winningLine": [list(cell) for cell in self.winning_line],
            "lastMove": (
                {"row": last.row, "col": last.col, "player": last.player}
                if last
                else None
            ),
            "moveCount": len(self.moves),
        }
