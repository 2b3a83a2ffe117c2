"""Local play loop: turns, delayed AI replies, scoreboard and history."""

from __future__ import annotations

import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Tuple, Union

from .ai import Difficulty, HeuristicAI
from .game import BOARD_SIZES, LocalGame

MODES: Tuple[str, ...] = ("pvp", "ai")
AI_PLAYER = "O"
AI_THINK_DELAY = 0.5
HISTORY_LIMIT = 10


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, fn: Callable[[], None]) -> Handle: ...


class ThreadingScheduler:
    """Runs callbacks on daemon ``threading.Timer`` threads."""

    def call_later(self, delay: float, fn: Callable[[], None]) -> Handle:
        timer = threading.Timer(max(0.0, delay), fn)
        timer.daemon = True
        timer.start()
        return timer


@dataclass(frozen=True)
class HistoryEntry:
    winner: str  # "X", "O" or "draw"
    duration: int
    board_size: int
    mode: str
    finished_at: float
    moves: int


@dataclass
class LocalSession:
    size: int = 3
    mode: str = "pvp"
    difficulty: Union[Difficulty, str] = Difficulty.MEDIUM
    scheduler: Scheduler = field(default_factory=ThreadingScheduler, repr=False)
    clock: Callable[[], float] = field(default=time.time, repr=False)
    rng: random.Random = field(default_factory=random.Random, repr=False)
    ai_delay: float = AI_THINK_DELAY

    game: LocalGame = field(init=False)
    scores: Dict[str, int] = field(init=False)
    history: List[HistoryEntry] = field(init=False)
    ai_pending: bool = field(default=False, init=False)
    _generation: int = field(default=0, init=False, repr=False)
    _pending: Optional[Handle] = field(default=None, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        self._check_mode(self.mode)
        if self.size not in BOARD_SIZES:
            raise ValueError(f"Unsupported board size {self.size}")
        self.difficulty = Difficulty(self.difficulty)
        self.scores = {"X": 0, "O": 0, "draws": 0}
        self.history = []
        self.game = LocalGame(size=self.size, started_at=self.clock())

    # ---- player actions ----

    def click(self, row: int, col: int) -> bool:
        """Handle a human click; returns whether a move was made."""

        with self._lock:
            game = self.game
            if game.is_over or self.ai_pending:
                return False
            if self.mode == "ai" and game.current_player == AI_PLAYER:
                return False
            if not (0 <= row < game.size and 0 <= col < game.size):
                return False
            if game.board[row][col] != "":
                return False

            self._play(row, col)
            if self._ai_to_move():
                self._schedule_ai()
            return True

    def reset(self) -> None:
        with self._lock:
            self._cancel_ai()
            self.game = LocalGame(size=self.size, started_at=self.clock())

    def reset_scores(self) -> None:
        with self._lock:
            self.scores = {"X": 0, "O": 0, "draws": 0}
            self.history = []

    def set_board_size(self, size: int) -> None:
        if size not in BOARD_SIZES:
            raise ValueError(f"Unsupported board size {size}")
        with self._lock:
            self.size = size
            self.reset()

    def set_mode(self, mode: str) -> None:
        self._check_mode(mode)
        with self._lock:
            self.mode = mode
            self.reset()

    def set_difficulty(self, difficulty: Union[Difficulty, str]) -> None:
        with self._lock:
            self.difficulty = Difficulty(difficulty)

    def duration(self) -> int:
        end = self.game.finished_at if self.game.is_over else self.clock()
        return max(0, int(end - self.game.started_at))

    def status(self) -> str:
        game = self.game
        if self.ai_pending:
            return "AI is thinking..."
        if game.drawn:
            return "Game ended in a draw!"
        if game.winner:
            return f"{game.winner} wins!"
        suffix = " (AI)" if self.mode == "ai" and game.current_player == AI_PLAYER else ""
        return f"Current turn: {game.current_player}{suffix}"

    # ---- internals ----

    @staticmethod
    def _check_mode(mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"Unsupported mode {mode!r}. Choose one of {', '.join(MODES)}.")

    def _ai_to_move(self) -> bool:
        return (
            self.mode == "ai"
            and not self.game.is_over
            and self.game.current_player == AI_PLAYER
        )

    def _play(self, row: int, col: int) -> None:
        outcome = self.game.play_move(row, col, now=self.clock())
        if outcome is None:
            return
        winner = "draw" if outcome.draw else outcome.winner
        self.scores["draws" if outcome.draw else winner] += 1
        entry = HistoryEntry(
            winner=winner,
            duration=self.duration(),
            board_size=self.size,
            mode=self.mode,
            finished_at=self.game.finished_at,
            moves=len(self.game.moves),
        )
        self.history = [entry] + self.history[: HISTORY_LIMIT - 1]

    def _schedule_ai(self) -> None:
        generation = self._generation
        self.ai_pending = True
        self._pending = self.scheduler.call_later(
            self.ai_delay, lambda: self._run_ai_turn(generation)
        )

    def _cancel_ai(self) -> None:
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
        self._pending = None
        self.ai_pending = False

    def _run_ai_turn(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._pending = None
            self.ai_pending = False
            if not self._ai_to_move():
                return
            ai = HeuristicAI(player=AI_PLAYER, difficulty=self.difficulty, rng=self.rng)
            row, col = ai.choose(self.game)
            self._play(row, col)
