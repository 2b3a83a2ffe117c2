"""Self-contained local engine: rules, heuristic AI and the play loop."""

from .ai import Difficulty, HeuristicAI, select_move
from .game import IllegalMove, LocalGame, Outcome, evaluate, new_board
from .session import LocalSession, ThreadingScheduler

__all__ = [
    "Difficulty",
    "HeuristicAI",
    "IllegalMove",
    "LocalGame",
    "LocalSession",
    "Outcome",
    "ThreadingScheduler",
    "evaluate",
    "new_board",
    "select_move",
]
