"""Crediting player statistics once a persisted game completes."""

from __future__ import annotations

import logging

from .models import GameRecord
from .storage import Storage

logger = logging.getLogger(__name__)


def outcome_for(game: GameRecord, user_id: str) -> str:
    """Return "win", "loss" or "draw" for a participant of a finished game."""

    if not game.isComplete or game.winner is None:
        raise ValueError("Game is not complete")
    if game.winner == "draw":
        return "draw"
    mark = game.mark_for(user_id)
    if mark is None:
        raise ValueError(f"User {user_id} did not play this game")
    return "win" if game.winner == mark else "loss"


def apply_outcome(game: GameRecord, storage: Storage) -> None:
    """Credit each participant once.

    The caller must call this exactly once per completed game. Each player is
    a separate write and is not atomic with the game write; a failure part way
    leaves earlier players credited and is logged, not rolled back.
    """
    for user_id in game.participants():
        result = outcome_for(game, user_id)
        try:
            storage.increment_stats(user_id, result)
        except Exception:
            logger.exception(
                "Stat update failed for user %s in game %s (%s)", user_id, game.id, result
            )
            raise
        logger.info("Recorded %s for user %s in game %s", result, user_id, game.id)
