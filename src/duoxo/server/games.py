"""Persisted multiplayer games: ownership, turn order and completion."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..errors import (
    AuthorizationError,
    ConflictError,
    MoveRejected,
    NotFoundError,
    ValidationError,
)
from . import rules
from .models import GameRecord, UserRecord
from .stats import apply_outcome
from .storage import GAME_LIST_LIMIT, Storage

logger = logging.getLogger(__name__)

# A lost compare-and-set is retried against fresh state this many times.
MOVE_RETRIES = 3


class GameService:
    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    # ---- lookups ----

    def _load(self, game_id: str) -> GameRecord:
        game = self.storage.get_game(game_id)
        if game is None:
            raise NotFoundError("Game not found")
        return game

    def _load_for(self, user: UserRecord, game_id: str) -> GameRecord:
        game = self._load(game_id)
        if user.id not in game.participants():
            raise AuthorizationError("Not authorized")
        return game

    @staticmethod
    def mark_for(game: GameRecord, user: UserRecord) -> Optional[str]:
        """The mark ``user`` may play now; a lone single-game owner plays both."""

        if game.gameType == "single" and game.player2 is None and game.player1 == user.id:
            return game.currentPlayer
        return game.mark_for(user.id)

    # ---- operations ----

    def create_game(self, user: UserRecord, game_type: str = "single") -> GameRecord:
        game = GameRecord(player1=user.id, gameType=game_type)
        self.storage.create_game(game)
        logger.info("User %s created %s game %s", user.id, game_type, game.id)
        return game

    def list_games(self, user: UserRecord, limit: int = GAME_LIST_LIMIT) -> List[GameRecord]:
        return self.storage.list_games_for(user.id, limit)

    def get_game(self, user: UserRecord, game_id: str) -> GameRecord:
        return self._load_for(user, game_id)

    def play_move(self, user: UserRecord, game_id: str, row: int, col: int) -> GameRecord:
        for _ in range(MOVE_RETRIES + 1):
            game = self._load_for(user, game_id)
            mark = self.mark_for(game, user)
            if mark is None:
                raise AuthorizationError("Not authorized")

            expected = len(game.moves)
            try:
                winner = rules.make_move(game, row, col, mark)
            except MoveRejected as exc:
                logger.info(
                    "Rejected move (%d, %d) by %s in game %s: %s",
                    row, col, user.id, game_id, exc,
                )
                raise

            if not self.storage.save_move(game, expected):
                # Someone else moved first; re-check against what is stored now.
                continue

            if winner:
                logger.info("Game %s finished: %s", game.id, winner)
                apply_outcome(game, self.storage)
            return game

        raise ConflictError("Game was updated concurrently, try again")

    def join_game(self, user: UserRecord, game_id: str) -> GameRecord:
        game = self._load(game_id)
        if game.gameType != "multiplayer":
            raise ValidationError("This is not a multiplayer game")
        if game.player1 == user.id:
            raise ValidationError("Cannot join your own game")
        if game.player2 is not None or not self.storage.join_game(game_id, user.id):
            raise ConflictError("Game is full")
        logger.info("User %s joined game %s", user.id, game_id)
        return self._load(game_id)

    def delete_game(self, user: UserRecord, game_id: str) -> None:
        game = self._load(game_id)
        if game.player1 != user.id:
            raise AuthorizationError("Not authorized")
        self.storage.delete_game(game_id)
        logger.info("User %s deleted game %s", user.id, game_id)

    # ---- presentation ----

    def serialize(self, game: GameRecord) -> Dict[str, object]:
        """Game document for API responses, with player usernames filled in."""

        data = game.model_dump(exclude={"seq"})
        for key in ("player1", "player2"):
            user_id = getattr(game, key)
            if user_id is None:
                data[key] = None
                continue
            player = self.storage.get_user(user_id)
            data[key] = {
                "id": user_id,
                "username": player.username if player else None,
            }
        _, line = rules.check_winner(game.board)
        data["winningLine"] = [list(cell) for cell in line]
        return data
