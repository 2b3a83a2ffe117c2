"""Pluggable persistence for users and games.

Two backends share one interface: :class:`MongoStorage` for durable
documents and :class:`MemoryStorage` for an in-process store. The backend is
chosen once, in :func:`create_storage`, when the application starts.
"""

from __future__ import annotations

import copy
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..config import Settings
from ..errors import ConflictError
from .models import GameRecord, UserRecord

logger = logging.getLogger(__name__)

STAT_FIELDS: Dict[str, str] = {
    "win": "gamesWon",
    "loss": "gamesLost",
    "draw": "gamesDrawn",
}
GAME_LIST_LIMIT = 20
DUPLICATE_USER = "User with this email or username already exists"


def _stat_field(result: str) -> str:
    try:
        return STAT_FIELDS[result]
    except KeyError as exc:
        raise ValueError(f"Unknown game result {result!r}") from exc


class Storage(ABC):
    """Operations the services need from a document store."""

    name: str = "abstract"

    # ---- users ----

    @abstractmethod
    def create_user(self, user: UserRecord) -> UserRecord: ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def find_user_by_email(self, email: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def find_user_by_username(self, username: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserRecord]:
        """Set ``fields`` on a user; raises ConflictError on a taken username/email."""

    @abstractmethod
    def increment_stats(self, user_id: str, result: str) -> None:
        """Add one played game and one ``result`` ("win", "loss", "draw")."""

    # ---- games ----

    @abstractmethod
    def create_game(self, game: GameRecord) -> GameRecord: ...

    @abstractmethod
    def get_game(self, game_id: str) -> Optional[GameRecord]: ...

    @abstractmethod
    def list_games_for(self, user_id: str, limit: int = GAME_LIST_LIMIT) -> List[GameRecord]:
        """Games where ``user_id`` is either player, newest first."""

    @abstractmethod
    def save_move(self, game: GameRecord, expected_moves: int) -> bool:
        """Replace ``game`` only if the stored copy still has ``expected_moves`` moves."""

    @abstractmethod
    def join_game(self, game_id: str, user_id: str) -> bool:
        """Seat ``user_id`` as player2 if that seat is still free."""

    @abstractmethod
    def delete_game(self, game_id: str) -> bool: ...

    def describe(self) -> str:
        return self.name


class MemoryStorage(Storage):
    """Process-local store; every read hands back a copy."""

    name = "In-Memory"

    def __init__(self) -> None:
        self._users: Dict[str, Dict[str, Any]] = {}
        self._games: Dict[str, Dict[str, Any]] = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    # ---- users ----

    def _taken(self, username: Optional[str], email: Optional[str], exclude: Optional[str] = None) -> bool:
        for doc in self._users.values():
            if doc["_id"] == exclude:
                continue
            if username is not None and doc["username"] == username:
                return True
            if email is not None and doc["email"] == email:
                return True
        return False

    def create_user(self, user: UserRecord) -> UserRecord:
        with self._lock:
            if self._taken(user.username, user.email):
                raise ConflictError(DUPLICATE_USER)
            self._users[user.id] = user.to_document()
        return user

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self._lock:
            doc = self._users.get(user_id)
            return UserRecord.model_validate(copy.deepcopy(doc)) if doc else None

    def _find_user(self, key: str, value: str) -> Optional[UserRecord]:
        with self._lock:
            for doc in self._users.values():
                if doc[key] == value:
                    return UserRecord.model_validate(copy.deepcopy(doc))
        return None

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        return self._find_user("email", email)

    def find_user_by_username(self, username: str) -> Optional[UserRecord]:
        return self._find_user("username", username)

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserRecord]:
        with self._lock:
            doc = self._users.get(user_id)
            if doc is None:
                return None
            if self._taken(fields.get("username"), fields.get("email"), exclude=user_id):
                raise ConflictError("Username or email already exists")
            doc.update(fields)
            return UserRecord.model_validate(copy.deepcopy(doc))

    def increment_stats(self, user_id: str, result: str) -> None:
        field = _stat_field(result)
        with self._lock:
            doc = self._users.get(user_id)
            if doc is None:
                raise KeyError(user_id)
            doc["stats"]["gamesPlayed"] += 1
            doc["stats"][field] += 1

    # ---- games ----

    def create_game(self, game: GameRecord) -> GameRecord:
        with self._lock:
            game.seq = next(self._counter)
            self._games[game.id] = game.to_document()
        return game

    def get_game(self, game_id: str) -> Optional[GameRecord]:
        with self._lock:
            doc = self._games.get(game_id)
            return GameRecord.model_validate(copy.deepcopy(doc)) if doc else None

    def list_games_for(self, user_id: str, limit: int = GAME_LIST_LIMIT) -> List[GameRecord]:
        with self._lock:
            docs = [
                doc
                for doc in self._games.values()
                if doc["player1"] == user_id or doc.get("player2") == user_id
            ]
            docs.sort(key=lambda d: (d["createdAt"], d["seq"]), reverse=True)
            return [GameRecord.model_validate(copy.deepcopy(d)) for d in docs[:limit]]

    def save_move(self, game: GameRecord, expected_moves: int) -> bool:
        with self._lock:
            stored = self._games.get(game.id)
            if stored is None or len(stored["moves"]) != expected_moves:
                return False
            self._games[game.id] = game.to_document()
            return True

    def join_game(self, game_id: str, user_id: str) -> bool:
        with self._lock:
            stored = self._games.get(game_id)
            if stored is None or stored.get("player2") is not None:
                return False
            stored["player2"] = user_id
            return True

    def delete_game(self, game_id: str) -> bool:
        with self._lock:
            return self._games.pop(game_id, None) is not None


class MongoStorage(Storage):
    """MongoDB collections ``users`` and ``games``."""

    name = "MongoDB"

    def __init__(self, database: Database) -> None:
        self.db = database
        self.users = database["users"]
        self.games = database["games"]
        self.users.create_index([("username", ASCENDING)], unique=True)
        self.users.create_index([("email", ASCENDING)], unique=True)
        self.games.create_index([("player1", ASCENDING), ("createdAt", DESCENDING), ("seq", DESCENDING)])
        self.games.create_index([("player2", ASCENDING), ("createdAt", DESCENDING), ("seq", DESCENDING)])

    @classmethod
    def connect(cls, uri: str, db_name: str, timeout_ms: int = 2000) -> "MongoStorage":
        client: MongoClient = MongoClient(
            uri, tz_aware=True, serverSelectionTimeoutMS=timeout_ms
        )
        client.admin.command("ping")
        return cls(client[db_name])

    # ---- users ----

    def create_user(self, user: UserRecord) -> UserRecord:
        try:
            self.users.insert_one(user.to_document())
        except DuplicateKeyError as exc:
            raise ConflictError(DUPLICATE_USER) from exc
        return user

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        doc = self.users.find_one({"_id": user_id})
        return UserRecord.model_validate(doc) if doc else None

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        doc = self.users.find_one({"email": email})
        return UserRecord.model_validate(doc) if doc else None

    def find_user_by_username(self, username: str) -> Optional[UserRecord]:
        doc = self.users.find_one({"username": username})
        return UserRecord.model_validate(doc) if doc else None

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserRecord]:
        if not fields:
            return self.get_user(user_id)
        try:
            self.users.update_one({"_id": user_id}, {"$set": fields})
        except DuplicateKeyError as exc:
            raise ConflictError("Username or email already exists") from exc
        return self.get_user(user_id)

    def increment_stats(self, user_id: str, result: str) -> None:
        field = _stat_field(result)
        res = self.users.update_one(
            {"_id": user_id},
            {"$inc": {"stats.gamesPlayed": 1, f"stats.{field}": 1}},
        )
        if res.matched_count == 0:
            raise KeyError(user_id)

    # ---- games ----

    def _next_game_seq(self) -> int:
        counter = self.db["counters"].find_one_and_update(
            {"_id": "games"},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return counter["seq"]

    def create_game(self, game: GameRecord) -> GameRecord:
        game.seq = self._next_game_seq()
        self.games.insert_one(game.to_document())
        return game

    def get_game(self, game_id: str) -> Optional[GameRecord]:
        doc = self.games.find_one({"_id": game_id})
        return GameRecord.model_validate(doc) if doc else None

    def list_games_for(self, user_id: str, limit: int = GAME_LIST_LIMIT) -> List[GameRecord]:
        cursor = (
            self.games.find({"$or": [{"player1": user_id}, {"player2": user_id}]})
            .sort([("createdAt", DESCENDING), ("seq", DESCENDING)])
            .limit(limit)
        )
        return [GameRecord.model_validate(doc) for doc in cursor]

    def save_move(self, game: GameRecord, expected_moves: int) -> bool:
        res = self.games.replace_one(
            {"_id": game.id, "moves": {"$size": expected_moves}},
            game.to_document(),
        )
        return res.matched_count == 1

    def join_game(self, game_id: str, user_id: str) -> bool:
        res = self.games.update_one(
            {"_id": game_id, "player2": None},
            {"$set": {"player2": user_id}},
        )
        return res.matched_count == 1

    def delete_game(self, game_id: str) -> bool:
        return self.games.delete_one({"_id": game_id}).deleted_count == 1


def create_storage(settings: Settings) -> Storage:
    """Pick the backend named by ``settings.storage``."""

    if settings.storage == "memory":
        logger.info("Using in-memory storage")
        return MemoryStorage()

    try:
        storage = MongoStorage.connect(settings.mongodb_uri, settings.mongodb_db)
    except PyMongoError as exc:
        if settings.storage == "mongo":
            raise
        logger.warning(
            "MongoDB connection failed, using in-memory storage: %s", exc
        )
        return MemoryStorage()
    logger.info("MongoDB connected: %s", settings.mongodb_db)
    return storage
