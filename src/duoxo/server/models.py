"""Document models for users and persisted games, plus request bodies."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def _check_username(value: str) -> str:
    value = value.strip()
    if not 3 <= len(value) <= 20:
        raise ValueError("Username must be between 3 and 20 characters")
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return value


class Document(BaseModel):
    """Base for stored documents; ``_id`` on disk, ``id`` in Python."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id, alias="_id")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Stats(BaseModel):
    gamesPlayed: int = 0
    gamesWon: int = 0
    gamesLost: int = 0
    gamesDrawn: int = 0


class UserRecord(Document):
    username: str
    email: str
    passwordHash: str
    stats: Stats = Field(default_factory=Stats)
    createdAt: datetime = Field(default_factory=utcnow)

    def public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "stats": self.stats.model_dump(),
            "createdAt": self.createdAt,
        }


class Position(BaseModel):
    row: int
    col: int


class MoveRecord(BaseModel):
    player: Literal["X", "O"]
    position: Position
    timestamp: datetime = Field(default_factory=utcnow)


def _empty_board() -> List[List[str]]:
    return [["", "", ""], ["", "", ""], ["", "", ""]]


class GameRecord(Document):
    player1: str
    player2: Optional[str] = None
    board: List[List[str]] = Field(default_factory=_empty_board)
    currentPlayer: Literal["X", "O"] = "X"
    winner: Optional[Literal["X", "O", "draw"]] = None
    isComplete: bool = False
    gameType: Literal["single", "multiplayer"] = "single"
    moves: List[MoveRecord] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=utcnow)
    completedAt: Optional[datetime] = None
    # Assigned by storage on insert; orders games created in the same instant.
    seq: int = 0

    @field_validator("board", mode="before")
    @classmethod
    def empty_cells_are_strings(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [
                ["" if cell is None else cell for cell in row]
                if isinstance(row, list)
                else row
                for row in value
            ]
        return value

    @field_validator("board")
    @classmethod
    def board_holds_marks(cls, value: List[List[str]]) -> List[List[str]]:
        for row in value:
            for cell in row:
                if cell not in ("", "X", "O"):
                    raise ValueError(f"Invalid board cell {cell!r}")
        return value

    def participants(self) -> List[str]:
        return [p for p in (self.player1, self.player2) if p]

    def mark_for(self, user_id: str) -> Optional[str]:
        if self.player1 == user_id:
            return "X"
        if self.player2 is not None and self.player2 == user_id:
            return "O"
        return None


# ---- request bodies ----


class RegisterRequest(BaseModel):
    username: str
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("username")
    @classmethod
    def valid_username(cls, value: str) -> str:
        return _check_username(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("username")
    @classmethod
    def valid_username(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _check_username(value)


class CreateGameRequest(BaseModel):
    gameType: Literal["single", "multiplayer"] = "single"


class MoveRequest(BaseModel):
    """Coordinates are range-checked by the rules so rejection order holds."""

    row: int
    col: int
