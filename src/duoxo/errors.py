"""Error taxonomy for the server: accounts, games and storage."""

from __future__ import annotations


class DuoxoError(ValueError):
    """Base class for every expected, user-facing failure."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DuoxoError):
    status_code = 400


class AuthenticationError(DuoxoError):
    status_code = 401


class AuthorizationError(DuoxoError):
    status_code = 403


class NotFoundError(DuoxoError):
    status_code = 404


class ConflictError(DuoxoError):
    status_code = 409


# ---- move rejections ----


class MoveRejected(DuoxoError):
    """A move that was refused without touching the game."""


class GameFinished(MoveRejected, ConflictError):
    def __init__(self, message: str = "Game already finished") -> None:
        super().__init__(message)


class OutOfBounds(MoveRejected, ValidationError):
    def __init__(self, message: str = "Invalid move position") -> None:
        super().__init__(message)


class CellOccupied(MoveRejected, ConflictError):
    def __init__(self, message: str = "Cell is already occupied") -> None:
        super().__init__(message)


class NotYourTurn(MoveRejected, ConflictError):
    def __init__(self, message: str = "Not your turn") -> None:
        super().__init__(message)
