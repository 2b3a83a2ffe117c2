"""Immutable client-side state and the pure transitions over it.

There is one container for identity (:class:`AuthState`) and one for games
(:class:`GameListState`). A reducer takes the previous state and an action
and returns the next state without touching the old one.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar, Union

ERROR_DISPLAY_SECONDS = 5.0

Json = Dict[str, Any]


# ---- actions ----


@dataclass(frozen=True)
class AuthSuccess:
    user: Json
    token: str


@dataclass(frozen=True)
class AuthFail:
    error: Optional[str]
    at: float = 0.0


@dataclass(frozen=True)
class Logout:
    pass


@dataclass(frozen=True)
class UpdateUser:
    user: Json


@dataclass(frozen=True)
class SetError:
    error: str
    at: float = 0.0


@dataclass(frozen=True)
class ClearError:
    pass


@dataclass(frozen=True)
class Tick:
    """Clock event; expires errors older than ``ERROR_DISPLAY_SECONDS``."""

    now: float


@dataclass(frozen=True)
class SetLoading:
    loading: bool


@dataclass(frozen=True)
class SetGames:
    games: Tuple[Json, ...]


@dataclass(frozen=True)
class SetCurrentGame:
    game: Optional[Json]


@dataclass(frozen=True)
class UpdateGame:
    game: Json


@dataclass(frozen=True)
class AddGame:
    game: Json


@dataclass(frozen=True)
class RemoveGame:
    game_id: str


AuthAction = Union[AuthSuccess, AuthFail, Logout, UpdateUser, SetError, ClearError, Tick]
GameAction = Union[
    SetLoading, SetError, ClearError, SetGames, SetCurrentGame,
    UpdateGame, AddGame, RemoveGame, Tick,
]


def _expired(error: Optional[str], error_at: float, now: float) -> bool:
    return error is not None and now - error_at >= ERROR_DISPLAY_SECONDS


# ---- auth ----


@dataclass(frozen=True)
class AuthState:
    user: Optional[Json] = None
    token: Optional[str] = None
    is_authenticated: bool = False
    loading: bool = True
    error: Optional[str] = None
    error_at: float = 0.0


def auth_reducer(state: AuthState, action: AuthAction) -> AuthState:
    if isinstance(action, AuthSuccess):
        return replace(
            state, user=action.user, token=action.token,
            is_authenticated=True, loading=False, error=None,
        )
    if isinstance(action, AuthFail):
        return replace(
            state, user=None, token=None, is_authenticated=False,
            loading=False, error=action.error, error_at=action.at,
        )
    if isinstance(action, Logout):
        return replace(
            state, user=None, token=None, is_authenticated=False,
            loading=False, error=None,
        )
    if isinstance(action, UpdateUser):
        return replace(state, user=action.user, error=None)
    if isinstance(action, SetError):
        return replace(state, error=action.error, error_at=action.at)
    if isinstance(action, ClearError):
        return replace(state, error=None)
    if isinstance(action, Tick):
        if _expired(state.error, state.error_at, action.now):
            return replace(state, error=None)
        return state
    return state


# ---- games ----


@dataclass(frozen=True)
class GameListState:
    games: Tuple[Json, ...] = ()
    current_game: Optional[Json] = None
    loading: bool = False
    error: Optional[str] = None
    error_at: float = 0.0


def _game_id(game: Json) -> Optional[str]:
    return game.get("id") or game.get("_id")


def game_reducer(state: GameListState, action: GameAction) -> GameListState:
    if isinstance(action, SetLoading):
        return replace(state, loading=action.loading)
    if isinstance(action, SetError):
        return replace(state, error=action.error, error_at=action.at, loading=False)
    if isinstance(action, ClearError):
        return replace(state, error=None)
    if isinstance(action, SetGames):
        return replace(state, games=tuple(action.games), loading=False)
    if isinstance(action, SetCurrentGame):
        return replace(state, current_game=action.game, loading=False)
    if isinstance(action, UpdateGame):
        target = _game_id(action.game)
        games = tuple(
            action.game if _game_id(g) == target else g for g in state.games
        )
        return replace(state, current_game=action.game, games=games, loading=False)
    if isinstance(action, AddGame):
        return replace(state, games=(action.game,) + state.games, loading=False)
    if isinstance(action, RemoveGame):
        games = tuple(g for g in state.games if _game_id(g) != action.game_id)
        current = state.current_game
        if current is not None and _game_id(current) == action.game_id:
            current = None
        return replace(state, games=games, current_game=current, loading=False)
    if isinstance(action, Tick):
        if _expired(state.error, state.error_at, action.now):
            return replace(state, error=None)
        return state
    return state


# ---- store ----

S = TypeVar("S")
A = TypeVar("A")


class Store(Generic[S, A]):
    """Holds the latest state; ``dispatch`` swaps in the reducer's result."""

    def __init__(self, reducer: Callable[[S, A], S], initial: S) -> None:
        self._reducer = reducer
        self._state = initial
        self._listeners: List[Callable[[S], None]] = []
        self._lock = threading.Lock()

    @property
    def state(self) -> S:
        return self._state

    def dispatch(self, action: A) -> S:
        with self._lock:
            self._state = self._reducer(self._state, action)
            state = self._state
        for listener in list(self._listeners):
            listener(state)
        return state

    def subscribe(self, listener: Callable[[S], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
