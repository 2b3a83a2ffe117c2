"""HTTP client for the DuoXO API that keeps the client state stores current."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from .state import (
    AddGame,
    AuthFail,
    AuthState,
    AuthSuccess,
    ClearError,
    GameListState,
    Logout,
    RemoveGame,
    SetCurrentGame,
    SetError,
    SetGames,
    SetLoading,
    Store,
    Tick,
    UpdateGame,
    UpdateUser,
    auth_reducer,
    game_reducer,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"


@dataclass(frozen=True)
class Result:
    success: bool
    data: Any = None
    error: Optional[str] = None


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return fallback
    detail = payload.get("detail") if isinstance(payload, dict) else None
    if isinstance(detail, str) and detail:
        return detail
    if isinstance(detail, list) and detail:
        return "; ".join(str(item.get("msg", item)) for item in detail if isinstance(item, dict)) or fallback
    return fallback


class DuoxoClient:
    """Mirror of the browser's auth and game contexts.

    Every call returns a :class:`Result`; HTTP and transport failures become
    an error in the relevant store rather than an exception.

    Stored errors expire on :meth:`tick`. Nothing schedules it for you: a
    long-lived caller should call it periodically, for example once a second.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        http: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.http = http or httpx.Client(base_url=base_url, timeout=10.0)
        self.clock = clock
        self.auth: Store[AuthState, Any] = Store(auth_reducer, AuthState())
        self.games: Store[GameListState, Any] = Store(game_reducer, GameListState())

    def close(self) -> None:
        self.http.close()

    # ---- plumbing ----

    def _headers(self) -> Dict[str, str]:
        token = self.auth.state.token
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _send(self, method: str, path: str, **kwargs: Any) -> Optional[httpx.Response]:
        """Send a request; ``None`` when it never got an answer."""

        try:
            return self.http.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            return None

    def _request(self, method: str, path: str, **kwargs: Any) -> Optional[httpx.Response]:
        return self._send(method, path, headers=self._headers(), **kwargs)

    def tick(self) -> None:
        now = self.clock()
        self.auth.dispatch(Tick(now))
        self.games.dispatch(Tick(now))

    # ---- auth ----

    def _authenticate(self, path: str, body: Dict[str, Any], fallback: str) -> Result:
        self.auth.dispatch(ClearError())
        response = self._send("POST", path, json=body)
        if response is None:
            self.auth.dispatch(SetError(fallback, at=self.clock()))
            return Result(False, error=fallback)
        if response.is_success:
            payload = response.json()
            self.auth.dispatch(AuthSuccess(user=payload["user"], token=payload["token"]))
            return Result(True, payload["user"])
        message = _error_message(response, fallback)
        self.auth.dispatch(SetError(message, at=self.clock()))
        return Result(False, error=message)

    def register(self, username: str, email: str, password: str) -> Result:
        body = {"username": username, "email": email, "password": password}
        return self._authenticate("/api/auth/register", body, "Registration failed")

    def login(self, email: str, password: str) -> Result:
        body = {"email": email, "password": password}
        return self._authenticate("/api/auth/login", body, "Login failed")

    def logout(self) -> None:
        self.auth.dispatch(Logout())

    def load_profile(self, token: Optional[str] = None) -> Result:
        """Restore a session from a saved token, like an app start."""

        token = token or self.auth.state.token
        if not token:
            self.auth.dispatch(AuthFail(None, at=self.clock()))
            return Result(False)
        response = self._send(
            "GET", "/api/auth/profile", headers={"Authorization": f"Bearer {token}"}
        )
        if response is None:
            self.auth.dispatch(AuthFail("Authentication failed", at=self.clock()))
            return Result(False, error="Authentication failed")
        if response.is_success:
            user = response.json()
            self.auth.dispatch(AuthSuccess(user=user, token=token))
            return Result(True, user)
        message = _error_message(response, "Authentication failed")
        self.auth.dispatch(AuthFail(message, at=self.clock()))
        return Result(False, error=message)

    def update_profile(self, **fields: str) -> Result:
        self.auth.dispatch(ClearError())
        response = self._request("PUT", "/api/auth/profile", json=fields)
        if response is None:
            self.auth.dispatch(SetError("Profile update failed", at=self.clock()))
            return Result(False, error="Profile update failed")
        if response.is_success:
            user = response.json()
            self.auth.dispatch(UpdateUser(user))
            return Result(True, user)
        message = _error_message(response, "Profile update failed")
        self.auth.dispatch(SetError(message, at=self.clock()))
        return Result(False, error=message)

    # ---- games ----

    def _game_call(
        self,
        method: str,
        path: str,
        fallback: str,
        on_success: Callable[[Any], Any],
        **kwargs: Any,
    ) -> Result:
        self.games.dispatch(SetLoading(True))
        self.games.dispatch(ClearError())
        response = self._request(method, path, **kwargs)
        if response is None:
            self.games.dispatch(SetError(fallback, at=self.clock()))
            return Result(False, error=fallback)
        if response.is_success:
            data = response.json()
            self.games.dispatch(on_success(data))
            return Result(True, data)
        message = _error_message(response, fallback)
        self.games.dispatch(SetError(message, at=self.clock()))
        return Result(False, error=message)

    def create_game(self, game_type: str = "single") -> Result:
        return self._game_call(
            "POST", "/api/games", "Failed to create game", AddGame,
            json={"gameType": game_type},
        )

    def list_games(self) -> Result:
        return self._game_call(
            "GET", "/api/games", "Failed to fetch games",
            lambda data: SetGames(tuple(data)),
        )

    def get_game(self, game_id: str) -> Result:
        return self._game_call(
            "GET", f"/api/games/{game_id}", "Failed to fetch game", SetCurrentGame
        )

    def make_move(self, game_id: str, row: int, col: int) -> Result:
        return self._game_call(
            "PUT", f"/api/games/{game_id}/move", "Failed to make move", UpdateGame,
            json={"row": row, "col": col},
        )

    def join_game(self, game_id: str) -> Result:
        return self._game_call(
            "PUT", f"/api/games/{game_id}/join", "Failed to join game", UpdateGame
        )

    def delete_game(self, game_id: str) -> Result:
        return self._game_call(
            "DELETE", f"/api/games/{game_id}", "Failed to delete game",
            lambda _: RemoveGame(game_id),
        )

    def clear_error(self) -> None:
        self.games.dispatch(ClearError())

    def clear_current_game(self) -> None:
        self.games.dispatch(SetCurrentGame(None))
