"""Client-side state containers and the REST client that drives them."""

from .api import DuoxoClient, Result
from .state import AuthState, GameListState, Store, auth_reducer, game_reducer

__all__ = [
    "AuthState",
    "DuoxoClient",
    "GameListState",
    "Result",
    "Store",
    "auth_reducer",
    "game_reducer",
]
