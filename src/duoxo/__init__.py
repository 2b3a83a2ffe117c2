"""DuoXO package exposing the local engine, the API client and the web server."""

from .local import LocalGame, LocalSession, select_move
from .server import create_app

__all__ = ["LocalGame", "LocalSession", "create_app", "select_move"]
