"""FastAPI application exposing accounts and persisted games."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import DEV_JWT_SECRET, Settings
from ..errors import AuthenticationError, DuoxoError
from ..log import configure_logging
from .accounts import AccountService
from .games import GameService
from .models import (
    CreateGameRequest,
    LoginRequest,
    MoveRequest,
    ProfileUpdate,
    RegisterRequest,
    UserRecord,
)
from .security import PasswordHasher, TokenCodec
from .storage import Storage, create_storage

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request handler needs, built once per application."""

    settings: Settings
    storage: Storage
    accounts: AccountService
    games: GameService


def get_services(request: Request) -> Services:
    return request.app.state.services


_bearer = HTTPBearer(auto_error=False)


def current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    services: Services = Depends(get_services),
) -> UserRecord:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token, authorization denied")
    return services.accounts.resolve(credentials.credentials)


# ---------------------------
# Auth
# ---------------------------
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


@auth_router.post("/register")
def register(
    body: RegisterRequest, services: Services = Depends(get_services)
) -> Dict[str, object]:
    user, token = services.accounts.register(body)
    return {"token": token, "user": user.public()}


@auth_router.post("/login")
def login(body: LoginRequest, services: Services = Depends(get_services)) -> Dict[str, object]:
    user, token = services.accounts.login(body)
    return {"token": token, "user": user.public()}


@auth_router.get("/profile")
def read_profile(user: UserRecord = Depends(current_user)) -> Dict[str, object]:
    return user.public()


@auth_router.put("/profile")
def update_profile(
    body: ProfileUpdate,
    user: UserRecord = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, object]:
    return services.accounts.update_profile(user, body).public()


# ---------------------------
# Games
# ---------------------------
games_router = APIRouter(prefix="/api/games", tags=["games"])


@games_router.post("")
def create_game(
    body: CreateGameRequest,
    user: UserRecord = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, object]:
    game = services.games.create_game(user, body.gameType)
    return services.games.serialize(game)


@games_router.get("")
def list_games(
    user: UserRecord = Depends(current_user),
    services: Services = Depends(get_services),
) -> List[Dict[str, object]]:
    return [services.games.serialize(g) for g in services.games.list_games(user)]


@games_router.get("/{game_id}")
def get_game(
    game_id: str,
    user: UserRecord = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, object]:
    return services.games.serialize(services.games.get_game(user, game_id))


@games_router.put("/{game_id}/move")
def make_move(
    game_id: str,
    body: MoveRequest,
    user: UserRecord = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, object]:
    game = services.games.play_move(user, game_id, body.row, body.col)
    return services.games.serialize(game)


@games_router.put("/{game_id}/join")
def join_game(
    game_id: str,
    user: UserRecord = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, object]:
    return services.games.serialize(services.games.join_game(user, game_id))


@games_router.delete("/{game_id}")
def delete_game(
    game_id: str,
    user: UserRecord = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, str]:
    services.games.delete_game(user, game_id)
    return {"message": "Game deleted"}


# ---------------------------
# Health
# ---------------------------
meta_router = APIRouter()


@meta_router.get("/")
def read_root() -> Dict[str, str]:
    return {"message": "DuoXO API running"}


@meta_router.get("/api/test")
def test_api(services: Services = Depends(get_services)) -> Dict[str, str]:
    return {
        "message": "Tic-Tac-Toe API is running!",
        "database": services.storage.describe(),
    }


# ---------------------------
# Error handlers
# ---------------------------


async def _duoxo_error(request: Request, exc: DuoxoError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code, content={"detail": exc.message}, headers=headers
    )


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


def create_app(
    settings: Optional[Settings] = None, storage: Optional[Storage] = None
) -> FastAPI:
    """Build the application; storage is chosen here, once."""

    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    if settings.jwt_secret == DEV_JWT_SECRET:
        logger.warning("DUOXO_JWT_SECRET is not set; using the development secret")

    if storage is None:
        storage = create_storage(settings)
    tokens = TokenCodec(settings.jwt_secret, timedelta(days=settings.token_ttl_days))
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    app = FastAPI(
        title="DuoXO",
        description="Tic-tac-toe with accounts and persisted multiplayer games",
    )
    app.state.services = Services(
        settings=settings,
        storage=storage,
        accounts=AccountService(storage, hasher, tokens),
        games=GameService(storage),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DuoxoError, _duoxo_error)
    app.add_exception_handler(Exception, _unexpected_error)
    app.include_router(meta_router)
    app.include_router(auth_router)
    app.include_router(games_router)
    logger.info("DuoXO ready with %s storage", storage.describe())
    return app
