"""Runtime settings read from ``DUOXO_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

DEV_JWT_SECRET = "dev_secret_change_me"
STORAGE_BACKENDS: Tuple[str, ...] = ("memory", "mongo", "auto")


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8000
    jwt_secret: str = DEV_JWT_SECRET
    token_ttl_days: int = 7
    storage: str = "memory"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "duoxo"
    bcrypt_rounds: int = 12
    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = field(default=("*",))

    def __post_init__(self) -> None:
        if self.storage not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unsupported storage backend {self.storage!r}. "
                f"Choose one of {', '.join(STORAGE_BACKENDS)}."
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(f"DUOXO_{name}", default)

        origins = tuple(
            origin.strip()
            for origin in get("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        )
        return cls(
            host=get("HOST", "0.0.0.0"),
            port=int(get("PORT", "8000")),
            jwt_secret=get("JWT_SECRET", DEV_JWT_SECRET),
            token_ttl_days=int(get("TOKEN_TTL_DAYS", "7")),
            storage=get("STORAGE", "memory").strip().lower(),
            mongodb_uri=get("MONGODB_URI", "mongodb://localhost:27017"),
            mongodb_db=get("MONGODB_DB", "duoxo"),
            bcrypt_rounds=int(get("BCRYPT_ROUNDS", "12")),
            log_level=get("LOG_LEVEL", "INFO").upper(),
            cors_origins=origins or ("*",),
        )
