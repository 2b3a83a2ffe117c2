"""Password hashing and stateless bearer tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from ..errors import AuthenticationError

JWT_ALG = "HS256"


class PasswordHasher:
    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        if not hashed:
            return False
        try:
            return self._context.verify(password, hashed)
        except ValueError:
            # Malformed hash in storage.
            return False


class TokenCodec:
    """Issue and check HS256 JWTs whose ``sub`` is the user id."""

    def __init__(self, secret: str, ttl: timedelta = timedelta(days=7)) -> None:
        self.secret = secret
        self.ttl = ttl

    def issue(self, user_id: str, now: Optional[datetime] = None) -> str:
        issued = now or datetime.now(timezone.utc)
        payload = {"sub": user_id, "iat": issued, "exp": issued + self.ttl}
        return jwt.encode(payload, self.secret, algorithm=JWT_ALG)

    def subject(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[JWT_ALG])
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Token has expired") from exc
        except jwt.PyJWTError as exc:
            raise AuthenticationError("Token is not valid") from exc
        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            raise AuthenticationError("Token is not valid")
        return sub
