"""Registration, login and profile updates."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from ..errors import AuthenticationError, ConflictError, NotFoundError
from .models import LoginRequest, ProfileUpdate, RegisterRequest, UserRecord
from .security import PasswordHasher, TokenCodec
from .storage import DUPLICATE_USER, Storage

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, storage: Storage, hasher: PasswordHasher, tokens: TokenCodec) -> None:
        self.storage = storage
        self.hasher = hasher
        self.tokens = tokens

    def register(self, request: RegisterRequest) -> Tuple[UserRecord, str]:
        email = request.email.lower()
        if self.storage.find_user_by_email(email) or self.storage.find_user_by_username(
            request.username
        ):
            logger.info("Registration refused for %s: already exists", request.username)
            raise ConflictError(DUPLICATE_USER)
        user = UserRecord(
            username=request.username,
            email=email,
            passwordHash=self.hasher.hash(request.password),
        )
        self.storage.create_user(user)
        logger.info("Registered user %s (%s)", user.username, user.id)
        return user, self.tokens.issue(user.id)

    def login(self, request: LoginRequest) -> Tuple[UserRecord, str]:
        user = self.storage.find_user_by_email(request.email.lower())
        if user is None or not self.hasher.verify(request.password, user.passwordHash):
            logger.info("Failed login for %s", request.email)
            raise AuthenticationError("Invalid credentials")
        return user, self.tokens.issue(user.id)

    def resolve(self, token: str) -> UserRecord:
        user_id = self.tokens.subject(token)
        user = self.storage.get_user(user_id)
        if user is None:
            raise AuthenticationError("Token is not valid")
        return user

    def update_profile(self, user: UserRecord, update: ProfileUpdate) -> UserRecord:
        fields: Dict[str, Any] = {}
        if update.username and update.username != user.username:
            fields["username"] = update.username
        if update.email and update.email.lower() != user.email:
            fields["email"] = update.email.lower()

        if fields:
            other: Optional[UserRecord] = None
            if "username" in fields:
                other = self.storage.find_user_by_username(fields["username"])
            if other is None and "email" in fields:
                other = self.storage.find_user_by_email(fields["email"])
            if other is not None and other.id != user.id:
                raise ConflictError("Username or email already exists")

        updated = self.storage.update_user(user.id, fields)
        if updated is None:
            raise NotFoundError("User not found")
        return updated
