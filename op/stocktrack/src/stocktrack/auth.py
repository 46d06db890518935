# auth.py
"""Registration, login and bearer-session verification.

Every collaborator fault (sqlite errors, token failures) is re-mapped to an
``AppError`` here so nothing driver-specific reaches the HTTP layer.
"""
import logging
import sqlite3
from typing import Any, Dict, Optional, Tuple

from .errors import (AppError, DuplicateEmail, InternalError, InvalidCredentials,
                     InvalidInput, NotFound, Unauthenticated)
from .security import hash_password, verify_password
from .tokens import TokenError, TokenService
from .users import UserStore

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def public_identity(user: Dict[str, Any]) -> Dict[str, Any]:
    # whitelist, so the password hash can never leak through
    return {
        "id": user["id"],
        "username": user.get("username"),
        "email": user["email"],
    }


def _check_credentials_input(email: Optional[str], password: Optional[str]) -> str:
    email = (email or "").strip()
    if not email or not password:
        raise InvalidInput("Email and password are required")
    if "@" not in email:
        raise InvalidInput("Invalid email address")
    return email


class AuthService:
    def __init__(self, users: UserStore, tokens: TokenService, bcrypt_rounds: int = 12) -> None:
        self.users = users
        self.tokens = tokens
        self.bcrypt_rounds = bcrypt_rounds

    def register(self, email: Optional[str], password: Optional[str]) -> Tuple[str, str]:
        """Create a user and return ``(user_id, token)``."""
        email = _check_credentials_input(email, password)
        try:
            if self.users.find_by_email(email) is not None:
                raise DuplicateEmail()
            user = self.users.create(email, hash_password(password, self.bcrypt_rounds))
        except DuplicateEmail:
            logger.info("registration rejected: email already registered")
            raise
        except sqlite3.Error as e:
            logger.error("registration failed: %s", e, exc_info=True)
            raise InternalError() from e

        token = self.tokens.issue(user["id"])
        logger.info("registered user %s", user["id"])
        return user["id"], token

    def login(self, email: Optional[str], password: Optional[str]) -> Tuple[Dict[str, Any], str]:
        email = _check_credentials_input(email, password)
        try:
            user = self.users.find_by_email(email)
        except sqlite3.Error as e:
            logger.error("login lookup failed: %s", e, exc_info=True)
            raise InternalError() from e

        if not verify_password(password, user["password_hash"] if user else None):
            logger.info("login rejected: invalid credentials")
            raise InvalidCredentials()

        return public_identity(user), self.tokens.issue(user["id"])

    def authenticate(self, authorization: Optional[str]) -> str:
        """Return the user id carried by a ``Bearer`` header."""
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise Unauthenticated("Authentication token is missing or malformed", key="message")

        token = authorization[len(BEARER_PREFIX):]
        if not token:
            raise Unauthenticated("Authentication token is missing", key="message")

        try:
            return self.tokens.verify(token)
        except TokenError as e:
            logger.warning("token verification failed (%s): %s", e.kind.value, e.detail)
            raise Unauthenticated(key="message") from e

    def verify_session(self, authorization: Optional[str]) -> Dict[str, Any]:
        try:
            user_id = self.authenticate(authorization)
            user = self.users.find_by_id(user_id)
        except AppError:
            raise
        except Exception as e:
            logger.error("session verification failed: %s", e, exc_info=True)
            raise InternalError(key="message") from e

        if user is None:
            logger.info("token valid but user %s no longer exists", user_id)
            raise NotFound("User not found", key="message")
        return public_identity(user)
