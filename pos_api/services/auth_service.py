"""
Login, logout and current-user resolution over the session bucket.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from pos_api.repositories.users import SessionRepository, UserRepository

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Base class for authentication-related exceptions."""

    code = "unauthorized"
    status_code = 401

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidCredentialsError(AuthError):
    code = "invalid_credentials"


class NotAuthenticatedError(AuthError):
    code = "not_authenticated"


@dataclass
class LoginSuccess:
    user: dict
    session_id: str
    expires_at: str


@dataclass
class AuthService:
    """Handles login, logout and session lookups."""

    users: UserRepository
    sessions: SessionRepository

    def login(self, email: str, password: str) -> LoginSuccess:
        email = (email or "").strip()
        if not email or not password:
            raise InvalidCredentialsError("Invalid email or password")
        user = self.users.authenticate(email, password)
        if not user:
            logger.info("Rejected login for %s", email)
            raise InvalidCredentialsError("Invalid email or password")
        session = self.sessions.open_session(user["id"])
        if not session:
            raise AuthError("Could not start a session")
        logger.info("User %s logged in", user["id"])
        return LoginSuccess(user=user, session_id=session["id"], expires_at=session["expiresAt"])

    def logout(self, session_id: str | None) -> bool:
        if not session_id:
            return False
        return bool(self.sessions.close_session(session_id))

    def current_user(self, session_id: str | None) -> Optional[dict]:
        session = self.sessions.get_active(session_id or "")
        if not session:
            return None
        return self.users.get_by_id(session.get("userId", ""))

    def require_user(self, session_id: str | None) -> dict:
        user = self.current_user(session_id)
        if not user:
            raise NotAuthenticatedError("Login required")
        return user
