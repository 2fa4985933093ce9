"""Token service - admin sessions, signed OAuth state, password hashing."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from config import get_settings

settings = get_settings()

ADMIN_TOKEN_TYPE = "admin"
OAUTH_STATE_TYPE = "oauth_state"


class AuthService:
    """Password hashing and JWT issuing/verification."""

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        password_bytes = password.encode("utf-8")
        salt = bcrypt.gensalt()
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        if not hashed_password:
            return False
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"),
                hashed_password.encode("utf-8")
            )
        except ValueError:
            return False

    # --- Admin session tokens ---

    @staticmethod
    def create_admin_token() -> tuple[str, int]:
        """Issue an admin bearer token. Returns (token, expires_in_seconds)."""
        expires_in = settings.admin_token_expire_minutes * 60
        payload = {
            "sub": "admin",
            "type": ADMIN_TOKEN_TYPE,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        }
        token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
        return token, expires_in

    @staticmethod
    def verify_admin_token(token: str) -> bool:
        try:
            payload = jwt.decode(
                token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
            )
        except JWTError:
            return False
        return payload.get("type") == ADMIN_TOKEN_TYPE

    # --- OAuth state ---

    @staticmethod
    def _state_secret() -> str:
        return settings.oauth_state_secret or settings.jwt_secret

    @staticmethod
    def create_oauth_state(startup_id: str) -> str:
        """Sign a short-lived state token binding the startup ID to a nonce.

        Nothing is stored server-side; the callback trusts only what the
        signature vouches for.
        """
        payload = {
            "sub": startup_id,
            "nonce": secrets.token_urlsafe(16),
            "type": OAUTH_STATE_TYPE,
            "exp": datetime.now(timezone.utc)
            + timedelta(minutes=settings.oauth_state_ttl_minutes),
        }
        return jwt.encode(payload, AuthService._state_secret(), algorithm=settings.jwt_algorithm)

    @staticmethod
    def verify_oauth_state(state: str) -> Optional[str]:
        """Return the startup ID carried by a valid state, or None."""
        try:
            payload = jwt.decode(
                state, AuthService._state_secret(), algorithms=[settings.jwt_algorithm]
            )
        except JWTError:
            return None
        if payload.get("type") != OAUTH_STATE_TYPE:
            return None
        return payload.get("sub")
