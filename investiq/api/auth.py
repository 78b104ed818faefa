"""Identity service: accounts, password hashing and bearer tokens."""
import hashlib
import hmac
import logging
import secrets
import sqlite3
import time
import uuid
from typing import Any, Dict, Optional

import jwt

from investiq.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    PASSWORD_HASH_ITERATIONS,
    SECRET_KEY,
    TOKEN_ALGORITHM,
)
from investiq.db.sqlite_store import SQLiteStore


logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised for failed registration, login or token verification."""


def hash_password(password: str, iterations: int = PASSWORD_HASH_ITERATIONS) -> str:
    """Salted PBKDF2-SHA256 hash, encoded as ``pbkdf2_sha256$iterations$salt$digest``."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against a hash produced by hash_password.

    A malformed stored hash never matches.
    """
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
        rounds = int(iterations)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256" or rounds < 1:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), rounds)
    return hmac.compare_digest(digest.hex(), expected)


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Strip the password hash from a user row."""
    return {
        "id": user["id"],
        "email": user["email"],
        "full_name": user.get("full_name"),
        "created_at": user.get("created_at"),
    }


class IdentityService:
    """Issues and verifies access tokens for users kept in the store."""

    def __init__(
        self,
        store: SQLiteStore,
        secret_key: str = SECRET_KEY,
        expire_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES
    ):
        self.store = store
        self.secret_key = secret_key
        self.expire_minutes = expire_minutes

    def register(self, email: str, password: str, full_name: Optional[str] = None) -> Dict[str, Any]:
        """Create a user account.

        Raises:
            AuthError: if the email is already registered.
        """
        if self.store.get_user_by_email(email):
            raise AuthError("User already registered")

        user_id = uuid.uuid4().hex
        try:
            user = self.store.add_user(user_id, email, hash_password(password), full_name)
        except sqlite3.IntegrityError:
            raise AuthError("User already registered")

        logger.info(f"Registered user {user_id}")
        return public_user(user)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Check credentials and issue an access token.

        Returns:
            Dict with the public ``user`` and a ``session`` holding the token
        """
        user = self.store.get_user_by_email(email)
        if not user or not verify_password(password, user["password_hash"]):
            logger.warning("Rejected login with invalid credentials")
            raise AuthError("Invalid login credentials")

        session = self.issue_token(user)
        logger.info(f"User {user['id']} logged in")
        return {"user": public_user(user), "session": session}

    def issue_token(self, user: Dict[str, Any]) -> Dict[str, Any]:
        now = int(time.time())
        expires_at = now + self.expire_minutes * 60
        payload = {
            "sub": user["id"],
            "email": user["email"],
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self.secret_key, algorithm=TOKEN_ALGORITHM)
        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_at": expires_at,
        }

    def _decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": ["sub", "jti", "exp"]}
            )
        except jwt.ExpiredSignatureError:
            raise AuthError("Token expired")
        except jwt.InvalidTokenError:
            raise AuthError("Invalid token")

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Resolve a bearer token to its user.

        Raises:
            AuthError: if the token is malformed, expired, revoked or its
                user no longer exists.
        """
        claims = self._decode(token)
        if self.store.is_token_revoked(claims.get("jti", "")):
            raise AuthError("Token revoked")

        user = self.store.get_user(claims.get("sub", ""))
        if not user:
            raise AuthError("Unknown user")
        return public_user(user)

    def logout(self, token: str) -> None:
        """Revoke a token so it can no longer be used."""
        claims = self._decode(token)
        jti, expires_at = claims.get("jti"), claims.get("exp")
        if not jti or expires_at is None:
            raise AuthError("Invalid token")
        self.store.revoke_token(jti, expires_at)
        self.store.purge_expired_tokens(int(time.time()))
        logger.info(f"User {claims.get('sub')} logged out")
