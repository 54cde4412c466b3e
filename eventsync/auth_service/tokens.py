"""
Session and password-reset tokens.

Session tokens are HS256 JWTs carrying the user's id, email and name. Reset
tokens are random hex strings. Only their SHA-256 digest is ever persisted.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

import jwt
from flask import current_app

from eventsync.errors import AuthenticationError

ALGORITHM = "HS256"
RESET_TOKEN_BYTES = 20
DEFAULT_TOKEN_EXPIRATION_MINUTES = 1440  # 24 hours


class SessionClaims(NamedTuple):
    user_id: str
    email: str
    name: str


class ResetToken(NamedTuple):
    raw: str
    hash: str


def _secret(secret: Optional[str]) -> str:
    return secret or current_app.config["JWT_SECRET"]


def _expiration_minutes(expires_minutes: Optional[int]) -> int:
    if expires_minutes is not None:
        return expires_minutes
    return current_app.config.get("TOKEN_EXPIRATION_MINUTES", DEFAULT_TOKEN_EXPIRATION_MINUTES)


# --- SESSION TOKENS ---
def issue_session_token(
    user,
    secret: Optional[str] = None,
    now: Optional[datetime] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Generate a signed session token for a user.

    Args:
        user: Object with `id`, `email` and `name` attributes.
        secret (str, optional): Signing key. Defaults to app config JWT_SECRET.
        now (datetime, optional): Issue time. Defaults to the current UTC time.
        expires_minutes (int, optional): Lifetime. Defaults to app config.

    Returns:
        str: Encoded JWT string.
    """
    now = now or datetime.now(timezone.utc)

    payload = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "iat": now,
        "exp": now + timedelta(minutes=_expiration_minutes(expires_minutes)),
    }

    return jwt.encode(payload, _secret(secret), algorithm=ALGORITHM)


def verify_session_token(token: str, secret: Optional[str] = None) -> SessionClaims:
    """
    Check a session token's signature and expiry.

    Raises:
        AuthenticationError: Token is malformed, forged or expired. The
            message is the same in every case.
    """
    try:
        payload = jwt.decode(
            token,
            _secret(secret),
            algorithms=[ALGORITHM],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid or expired token")

    return SessionClaims(
        user_id=str(payload["sub"]),
        email=payload.get("email", ""),
        name=payload.get("name", ""),
    )


# --- RESET TOKENS ---
def hash_reset_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def generate_reset_token() -> ResetToken:
    """A fresh 160-bit reset token and the digest to store for it."""
    raw = secrets.token_hex(RESET_TOKEN_BYTES)
    return ResetToken(raw=raw, hash=hash_reset_token(raw))
