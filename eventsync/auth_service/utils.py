"""
Authorization gate for protected routes.

`login_required` checks the bearer token, resolves the user through the
credential store and exposes it as `g.current_user`.
"""

from functools import wraps
from typing import Any, Callable, Optional

from flask import g, request

from eventsync.auth_service.models import User
from eventsync.auth_service.tokens import verify_session_token
from eventsync.errors import AuthenticationError
from eventsync.extensions import get_credential_store


def bearer_token(header: Optional[str]) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header value."""
    if not header or not header.startswith("Bearer "):
        return None
    token = header.split(" ", 1)[1].strip()
    return token or None


def authenticate_token(token: Optional[str]) -> User:
    """
    Resolve a session token to a live user.

    Raises:
        AuthenticationError: No token, bad token, or the user no longer exists.
    """
    if not token:
        raise AuthenticationError("Authentication required")

    claims = verify_session_token(token)

    user = get_credential_store().find_by_id(claims.user_id)
    if not user:
        raise AuthenticationError("User not found")
    return user


def verify_token_from_request() -> User:
    """Authenticate the current request from its Authorization header."""
    return authenticate_token(bearer_token(request.headers.get("Authorization")))


def login_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """Reject unauthenticated requests; otherwise set `g.current_user`."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        g.current_user = verify_token_from_request()
        return view(*args, **kwargs)

    return wrapper


def is_owner(user: User, owner_id: Any) -> bool:
    """Compare identifiers in their canonical string form."""
    return str(user.id) == str(owner_id)
