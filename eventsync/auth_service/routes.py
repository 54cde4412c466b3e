"""
Authentication service route handlers.

Provides routes for:
- User registration
- User login
- Forgot password (issue a one-time reset token)
- Reset password (consume the reset token)
- Profile retrieval (/me)

Token logic lives in `auth_service.tokens`, the bearer-token gate in
`auth_service.utils`.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from flask import Blueprint, Response, current_app, g, jsonify, request

from eventsync.auth_service.models import normalize_email
from eventsync.auth_service.tokens import (
    generate_reset_token,
    hash_reset_token,
    issue_session_token,
)
from eventsync.auth_service.utils import login_required
from eventsync.errors import (
    AuthenticationError,
    InternalError,
    NotFoundError,
    ResetTokenInvalidError,
    ValidationError,
)
from eventsync.extensions import get_credential_store, get_notifier

auth_bp = Blueprint("auth", __name__)
ph = PasswordHasher()


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    """
    Log every incoming request method and path.
    Headers are left out since they carry bearer tokens.
    """
    logging.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Auth] Response {response.status}")
    return response


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text(data: Dict[str, Any], key: str) -> str:
    """Return a string field, or '' if absent. Non-string values are a ValidationError."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Register a new user in the system.

    Expects a JSON body with:
    - name (str)
    - email (str): Unique, compared case-insensitively.
    - password (str)

    Returns:
        201: JSON with message, token and user.
        400: Missing fields or email already registered.
    """
    data = _json_body()
    name: str = _text(data, "name").strip()
    email: str = normalize_email(_text(data, "email"))
    password: str = _text(data, "password")

    if not name or not email or not password:
        raise ValidationError("All fields are required")

    store = get_credential_store()
    user = store.create_user(name, email, ph.hash(password))
    logging.info(f"[Auth] Registered user {user.id}")

    return jsonify({
        "message": "Registration successful",
        "token": issue_session_token(user),
        "user": user.to_public_dict(),
    }), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate a user and return a session token.

    Returns:
        200: JSON with token and user.
        400: Missing credentials.
        401: Invalid credentials (wrong password or email).
    """
    data = _json_body()
    email: str = normalize_email(_text(data, "email"))
    password: str = _text(data, "password")

    if not email or not password:
        raise ValidationError("Email and password are required")

    user = get_credential_store().find_by_email(email)
    if not user:
        raise AuthenticationError("Invalid email or password")

    try:
        ph.verify(user.password_hash, password)
    except (VerificationError, InvalidHashError):
        raise AuthenticationError("Invalid email or password")

    return jsonify({
        "token": issue_session_token(user),
        "user": user.to_public_dict(),
    }), 200


# --- FORGOT PASSWORD ---
@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password() -> Tuple[Response, int]:
    """
    Issue a one-time password reset token for an account.

    The raw token goes to the configured notifier. It is echoed back in the
    response only when EXPOSE_RESET_TOKEN is enabled (development).

    Returns:
        200: Confirmation message (plus resetToken in development).
        400: Missing email.
        404: No account with that email.
        500: Token could not be stored or delivered; nothing is left behind.
    """
    email = normalize_email(_text(_json_body(), "email"))
    if not email:
        raise ValidationError("Email is required")

    store = get_credential_store()
    user = store.find_by_email(email)
    if not user:
        raise NotFoundError("No account with that email exists")

    token = generate_reset_token()
    expires = datetime.now(timezone.utc) + timedelta(
        minutes=current_app.config["RESET_TOKEN_EXPIRATION_MINUTES"]
    )

    try:
        store.set_reset_token(user.id, token.hash, expires)
        get_notifier().send_reset_token(user, token.raw)
    except Exception as e:
        logging.exception(f"[Auth] Reset token issue failed for user {user.id}: {e}")
        store.clear_reset_token(user.id)
        raise InternalError("Error processing password reset request")

    body = {"message": "Password reset instructions sent to your email"}
    if current_app.config["EXPOSE_RESET_TOKEN"]:
        body["resetToken"] = token.raw
    return jsonify(body), 200


# --- RESET PASSWORD ---
@auth_bp.route("/reset-password", methods=["POST"])
def reset_password() -> Tuple[Response, int]:
    """
    Set a new password using a reset token. The token is consumed.

    Expects JSON: { "token": str, "new_password": str }

    Returns:
        200: Success message.
        400: Missing fields, or the token is invalid, expired or already used.
    """
    data = _json_body()
    raw_token: str = _text(data, "token").strip()
    new_password: str = _text(data, "new_password") or _text(data, "newPassword")

    if not raw_token or not new_password:
        raise ValidationError("Token and new password are required")

    token_hash = hash_reset_token(raw_token)
    store = get_credential_store()

    user = store.find_by_valid_reset_token_hash(token_hash, datetime.now(timezone.utc))
    if not user:
        raise ResetTokenInvalidError()

    try:
        updated = store.update_password(user.id, ph.hash(new_password), expected_token_hash=token_hash)
    except Exception as e:
        logging.exception(f"[Auth] Password update failed for user {user.id}: {e}")
        store.clear_reset_token(user.id)
        raise InternalError("Error resetting password. Please try again.")

    if not updated:
        # Consumed by a concurrent request
        raise ResetTokenInvalidError()

    logging.info(f"[Auth] Password reset for user {user.id}")
    return jsonify({
        "message": "Password has been reset successfully. Please log in with your new password."
    }), 200


# --- GET CURRENT USER ---
@auth_bp.route("/me", methods=["GET"])
@login_required
def get_current_user() -> Tuple[Response, int]:
    """
    Return the authenticated user's public profile.

    Requires Authorization header: Bearer <token>
    """
    return jsonify(g.current_user.to_public_dict()), 200
