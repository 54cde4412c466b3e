"""
Error taxonomy shared by every service, plus the Flask handlers that turn
errors into JSON responses.

Every error response body is `{"message": "..."}`. Storage and unexpected
failures are logged server-side and surface to the client as a generic 500.
"""

import logging
from typing import Optional, Tuple

import psycopg2
from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(ApiError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(ApiError):
    status_code = 403
    default_message = "Permission denied"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ResetTokenInvalidError(NotFoundError):
    """No user holds a live reset token with this digest. Reported as 400."""

    status_code = 400
    default_message = "Password reset token is invalid or has expired"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Resource already exists"


class DuplicateEmailError(ConflictError):
    status_code = 400
    default_message = "Email already registered"


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal server error"


def _error_response(message: str, status: int) -> Tuple[Response, int]:
    return jsonify({"message": message}), status


def register_error_handlers(app: Flask) -> None:
    """
    Install JSON error handlers on the app.

    Args:
        app (Flask): The application being configured.
    """

    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError) -> Tuple[Response, int]:
        if error.status_code >= 500:
            logging.error(f"[API] {type(error).__name__}: {error.message}")
        return _error_response(error.message, error.status_code)

    @app.errorhandler(psycopg2.Error)
    def handle_database_error(error: psycopg2.Error) -> Tuple[Response, int]:
        logging.exception(f"[API] Database error: {error}")
        return _error_response(InternalError.default_message, 500)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> Tuple[Response, int]:
        return _error_response(error.description or error.name, error.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception) -> Tuple[Response, int]:
        logging.exception(f"[API] Unhandled error: {error}")
        return _error_response(InternalError.default_message, 500)
