"""
Application configuration.

Values are read from the environment (and a local .env file, if present)
once at import time. `create_app` copies the upper-case attributes of
`Config` into `app.config`.
"""

import os
from typing import List

from dotenv import load_dotenv

# Load .env only once here
load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    JWT_SECRET = os.getenv("JWT_SECRET")
    DATABASE_URL = os.getenv("DATABASE_URL")

    TOKEN_EXPIRATION_MINUTES = int(os.getenv("TOKEN_EXPIRATION_MINUTES", 1440))  # Default 24 hours
    RESET_TOKEN_EXPIRATION_MINUTES = int(os.getenv("RESET_TOKEN_EXPIRATION_MINUTES", 60))

    # Development only: return the raw reset token in the forgot-password response
    EXPOSE_RESET_TOKEN = _as_bool(os.getenv("EXPOSE_RESET_TOKEN", "true"))

    # Refuse live-update connections without a valid session token
    LIVE_UPDATES_REQUIRE_AUTH = _as_bool(os.getenv("LIVE_UPDATES_REQUIRE_AUTH", "false"))

    # Used by the development notifier to build the link it logs
    RESET_URL_TEMPLATE = os.getenv(
        "RESET_URL_TEMPLATE", "http://localhost:3000/reset-password/{token}"
    )

    CORS_ORIGINS = _as_list(os.getenv("CORS_ORIGINS", "http://localhost:3000"))

    GATEWAY_PORT = int(os.getenv("GATEWAY_PORT", 5001))
