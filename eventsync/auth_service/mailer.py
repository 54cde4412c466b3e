"""
Delivery of password-reset tokens.

The API hands the raw token to a notifier exactly once. Production
deployments plug in a notifier that sends email. The default one only
logs the reset link.
"""

import logging

from eventsync.auth_service.models import User


class ResetNotifier:
    """Interface for anything that can deliver a reset token to a user."""

    def send_reset_token(self, user: User, raw_token: str) -> None:
        raise NotImplementedError


class LoggingResetNotifier(ResetNotifier):
    """Development notifier: writes the reset link to the log."""

    def __init__(self, url_template: str = "{token}"):
        self.url_template = url_template

    def send_reset_token(self, user: User, raw_token: str) -> None:
        link = self.url_template.format(token=raw_token)
        logging.info(f"[Auth] Password reset link for user {user.id}: {link}")
