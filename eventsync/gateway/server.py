"""
API gateway: combines the auth and events blueprints with the live-update
channel. This is the entrypoint for running the backend.
"""

import logging
import sys
from typing import Any, Dict, Optional

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

from eventsync.auth_service.mailer import LoggingResetNotifier, ResetNotifier
from eventsync.auth_service.models import CredentialStore
from eventsync.auth_service.routes import auth_bp
from eventsync.broadcast_service.handlers import register_socket_handlers
from eventsync.broadcast_service.hub import BroadcastHub
from eventsync.config import Config
from eventsync.errors import register_error_handlers
from eventsync.events_service.models import EventStore
from eventsync.events_service.routes import events_bp
from eventsync.extensions import init_components

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")


def create_app(
    config_overrides: Optional[Dict[str, Any]] = None,
    credential_store: Optional[CredentialStore] = None,
    event_store: Optional[EventStore] = None,
    notifier: Optional[ResetNotifier] = None,
) -> Flask:
    """
    Application factory for creating the Flask app.

    Stores default to the PostgreSQL implementations on DATABASE_URL. Tests
    pass their own.

    Returns:
        Flask: The configured Flask application. Its Socket.IO server is at
        `app.extensions["socketio"]`.

    Raises:
        RuntimeError: JWT_SECRET is not configured.
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    if not app.config.get("JWT_SECRET"):
        raise RuntimeError("JWT_SECRET is missing. Set it in .env")

    origins = app.config["CORS_ORIGINS"]
    CORS(app, resources={
        r"/api/*": {
            "origins": origins,
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
    })

    socketio = SocketIO(app, cors_allowed_origins=origins, async_mode="threading")
    hub = BroadcastHub(socketio)

    database_url = app.config.get("DATABASE_URL")
    init_components(
        app,
        credentials=credential_store or CredentialStore(database_url),
        events=event_store or EventStore(database_url),
        hub=hub,
        notifier=notifier or LoggingResetNotifier(app.config["RESET_URL_TEMPLATE"]),
    )

    register_socket_handlers(socketio, hub)
    register_error_handlers(app)

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    logging.info("All blueprints registered successfully.")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"message": "Backend is running"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok", "subscribers": hub.subscriber_count}), 200

    return app


def main() -> int:
    try:
        app = create_app()
    except RuntimeError as e:
        logging.error(str(e))
        return 1

    socketio: SocketIO = app.extensions["socketio"]
    hub: BroadcastHub = app.extensions["eventsync"]["hub"]
    port = app.config["GATEWAY_PORT"]
    try:
        socketio.run(app, host="0.0.0.0", port=port, allow_unsafe_werkzeug=True)
    finally:
        hub.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
