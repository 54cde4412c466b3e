"""
Socket.IO connection handlers for the live-update channel.

Every connection is registered with the broadcast hub until it disconnects.
A session token, given as `auth={"token": ...}` or an `Authorization: Bearer`
header, is optional. It is only required when LIVE_UPDATES_REQUIRE_AUTH is on.
"""

import logging
from typing import Any, Optional

from flask import current_app, request
from flask_socketio import SocketIO

from eventsync.auth_service.utils import authenticate_token, bearer_token
from eventsync.broadcast_service.hub import BroadcastHub
from eventsync.errors import AuthenticationError


def _token_from_handshake(auth: Optional[Any]) -> Optional[str]:
    if isinstance(auth, dict) and auth.get("token"):
        return str(auth["token"])
    return bearer_token(request.headers.get("Authorization"))


def register_socket_handlers(socketio: SocketIO, hub: BroadcastHub) -> None:
    """
    Wire connect/disconnect on the default namespace to the hub.

    Args:
        socketio (SocketIO): The app's Socket.IO server.
        hub (BroadcastHub): The hub subscribers are registered with.
    """

    @socketio.on("connect")
    def on_connect(auth=None):
        token = _token_from_handshake(auth)
        who = "anonymous"
        if token or current_app.config["LIVE_UPDATES_REQUIRE_AUTH"]:
            try:
                who = f"user {authenticate_token(token).id}"
            except AuthenticationError as e:
                if current_app.config["LIVE_UPDATES_REQUIRE_AUTH"]:
                    logging.info(f"[Broadcast] Refused connection {request.sid}: {e.message}")
                    return False
                logging.info(f"[Broadcast] Ignoring bad token on {request.sid}: {e.message}")

        if not hub.register(request.sid):
            return False
        logging.info(f"[Broadcast] {who} subscribed as {request.sid}")
        return True

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        hub.unregister(request.sid)
