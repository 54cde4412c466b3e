"""
Events service routes: create, read, update and delete events.

Every route requires a session token. Mutations are committed to the event
store first and only then broadcast to live-update subscribers.
"""

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, g, jsonify, request

from eventsync.auth_service.utils import is_owner, login_required
from eventsync.errors import AuthorizationError, NotFoundError
from eventsync.events_service.models import Event, EventDraft, EventPatch
from eventsync.extensions import get_event_store, get_hub

events_bp = Blueprint("events", __name__)


@events_bp.before_request
def before_request() -> None:
    logging.info(f"[Events] Incoming {request.method} {request.path}")


@events_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Events] Response {response.status}")
    return response


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _parse_event_id(raw: str) -> int:
    """Ids are positive integers. Anything else names no event."""
    if not (raw.isascii() and raw.isdigit()):
        raise NotFoundError("Event not found")
    return int(raw)


def _owned_event(event_id: int, action: str) -> Event:
    """Load an event and make sure the current user created it."""
    event = get_event_store().get(event_id)
    if not event:
        raise NotFoundError("Event not found")
    if not is_owner(g.current_user, event.creator_id):
        raise AuthorizationError(f"Not authorized to {action} this event")
    return event


@events_bp.route("", methods=["GET"])
@login_required
def list_events() -> Tuple[Response, int]:
    """
    Return all events, earliest date first, each with its creator.

    Returns:
        200: List of event objects.
    """
    events = get_event_store().list_all()
    return jsonify([event.to_dict() for event in events]), 200


@events_bp.route("/<raw_id>", methods=["GET"])
@login_required
def get_event(raw_id: str) -> Tuple[Response, int]:
    """
    Get a single event by ID.

    Returns:
        200: Event object.
        404: Event not found.
    """
    event_id = _parse_event_id(raw_id)
    event = get_event_store().get(event_id)
    if not event:
        raise NotFoundError("Event not found")
    return jsonify(event.to_dict()), 200


@events_bp.route("", methods=["POST"])
@login_required
def create_event() -> Tuple[Response, int]:
    """
    Create an event owned by the current user and broadcast `eventCreated`.

    Expects JSON: name, description, date (ISO-8601), location and an
    optional organizer_name.

    Returns:
        201: The created event.
        400: Missing or invalid fields.
    """
    draft = EventDraft.from_json(_json_body())
    event = get_event_store().create(g.current_user.id, draft)
    logging.info(f"[Events] User {g.current_user.id} created event {event.id}")

    payload = event.to_dict()
    get_hub().event_created(payload)
    return jsonify(payload), 201


@events_bp.route("/<raw_id>", methods=["PUT"])
@login_required
def update_event(raw_id: str) -> Tuple[Response, int]:
    """
    Update an event. Creator only. Broadcasts `eventUpdated`.

    Only name, description, date, location and organizer_name may change.
    Any other key is rejected.

    Returns:
        200: The updated event.
        400: Empty patch, unknown or invalid fields.
        403: Not the creator.
        404: Event not found.
    """
    event_id = _parse_event_id(raw_id)
    _owned_event(event_id, "update")
    patch = EventPatch.from_json(_json_body())

    event = get_event_store().update(event_id, patch)
    logging.info(f"[Events] User {g.current_user.id} updated event {event_id}: {sorted(patch.changes)}")

    payload = event.to_dict()
    get_hub().event_updated(payload)
    return jsonify(payload), 200


@events_bp.route("/<raw_id>", methods=["DELETE"])
@login_required
def delete_event(raw_id: str) -> Tuple[Response, int]:
    """
    Delete an event. Creator only. Broadcasts `eventDeleted` with the event id.

    Returns:
        200: Confirmation message.
        403: Not the creator.
        404: Event not found.
    """
    event_id = _parse_event_id(raw_id)
    _owned_event(event_id, "delete")
    get_event_store().delete(event_id)
    logging.info(f"[Events] User {g.current_user.id} deleted event {event_id}")

    get_hub().event_deleted(event_id)
    return jsonify({"message": "Event deleted successfully", "id": event_id}), 200
