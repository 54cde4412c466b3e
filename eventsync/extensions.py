"""
Accessors for the components `create_app` attaches to the application.

Stores, the broadcast hub and the reset notifier are owned by the app
(`app.extensions["eventsync"]`) so each app instance, including each test
app, gets its own.
"""

from typing import Any, Dict

from flask import Flask, current_app

EXTENSION_KEY = "eventsync"


def init_components(app: Flask, **components: Any) -> None:
    app.extensions[EXTENSION_KEY] = dict(components)


def _components() -> Dict[str, Any]:
    return current_app.extensions[EXTENSION_KEY]


def get_credential_store():
    return _components()["credentials"]


def get_event_store():
    return _components()["events"]


def get_hub():
    return _components()["hub"]


def get_notifier():
    return _components()["notifier"]
