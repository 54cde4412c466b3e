"""
Broadcast hub: the registry of live-update subscribers and the fan-out of
event change notifications to them.

Delivery is best effort and at most once. Nothing is queued for later, so a
subscriber that connects after a publish never sees it and is expected to
re-fetch the event list on connect.
"""

import logging
import threading
from typing import Any, Protocol, Set

EVENT_CREATED = "eventCreated"
EVENT_UPDATED = "eventUpdated"
EVENT_DELETED = "eventDeleted"

NOTIFICATION_KINDS = (EVENT_CREATED, EVENT_UPDATED, EVENT_DELETED)


class Transport(Protocol):
    def emit(self, event: str, data: Any = None, to: str = None) -> Any:
        ...


class BroadcastHub:
    """
    Thread-safe subscriber registry with per-subscriber fan-out.

    `_lock` guards the registry. `_publish_lock` serialises whole fan-outs,
    so every subscriber receives notifications in publish order.
    """

    def __init__(self, transport: Transport):
        self._transport = transport
        self._subscribers: Set[str] = set()
        self._lock = threading.Lock()
        self._publish_lock = threading.Lock()
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, sid: str) -> bool:
        """Add a subscriber. Returns False once the hub is closed."""
        with self._lock:
            if self._closed:
                return False
            self._subscribers.add(sid)
            count = len(self._subscribers)
        logging.info(f"[Broadcast] Subscriber {sid} connected ({count} total)")
        return True

    def unregister(self, sid: str) -> None:
        with self._lock:
            if sid not in self._subscribers:
                return
            self._subscribers.discard(sid)
            count = len(self._subscribers)
        logging.info(f"[Broadcast] Subscriber {sid} disconnected ({count} total)")

    def publish(self, kind: str, payload: Any) -> int:
        """
        Send one notification to every current subscriber.

        A subscriber whose delivery fails is dropped from the registry. The
        rest of the fan-out continues.

        Returns:
            int: Number of subscribers the notification was delivered to.
        """
        if kind not in NOTIFICATION_KINDS:
            raise ValueError(f"Unknown notification kind: {kind}")

        with self._publish_lock:
            with self._lock:
                if self._closed:
                    return 0
                targets = list(self._subscribers)

            delivered = 0
            for sid in targets:
                try:
                    self._transport.emit(kind, payload, to=sid)
                except Exception as e:
                    logging.warning(f"[Broadcast] Delivery of {kind} to {sid} failed: {e}")
                    self.unregister(sid)
                    continue
                delivered += 1

        logging.info(f"[Broadcast] {kind} delivered to {delivered}/{len(targets)} subscribers")
        return delivered

    def event_created(self, event: dict) -> int:
        return self.publish(EVENT_CREATED, event)

    def event_updated(self, event: dict) -> int:
        return self.publish(EVENT_UPDATED, event)

    def event_deleted(self, event_id: Any) -> int:
        return self.publish(EVENT_DELETED, event_id)

    def close(self) -> None:
        """Drop every subscriber and stop accepting new ones."""
        with self._lock:
            self._closed = True
            dropped = len(self._subscribers)
            self._subscribers.clear()
        logging.info(f"[Broadcast] Hub closed, {dropped} subscribers dropped")
