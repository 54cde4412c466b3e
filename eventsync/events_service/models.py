"""
Event records and the event store backed by the `events` table.

Request bodies are parsed into `EventDraft` (create) and `EventPatch`
(update). A patch may only touch the fields named in `EventPatch.FIELDS`.
Anything else, creator_id included, is rejected.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from eventsync.database.db_connection import get_db
from eventsync.errors import NotFoundError, ValidationError

# --- CONSTANTS FOR VALIDATION ---
NAME_MAX_LENGTH = 200
LOCATION_MAX_LENGTH = 300

EVENT_SELECT = """
    SELECT
        e.event_id, e.name, e.description, e.event_date, e.location,
        e.organizer_name, e.creator_id, e.created_at,
        u.user_id AS creator_user_id, u.name AS creator_name, u.email AS creator_email
    FROM events e
    LEFT JOIN users u ON e.creator_id = u.user_id
"""


def parse_dt(val: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 or datetime-local string into an aware UTC datetime.

    Naive values are taken to be UTC.

    Returns:
        datetime: The parsed datetime, or None if invalid.
    """
    if not val or not isinstance(val, str):
        return None
    try:
        # Handles 'YYYY-MM-DDTHH:MM' and '...Z' or '...+00:00'
        if val.endswith('Z'):
            val = val[:-1] + '+00:00'
        parsed = datetime.fromisoformat(val)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _required_text(data: Mapping[str, Any], key: str, max_length: Optional[int] = None) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} cannot be empty")
    value = value.strip()
    if max_length and len(value) > max_length:
        raise ValidationError(f"{key} must be {max_length} characters or less")
    return value


def _optional_text(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


# Client spelling -> field name
FIELD_ALIASES = {"organizerName": "organizer_name"}


def _canonical_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Rename aliased keys. The snake_case key wins when both are sent."""
    renamed = {FIELD_ALIASES.get(k, k): v for k, v in data.items() if k not in FIELD_ALIASES}
    for alias, key in FIELD_ALIASES.items():
        if alias in data and key not in renamed:
            renamed[key] = data[alias]
    return renamed


def _required_date(data: Mapping[str, Any]) -> datetime:
    parsed = parse_dt(data.get("date"))
    if not parsed:
        raise ValidationError("Invalid date format. Use ISO-8601.")
    return parsed


@dataclass
class Creator:
    id: int
    name: str
    email: str


@dataclass
class Event:
    id: int
    name: str
    description: str
    date: datetime
    location: str
    creator_id: int
    creator: Creator
    organizer_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Event":
        if row["creator_user_id"] is None:
            raise NotFoundError(
                f"User {row['creator_id']} (creator of event {row['event_id']}) not found"
            )
        return cls(
            id=row["event_id"],
            name=row["name"],
            description=row["description"],
            date=row["event_date"],
            location=row["location"],
            creator_id=row["creator_id"],
            creator=Creator(
                id=row["creator_user_id"],
                name=row["creator_name"],
                email=row["creator_email"],
            ),
            organizer_name=row["organizer_name"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation, dates as ISO strings."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "date": _isoformat(self.date),
            "location": self.location,
            "organizer_name": self.organizer_name,
            "created_at": _isoformat(self.created_at),
            "creator": {
                "id": self.creator.id,
                "name": self.creator.name,
                "email": self.creator.email,
            },
        }


@dataclass
class EventDraft:
    name: str
    description: str
    date: datetime
    location: str
    organizer_name: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "EventDraft":
        data = _canonical_keys(data)
        missing = [k for k in ("name", "description", "date", "location") if not data.get(k)]
        if missing:
            raise ValidationError("All fields are required: " + ", ".join(missing))

        return cls(
            name=_required_text(data, "name", NAME_MAX_LENGTH),
            description=_required_text(data, "description"),
            date=_required_date(data),
            location=_required_text(data, "location", LOCATION_MAX_LENGTH),
            organizer_name=_optional_text(data, "organizer_name"),
        )


@dataclass
class EventPatch:
    """Named optional fields for an update. Only the fields listed in `changes` are written."""

    FIELDS = ("name", "description", "date", "location", "organizer_name")

    changes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "EventPatch":
        if not data:
            raise ValidationError("No update data provided")
        data = _canonical_keys(data)

        unknown = sorted(k for k in data if k not in cls.FIELDS)
        if unknown:
            raise ValidationError("Unknown fields: " + ", ".join(unknown))

        changes: Dict[str, Any] = {}
        if "name" in data:
            changes["name"] = _required_text(data, "name", NAME_MAX_LENGTH)
        if "description" in data:
            changes["description"] = _required_text(data, "description")
        if "date" in data:
            changes["date"] = _required_date(data)
        if "location" in data:
            changes["location"] = _required_text(data, "location", LOCATION_MAX_LENGTH)
        if "organizer_name" in data:
            changes["organizer_name"] = _optional_text(data, "organizer_name")
        return cls(changes)


# Patch field -> column
COLUMN_FOR_FIELD = {
    "name": "name",
    "description": "description",
    "date": "event_date",
    "location": "location",
    "organizer_name": "organizer_name",
}


class EventStore:
    """PostgreSQL-backed persistence for events, with creators resolved on every read."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url

    def create(self, creator_id: int, draft: EventDraft) -> Event:
        sql = """
            INSERT INTO events (name, description, event_date, location, organizer_name, creator_id)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING event_id;
        """
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    draft.name,
                    draft.description,
                    draft.date,
                    draft.location,
                    draft.organizer_name,
                    creator_id,
                ))
                event_id = cur.fetchone()["event_id"]
                cur.execute(EVENT_SELECT + " WHERE e.event_id = %s;", (event_id,))
                row = cur.fetchone()
            conn.commit()
        return Event.from_row(row)

    def get(self, event_id: int) -> Optional[Event]:
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(EVENT_SELECT + " WHERE e.event_id = %s;", (event_id,))
                row = cur.fetchone()
        return Event.from_row(row) if row else None

    def list_all(self) -> List[Event]:
        """All events, earliest date first."""
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(EVENT_SELECT + " ORDER BY e.event_date ASC, e.event_id ASC;")
                rows = cur.fetchall()
        return [Event.from_row(row) for row in rows]

    def update(self, event_id: int, patch: EventPatch) -> Event:
        """
        Apply a patch.

        Raises:
            NotFoundError: No event with this id.
        """
        set_clause = ", ".join(f"{COLUMN_FOR_FIELD[k]} = %s" for k in patch.changes)
        values = list(patch.changes.values()) + [event_id]
        sql = f"UPDATE events SET {set_clause} WHERE event_id = %s;"

        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(sql, values)
                if cur.rowcount == 0:
                    raise NotFoundError("Event not found")
                cur.execute(EVENT_SELECT + " WHERE e.event_id = %s;", (event_id,))
                row = cur.fetchone()
            conn.commit()
        return Event.from_row(row)

    def delete(self, event_id: int) -> None:
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM events WHERE event_id = %s;", (event_id,))
                if cur.rowcount == 0:
                    raise NotFoundError("Event not found")
            conn.commit()
