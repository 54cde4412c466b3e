import itertools
import threading
from datetime import datetime, timezone

import pytest

from eventsync.auth_service.models import User, normalize_email
from eventsync.errors import DuplicateEmailError, NotFoundError
from eventsync.events_service.models import Creator, Event
from eventsync.gateway.server import create_app

TEST_SECRET = "test_secret"


class InMemoryCredentialStore:
    """Same interface as CredentialStore, kept in a dict."""

    def __init__(self):
        self.users = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create_user(self, name, email, password_hash):
        email = normalize_email(email)
        with self._lock:
            if any(u.email == email for u in self.users.values()):
                raise DuplicateEmailError()
            user = User(
                id=next(self._ids),
                name=name.strip(),
                email=email,
                password_hash=password_hash,
                created_at=datetime.now(timezone.utc),
            )
            self.users[user.id] = user
        return user

    def find_by_email(self, email):
        email = normalize_email(email)
        return next((u for u in self.users.values() if u.email == email), None)

    def find_by_id(self, user_id):
        try:
            return self.users.get(int(user_id))
        except (TypeError, ValueError):
            return None

    def set_reset_token(self, user_id, token_hash, expires):
        user = self.users[user_id]
        user.reset_token_hash = token_hash
        user.reset_token_expires = expires

    def clear_reset_token(self, user_id):
        user = self.users[user_id]
        user.reset_token_hash = None
        user.reset_token_expires = None

    def find_by_valid_reset_token_hash(self, token_hash, now):
        for user in self.users.values():
            if user.reset_token_hash == token_hash and user.reset_token_expires > now:
                return user
        return None

    def update_password(self, user_id, password_hash, expected_token_hash=None):
        with self._lock:
            user = self.users.get(user_id)
            if not user:
                return False
            if expected_token_hash is not None and user.reset_token_hash != expected_token_hash:
                return False
            user.password_hash = password_hash
            user.reset_token_hash = None
            user.reset_token_expires = None
        return True


class InMemoryEventStore:
    """Same interface as EventStore. Creators are resolved from the credential store."""

    def __init__(self, credentials):
        self.credentials = credentials
        self.rows = {}
        self._ids = itertools.count(1)

    def _resolve(self, row):
        user = self.credentials.find_by_id(row["creator_id"])
        if not user:
            raise NotFoundError(f"User {row['creator_id']} not found")
        return Event(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            date=row["date"],
            location=row["location"],
            creator_id=row["creator_id"],
            creator=Creator(id=user.id, name=user.name, email=user.email),
            organizer_name=row["organizer_name"],
            created_at=row["created_at"],
        )

    def create(self, creator_id, draft):
        event_id = next(self._ids)
        self.rows[event_id] = {
            "id": event_id,
            "name": draft.name,
            "description": draft.description,
            "date": draft.date,
            "location": draft.location,
            "organizer_name": draft.organizer_name,
            "creator_id": creator_id,
            "created_at": datetime.now(timezone.utc),
        }
        return self._resolve(self.rows[event_id])

    def get(self, event_id):
        row = self.rows.get(event_id)
        return self._resolve(row) if row else None

    def list_all(self):
        rows = sorted(self.rows.values(), key=lambda r: (r["date"], r["id"]))
        return [self._resolve(r) for r in rows]

    def update(self, event_id, patch):
        row = self.rows.get(event_id)
        if not row:
            raise NotFoundError("Event not found")
        row.update(patch.changes)
        return self._resolve(row)

    def delete(self, event_id):
        if self.rows.pop(event_id, None) is None:
            raise NotFoundError("Event not found")


class RecordingNotifier:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send_reset_token(self, user, raw_token):
        if self.fail:
            raise ConnectionError("mail server unavailable")
        self.sent.append((user.id, raw_token))


@pytest.fixture
def credentials():
    return InMemoryCredentialStore()


@pytest.fixture
def event_store(credentials):
    return InMemoryEventStore(credentials)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(credentials, event_store, notifier):
    app = create_app(
        config_overrides={
            "TESTING": True,
            "JWT_SECRET": TEST_SECRET,
            "EXPOSE_RESET_TOKEN": True,
            "TOKEN_EXPIRATION_MINUTES": 1440,
            "RESET_TOKEN_EXPIRATION_MINUTES": 60,
        },
        credential_store=credentials,
        event_store=event_store,
        notifier=notifier,
    )
    yield app
    app.extensions["eventsync"]["hub"].close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def socketio(app):
    return app.extensions["socketio"]


@pytest.fixture
def hub(app):
    return app.extensions["eventsync"]["hub"]


@pytest.fixture
def register(client):
    """Register a user through the API and return (token, user)."""

    def _register(name="Alice", email="alice@x.com", password="secret1"):
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.get_json()
        body = response.get_json()
        return body["token"], body["user"]

    return _register


@pytest.fixture
def mock_db(mocker):
    """
    Mocks the database connection and cursor for the SQL stores.
    """
    mock_conn = mocker.MagicMock()
    mock_cursor = mocker.MagicMock()

    # Setup the context manager for connection
    mock_conn.__enter__.return_value = mock_conn
    mock_conn.__exit__.return_value = None

    # Setup the context manager for cursor
    mock_cursor.__enter__.return_value = mock_cursor
    mock_cursor.__exit__.return_value = None

    # Connect cursor to connection
    mock_conn.cursor.return_value = mock_cursor

    mocker.patch("eventsync.auth_service.models.get_db", return_value=mock_conn)
    mocker.patch("eventsync.events_service.models.get_db", return_value=mock_conn)

    return mock_conn, mock_cursor
