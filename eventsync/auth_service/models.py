"""
User records and the credential store backed by the `users` table.

The store owns email normalisation and the reset-token columns. Only the
SHA-256 digest of a reset token ever reaches the database.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import psycopg2.errors

from eventsync.database.db_connection import get_db
from eventsync.errors import DuplicateEmailError, ValidationError

USER_COLUMNS = """
    user_id, name, email, password_hash,
    reset_token_hash, reset_token_expires, created_at
"""


def normalize_email(email: Optional[str]) -> str:
    """Lowercase and trim an email address; None becomes an empty string."""
    if email is not None and not isinstance(email, str):
        raise ValidationError("email must be a string")
    return (email or "").strip().lower()


@dataclass
class User:
    id: int
    name: str
    email: str
    password_hash: str
    reset_token_hash: Optional[str] = None
    reset_token_expires: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "User":
        return cls(
            id=row["user_id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            reset_token_hash=row["reset_token_hash"],
            reset_token_expires=row["reset_token_expires"],
            created_at=row["created_at"],
        )

    def to_public_dict(self) -> Dict[str, Any]:
        """The fields safe to return to clients."""
        return {"id": self.id, "name": self.name, "email": self.email}


class CredentialStore:
    """
    PostgreSQL-backed persistence for users and their reset tokens.

    Every method opens its own connection through `get_db`, so calls are
    independent and safe to make from concurrent request threads.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url

    def _fetch_one(self, sql: str, params: tuple) -> Optional[User]:
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                row = cur.fetchone()
        return User.from_row(row) if row else None

    def create_user(self, name: str, email: str, password_hash: str) -> User:
        """
        Insert a new user.

        Raises:
            DuplicateEmailError: The (normalised) email is already registered.
        """
        email = normalize_email(email)
        if self.find_by_email(email):
            raise DuplicateEmailError()

        sql = f"""
            INSERT INTO users (name, email, password_hash)
            VALUES (%s, %s, %s)
            RETURNING {USER_COLUMNS};
        """
        try:
            with get_db(self.database_url) as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (name.strip(), email, password_hash))
                    row = cur.fetchone()
                conn.commit()
        except psycopg2.errors.UniqueViolation:
            # Lost a race with a concurrent registration
            raise DuplicateEmailError()

        return User.from_row(row)

    def find_by_email(self, email: str) -> Optional[User]:
        sql = f"SELECT {USER_COLUMNS} FROM users WHERE lower(email) = %s;"
        return self._fetch_one(sql, (normalize_email(email),))

    def find_by_id(self, user_id: Any) -> Optional[User]:
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            return None
        sql = f"SELECT {USER_COLUMNS} FROM users WHERE user_id = %s;"
        return self._fetch_one(sql, (user_id,))

    def set_reset_token(self, user_id: int, token_hash: str, expires: datetime) -> None:
        sql = """
            UPDATE users
            SET reset_token_hash = %s, reset_token_expires = %s
            WHERE user_id = %s;
        """
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (token_hash, expires, user_id))
            conn.commit()

    def clear_reset_token(self, user_id: int) -> None:
        sql = """
            UPDATE users
            SET reset_token_hash = NULL, reset_token_expires = NULL
            WHERE user_id = %s;
        """
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (user_id,))
            conn.commit()

    def find_by_valid_reset_token_hash(self, token_hash: str, now: datetime) -> Optional[User]:
        """Return the user holding this token digest, if it has not expired at `now`."""
        sql = f"""
            SELECT {USER_COLUMNS} FROM users
            WHERE reset_token_hash = %s AND reset_token_expires > %s;
        """
        return self._fetch_one(sql, (token_hash, now))

    def update_password(
        self,
        user_id: int,
        password_hash: str,
        expected_token_hash: Optional[str] = None,
    ) -> bool:
        """
        Replace the password hash and clear any reset token.

        With `expected_token_hash`, the update only applies while that digest
        is still stored on the user, so a reset token is consumed at most once.

        Returns:
            bool: True if a row was updated.
        """
        sql = """
            UPDATE users
            SET password_hash = %s, reset_token_hash = NULL, reset_token_expires = NULL
            WHERE user_id = %s
        """
        params = [password_hash, user_id]
        if expected_token_hash is not None:
            sql += " AND reset_token_hash = %s"
            params.append(expected_token_hash)

        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(sql + ";", params)
                updated = cur.rowcount == 1
            conn.commit()
        return updated
