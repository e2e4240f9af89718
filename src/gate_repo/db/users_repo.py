"""User and linked-credential repository operations.

Each local user links one or more external API credentials (rows in
``accounts``). The access flow needs exactly one per role, so
:func:`get_credential_for_user` resolves the most recently linked token for a
provider and ignores the rest.
"""

from __future__ import annotations

import sqlite3

from gate_repo.db.connection import connection_scope
from gate_repo.db.errors import raise_read_error, raise_write_error
from gate_repo.db.types import Credential

DEFAULT_PROVIDER = "github"


def create_user(username: str) -> int | None:
    """Create a user row.

    Returns:
        New user id, or ``None`` when the username is already taken.
    """
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute("INSERT INTO users (username) VALUES (?)", (username,))
            return int(cursor.lastrowid) if cursor.lastrowid is not None else None
    except sqlite3.IntegrityError:
        return None
    except Exception as exc:
        raise_write_error("users.create_user", exc, details=f"username={username!r}")


def get_user_id(username: str) -> int | None:
    """Return user id for ``username`` or ``None`` if missing."""
    try:
        with connection_scope() as conn:
            row = conn.execute("SELECT id FROM users WHERE username = ?", (username,)).fetchone()
        return int(row["id"]) if row else None
    except Exception as exc:
        raise_read_error("users.get_user_id", exc, details=f"username={username!r}")


def user_exists(user_id: int) -> bool:
    """Return ``True`` when a user row exists."""
    try:
        with connection_scope() as conn:
            row = conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone()
        return row is not None
    except Exception as exc:
        raise_read_error("users.user_exists", exc, details=f"user_id={user_id}")


def link_credential(
    user_id: int,
    access_token: str,
    *,
    provider: str = DEFAULT_PROVIDER,
    provider_account_id: str | None = None,
) -> int:
    """Link an external access token to a user and return the account row id."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO accounts (user_id, provider, provider_account_id, access_token)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, provider, provider_account_id, access_token),
            )
            return int(cursor.lastrowid or 0)
    except Exception as exc:
        raise_write_error(
            "users.link_credential",
            exc,
            details=f"user_id={user_id}, provider={provider!r}",
        )


def get_credential_for_user(user_id: int, *, provider: str = DEFAULT_PROVIDER) -> Credential | None:
    """Return the most recently linked non-empty credential, or ``None``."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                """
                SELECT id, user_id, provider, provider_account_id, access_token
                FROM accounts
                WHERE user_id = ? AND provider = ?
                  AND access_token IS NOT NULL AND access_token != ''
                ORDER BY id DESC
                LIMIT 1
                """,
                (user_id, provider),
            ).fetchone()
        if not row:
            return None
        return Credential(
            id=int(row["id"]),
            user_id=int(row["user_id"]),
            provider=row["provider"],
            access_token=row["access_token"],
            provider_account_id=row["provider_account_id"],
        )
    except Exception as exc:
        raise_read_error(
            "users.get_credential_for_user",
            exc,
            details=f"user_id={user_id}, provider={provider!r}",
        )
