"""Session repository operations for the SQLite backend.

Sessions are opaque tokens mapping to a user id. Issuing them is the job of
an external login flow; this module only persists and resolves them.
"""

from __future__ import annotations

import secrets

from gate_repo.db.connection import connection_scope
from gate_repo.db.errors import raise_read_error, raise_write_error
from gate_repo.db.types import SessionRecord


def create_session(user_id: int, session_id: str | None = None) -> str:
    """Create a session row and return its token.

    Expiry follows ``config.session.ttl_minutes``; ``0`` means no expiry.
    """
    from gate_repo.config import config

    session_id = session_id or secrets.token_urlsafe(32)
    try:
        with connection_scope(write=True) as conn:
            if config.session.ttl_minutes > 0:
                conn.execute(
                    """
                    INSERT INTO sessions (session_id, user_id, created_at, expires_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP, datetime('now', ?))
                    """,
                    (session_id, user_id, f"+{config.session.ttl_minutes} minutes"),
                )
            else:
                conn.execute(
                    """
                    INSERT INTO sessions (session_id, user_id, created_at, expires_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP, NULL)
                    """,
                    (session_id, user_id),
                )
        return session_id
    except Exception as exc:
        raise_write_error("sessions.create_session", exc, details=f"user_id={user_id}")


def get_active_session(session_id: str) -> SessionRecord | None:
    """Return the session when it exists and has not expired."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                """
                SELECT session_id, user_id, created_at, expires_at
                FROM sessions
                WHERE session_id = ?
                  AND (expires_at IS NULL OR datetime(expires_at) > datetime('now'))
                """,
                (session_id,),
            ).fetchone()
        if not row:
            return None
        return SessionRecord(
            session_id=row["session_id"],
            user_id=int(row["user_id"]),
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )
    except Exception as exc:
        raise_read_error("sessions.get_active_session", exc)


def remove_session(session_id: str) -> bool:
    """Remove one session by its token."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE session_id = ?", (session_id,))
            return int(cursor.rowcount or 0) > 0
    except Exception as exc:
        raise_write_error("sessions.remove_session", exc)


def cleanup_expired_sessions() -> int:
    """Delete expired session rows and return number removed."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.execute("""
                DELETE FROM sessions
                WHERE expires_at IS NOT NULL AND datetime(expires_at) <= datetime('now')
                """)
            return int(cursor.rowcount or 0)
    except Exception as exc:
        raise_write_error("sessions.cleanup_expired_sessions", exc)
