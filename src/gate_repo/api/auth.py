"""Session resolution for API requests."""

from __future__ import annotations

from gate_repo.access.errors import Unauthenticated
from gate_repo.db import sessions_repo


def get_session_user_id(session_id: str | None) -> int | None:
    """Return the user id behind an active session, or ``None``."""
    if not session_id or not session_id.strip():
        return None
    session = sessions_repo.get_active_session(session_id.strip())
    return session.user_id if session else None


def require_user_id(session_id: str | None) -> int:
    """Like :func:`get_session_user_id` but raise when unauthenticated."""
    user_id = get_session_user_id(session_id)
    if user_id is None:
        raise Unauthenticated()
    return user_id
