"""Focused tests for ``gate_repo.db.sessions_repo``."""

from __future__ import annotations

import sqlite3
from unittest.mock import patch

import pytest

from gate_repo.config import config
from gate_repo.db import connection as db_connection
from gate_repo.db import sessions_repo, users_repo
from gate_repo.db.errors import DatabaseReadError, DatabaseWriteError


@pytest.mark.db
def test_session_round_trip(test_db):
    user_id = users_repo.create_user("alice")
    session_id = sessions_repo.create_session(user_id)

    session = sessions_repo.get_active_session(session_id)

    assert session is not None
    assert session.user_id == user_id
    assert session.expires_at is None


@pytest.mark.db
def test_unknown_session_is_none(test_db):
    assert sessions_repo.get_active_session("nope") is None


@pytest.mark.db
def test_remove_session(test_db):
    user_id = users_repo.create_user("alice")
    session_id = sessions_repo.create_session(user_id, "fixed-token")

    assert session_id == "fixed-token"
    assert sessions_repo.remove_session("fixed-token") is True
    assert sessions_repo.remove_session("fixed-token") is False
    assert sessions_repo.get_active_session("fixed-token") is None


@pytest.mark.db
def test_ttl_sets_expiry(test_db, monkeypatch):
    monkeypatch.setattr(config.session, "ttl_minutes", 30)
    user_id = users_repo.create_user("alice")

    session = sessions_repo.get_active_session(sessions_repo.create_session(user_id))

    assert session is not None
    assert session.expires_at is not None


@pytest.mark.db
def test_expired_sessions_are_hidden_and_cleaned(test_db, temp_db_path):
    user_id = users_repo.create_user("alice")
    session_id = sessions_repo.create_session(user_id)
    conn = sqlite3.connect(temp_db_path)
    try:
        conn.execute(
            "UPDATE sessions SET expires_at = datetime('now', '-1 minutes') WHERE session_id = ?",
            (session_id,),
        )
        conn.commit()
    finally:
        conn.close()

    assert sessions_repo.get_active_session(session_id) is None
    assert sessions_repo.cleanup_expired_sessions() == 1


@pytest.mark.unit
def test_sessions_repo_raises_typed_errors_on_connection_failure():
    with patch.object(db_connection, "get_connection", side_effect=Exception("db boom")):
        with pytest.raises(DatabaseWriteError):
            sessions_repo.create_session(1)
        with pytest.raises(DatabaseReadError):
            sessions_repo.get_active_session("x")
