"""SQLite connection primitives for the gate store.

Repository modules never call ``sqlite3.connect`` directly; they open a
:func:`connection_scope` and let this module own pragmas, row factories and
transaction boundaries.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

# Milliseconds a writer waits on a locked database before SQLite raises.
BUSY_TIMEOUT_MS = 5000


def get_db_path() -> Path:
    """Resolve the absolute SQLite database path from runtime configuration."""
    from gate_repo.config import config

    return config.database.absolute_path


def configure_connection(connection: sqlite3.Connection) -> sqlite3.Connection:
    """Apply connection-level pragmas and the ``sqlite3.Row`` row factory.

    ``foreign_keys`` is off by default in SQLite; gates and credentials rely on
    cascading deletes from ``users``.
    """
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON")
    connection.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
    return connection


def get_connection() -> sqlite3.Connection:
    """Create and configure a new SQLite connection.

    ``check_same_thread`` stays at its default: each request thread opens and
    closes its own connection.
    """
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(str(db_path), timeout=BUSY_TIMEOUT_MS / 1000)
    return configure_connection(connection)


@contextmanager
def connection_scope(*, write: bool = False, immediate: bool = False) -> Iterator[sqlite3.Connection]:
    """Yield a configured connection with guaranteed cleanup semantics.

    Args:
        write: Commit on success and roll back on exceptions.
        immediate: Open the transaction with ``BEGIN IMMEDIATE`` so the write
            lock is taken before the first statement runs. Implies ``write``.

    Behavior:
        - Always closes the connection in ``finally``.
        - For write scopes, attempts rollback before re-raising failures.
    """
    write = write or immediate
    connection = get_connection()
    try:
        if immediate:
            connection.execute("BEGIN IMMEDIATE")
        yield connection
        if write:
            connection.commit()
    except Exception:
        if write:
            try:
                connection.rollback()
            except sqlite3.Error:
                pass
        raise
    finally:
        connection.close()
