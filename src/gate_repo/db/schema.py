"""Schema creation for the SQLite backend.

The schema layer is isolated from query code so schema changes are reviewable
without wading through repository logic.

Invariant model for ``gates``:
    ``0 <= used_invites <= num_invites`` is enforced by CHECK constraints, so
    even a write path that forgets the conditional ``WHERE`` clause cannot
    push a gate past its capacity.
"""

from __future__ import annotations

import logging

from gate_repo.db.connection import connection_scope
from gate_repo.db.errors import raise_write_error

logger = logging.getLogger(__name__)

TABLE_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT UNIQUE NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        provider TEXT NOT NULL DEFAULT 'github',
        provider_account_id TEXT,
        access_token TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        session_id TEXT PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        expires_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS gates (
        id TEXT PRIMARY KEY,
        repo_owner TEXT NOT NULL,
        repo_name TEXT NOT NULL,
        contract TEXT NOT NULL,
        contract_name TEXT NOT NULL,
        contract_decimals INTEGER NOT NULL CHECK (contract_decimals >= 0),
        num_tokens TEXT NOT NULL,
        block_number INTEGER NOT NULL DEFAULT 0 CHECK (block_number >= 0),
        read_only INTEGER NOT NULL DEFAULT 0,
        dynamic_check INTEGER NOT NULL DEFAULT 0,
        num_invites INTEGER NOT NULL CHECK (num_invites >= 1),
        used_invites INTEGER NOT NULL DEFAULT 0
            CHECK (used_invites >= 0 AND used_invites <= num_invites),
        creator_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
)

INDEX_STATEMENTS = (
    "CREATE INDEX IF NOT EXISTS idx_accounts_user_provider ON accounts(user_id, provider)",
    "CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_gates_creator_block ON gates(creator_id, block_number DESC)",
)


def init_database() -> None:
    """Create all tables and indexes if they do not exist yet."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            for statement in TABLE_STATEMENTS:
                cursor.execute(statement)
            for statement in INDEX_STATEMENTS:
                cursor.execute(statement)
    except Exception as exc:
        raise_write_error("schema.init_database", exc)
    logger.info("Database schema ready")
