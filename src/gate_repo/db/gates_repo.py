"""Gate repository operations for the SQLite backend.

Everything here is plain CRUD except :func:`increment_used_invites`, which is
the single serialization point for invite consumption. It never writes a value
computed from an earlier read; the capacity check and the increment are one
conditional ``UPDATE`` statement.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from gate_repo.db.connection import connection_scope
from gate_repo.db.errors import raise_read_error, raise_write_error
from gate_repo.db.types import Gate

_GATE_COLUMNS = """
    id, repo_owner, repo_name, contract, contract_name, contract_decimals,
    num_tokens, block_number, read_only, dynamic_check, num_invites,
    used_invites, creator_id, created_at
"""


def create_gate(
    *,
    creator_id: int,
    repo_owner: str,
    repo_name: str,
    contract: str,
    contract_name: str,
    contract_decimals: int,
    num_tokens: Decimal,
    num_invites: int,
    block_number: int = 0,
    read_only: bool = False,
    dynamic_check: bool = False,
    gate_id: str | None = None,
) -> str:
    """Insert a new gate with ``used_invites = 0`` and return its id."""
    gate_id = gate_id or uuid.uuid4().hex
    try:
        with connection_scope(write=True) as conn:
            conn.execute(
                """
                INSERT INTO gates (
                    id, repo_owner, repo_name, contract, contract_name,
                    contract_decimals, num_tokens, block_number, read_only,
                    dynamic_check, num_invites, used_invites, creator_id
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?)
                """,
                (
                    gate_id,
                    repo_owner,
                    repo_name,
                    contract,
                    contract_name,
                    contract_decimals,
                    str(num_tokens),
                    block_number,
                    int(read_only),
                    int(dynamic_check),
                    num_invites,
                    creator_id,
                ),
            )
        return gate_id
    except Exception as exc:
        raise_write_error(
            "gates.create_gate",
            exc,
            details=f"creator_id={creator_id}, repo={repo_owner}/{repo_name}",
        )


def get_gate(gate_id: str) -> Gate | None:
    """Return a gate by id, or ``None`` if it does not exist."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                f"SELECT {_GATE_COLUMNS} FROM gates WHERE id = ?",  # nosec B608
                (gate_id,),
            ).fetchone()
        return Gate.from_row(row) if row else None
    except Exception as exc:
        raise_read_error("gates.get_gate", exc, details=f"gate_id={gate_id!r}")


def list_gates_for_creator(creator_id: int) -> list[Gate]:
    """Return a creator's non-exhausted gates, newest pinned block first."""
    try:
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {_GATE_COLUMNS} FROM gates
                WHERE creator_id = ? AND used_invites < num_invites
                ORDER BY block_number DESC, created_at DESC
                """,  # nosec B608
                (creator_id,),
            ).fetchall()
        return [Gate.from_row(row) for row in rows]
    except Exception as exc:
        raise_read_error("gates.list_gates_for_creator", exc, details=f"creator_id={creator_id}")


def delete_gate(gate_id: str, *, creator_id: int) -> bool:
    """Delete a gate owned by ``creator_id``. Returns ``False`` when nothing matched."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.execute(
                "DELETE FROM gates WHERE id = ? AND creator_id = ?",
                (gate_id, creator_id),
            )
            return int(cursor.rowcount or 0) > 0
    except Exception as exc:
        raise_write_error("gates.delete_gate", exc, details=f"gate_id={gate_id!r}")


def increment_used_invites(gate_id: str, *, expected_used: int | None = None) -> Gate | None:
    """Atomically consume one invite slot.

    The update only applies while ``used_invites < num_invites`` (and, when
    ``expected_used`` is given, while ``used_invites`` still equals it). The
    post-increment row is read inside the same transaction.

    Returns:
        The updated gate, or ``None`` when the conditional update matched no
        row (gate missing, exhausted, or changed since ``expected_used``).
    """
    sql = """
        UPDATE gates
        SET used_invites = used_invites + 1
        WHERE id = ? AND used_invites < num_invites
    """
    params: list[object] = [gate_id]
    if expected_used is not None:
        sql += " AND used_invites = ?"
        params.append(expected_used)

    try:
        with connection_scope(immediate=True) as conn:
            cursor = conn.execute(sql, params)
            if int(cursor.rowcount or 0) != 1:
                return None
            row = conn.execute(
                f"SELECT {_GATE_COLUMNS} FROM gates WHERE id = ?",  # nosec B608
                (gate_id,),
            ).fetchone()
        return Gate.from_row(row)
    except Exception as exc:
        raise_write_error("gates.increment_used_invites", exc, details=f"gate_id={gate_id!r}")
