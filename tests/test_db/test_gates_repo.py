"""Focused tests for ``gate_repo.db.gates_repo``."""

from __future__ import annotations

import sqlite3
import threading
from decimal import Decimal
from unittest.mock import patch

import pytest

from gate_repo.db import connection as db_connection
from gate_repo.db import gates_repo
from gate_repo.db.errors import DatabaseReadError, DatabaseWriteError
from gate_repo.db.types import BalanceStrategy


@pytest.mark.db
def test_create_gate_starts_with_no_used_invites(make_gate):
    gate = make_gate(num_tokens=Decimal("12.5"))

    assert gate.used_invites == 0
    assert gate.num_tokens == Decimal("12.5")
    assert gate.remaining_invites == 3
    assert gate.strategy is BalanceStrategy.SNAPSHOT
    assert gate.full_name == "acme/secret"


@pytest.mark.db
def test_dynamic_gate_resolves_live_strategy(make_gate):
    gate = make_gate(dynamic_check=True, block_number=0)

    assert gate.strategy is BalanceStrategy.LIVE


@pytest.mark.db
def test_get_gate_missing_returns_none(test_db):
    assert gates_repo.get_gate("does-not-exist") is None


@pytest.mark.db
def test_increment_consumes_one_slot(make_gate):
    gate = make_gate(num_invites=2)

    updated = gates_repo.increment_used_invites(gate.id)

    assert updated is not None
    assert updated.used_invites == 1
    assert gates_repo.get_gate(gate.id).used_invites == 1


@pytest.mark.db
def test_increment_refuses_when_exhausted(make_gate):
    gate = make_gate(num_invites=1)
    assert gates_repo.increment_used_invites(gate.id) is not None

    assert gates_repo.increment_used_invites(gate.id) is None
    assert gates_repo.get_gate(gate.id).used_invites == 1


@pytest.mark.db
def test_increment_with_stale_expected_value_is_rejected(make_gate):
    gate = make_gate(num_invites=5)
    gates_repo.increment_used_invites(gate.id)

    assert gates_repo.increment_used_invites(gate.id, expected_used=0) is None
    updated = gates_repo.increment_used_invites(gate.id, expected_used=1)
    assert updated is not None and updated.used_invites == 2


@pytest.mark.db
def test_increment_missing_gate_returns_none(test_db):
    assert gates_repo.increment_used_invites("missing") is None


@pytest.mark.db
def test_check_constraint_blocks_unconditional_overflow(make_gate, temp_db_path):
    """Even a raw UPDATE cannot push used_invites past capacity."""
    gate = make_gate(num_invites=1)
    conn = sqlite3.connect(temp_db_path)
    try:
        conn.execute("UPDATE gates SET used_invites = 1 WHERE id = ?", (gate.id,))
        conn.commit()
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("UPDATE gates SET used_invites = 2 WHERE id = ?", (gate.id,))
    finally:
        conn.close()


@pytest.mark.db
@pytest.mark.slow
def test_concurrent_increments_for_last_slot_have_one_winner(make_gate):
    """N threads race for one remaining slot; exactly one commit lands."""
    gate = make_gate(num_invites=3)
    gates_repo.increment_used_invites(gate.id)
    gates_repo.increment_used_invites(gate.id)

    workers = 8
    barrier = threading.Barrier(workers)
    results: list[object] = []
    lock = threading.Lock()

    def attempt() -> None:
        barrier.wait()
        outcome = gates_repo.increment_used_invites(gate.id)
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [r for r in results if r is not None]
    assert len(results) == workers
    assert len(winners) == 1
    assert winners[0].used_invites == 3
    assert gates_repo.get_gate(gate.id).used_invites == 3


@pytest.mark.db
def test_list_gates_hides_exhausted_and_sorts_by_block(make_gate, seeded_users):
    old = make_gate(block_number=100)
    new = make_gate(block_number=200)
    exhausted = make_gate(block_number=300, num_invites=1)
    gates_repo.increment_used_invites(exhausted.id)

    listed = gates_repo.list_gates_for_creator(seeded_users.owner_id)

    assert [g.id for g in listed] == [new.id, old.id]


@pytest.mark.db
def test_list_gates_is_scoped_to_creator(make_gate, seeded_users):
    make_gate()

    assert gates_repo.list_gates_for_creator(seeded_users.invitee_id) == []


@pytest.mark.db
def test_delete_gate_requires_matching_creator(make_gate, seeded_users):
    gate = make_gate()

    assert gates_repo.delete_gate(gate.id, creator_id=seeded_users.invitee_id) is False
    assert gates_repo.get_gate(gate.id) is not None
    assert gates_repo.delete_gate(gate.id, creator_id=seeded_users.owner_id) is True
    assert gates_repo.get_gate(gate.id) is None


@pytest.mark.unit
def test_gates_repo_raises_typed_errors_on_connection_failure():
    with patch.object(db_connection, "get_connection", side_effect=Exception("db boom")):
        with pytest.raises(DatabaseReadError):
            gates_repo.get_gate("x")
        with pytest.raises(DatabaseReadError):
            gates_repo.list_gates_for_creator(1)
        with pytest.raises(DatabaseWriteError):
            gates_repo.increment_used_invites("x")
        with pytest.raises(DatabaseWriteError):
            gates_repo.delete_gate("x", creator_id=1)
