"""
Shared pytest fixtures for the gate-repo test suite.

This module provides fixtures that are automatically available to all test files:
- Temporary SQLite databases and audit ledger directories
- Seeded users with linked GitHub credentials and sessions
- In-memory GitHub, RPC and score-service doubles (see ``tests/fakes.py``)
- Signing wallets for the address challenge
- A FastAPI TestClient wired to the doubles
"""

import shutil
import tempfile
from collections.abc import Callable, Generator
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

import pytest
from eth_account import Account
from fastapi.testclient import TestClient

from gate_repo.access.balance import BalanceOracle
from gate_repo.access.inviter import CollaboratorInviter
from gate_repo.access.orchestrator import GateAccessOrchestrator
from gate_repo.config import use_test_audit_root, use_test_database
from gate_repo.db import gates_repo, sessions_repo, users_repo
from gate_repo.db.schema import init_database
from gate_repo.db.types import Gate
from gate_repo.services.gate_provisioning import GateProvisioner
from tests.constants import PINNED_BLOCK, TOKEN_CONTRACT
from tests.fakes import FakeGitHubHost, FakeRpc, FakeScoreClient

# ============================================================================
# DATABASE / LEDGER FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """
    Create a temporary database file for testing.

    Each test gets its own database through ``use_test_database``.

    Yields:
        Path to temporary database file
    """
    temp_dir = tempfile.mkdtemp()
    temp_db = Path(temp_dir) / "test_gate.db"

    with use_test_database(temp_db):
        yield temp_db

    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="function")
def test_db(temp_db_path: Path) -> Generator[None, None, None]:
    """Initialize the production schema in the temporary database."""
    init_database()
    yield


@pytest.fixture(autouse=True)
def audit_root(tmp_path: Path) -> Generator[Path, None, None]:
    """Redirect audit ledger writes for every test so ``data/audit`` is never touched."""
    root = tmp_path / "audit"
    with use_test_audit_root(root):
        yield root


# ============================================================================
# USERS AND EXTERNAL SERVICE DOUBLES
# ============================================================================


@dataclass
class SeededUsers:
    owner_id: int
    invitee_id: int
    invitee_session: str
    owner_session: str


@pytest.fixture
def github_host() -> FakeGitHubHost:
    """GitHub double with an ``acme/secret`` repo administered by ``acme``."""
    host = FakeGitHubHost()
    host.add_user("owner-token", "acme", 1001)
    host.add_user("alice-token", "alice", 2002)
    host.add_repo("acme", "secret")
    return host


@pytest.fixture
def fake_rpc() -> FakeRpc:
    return FakeRpc(name="Dai Stablecoin", decimals=18, head=PINNED_BLOCK + 1000)


@pytest.fixture
def fake_scores() -> FakeScoreClient:
    return FakeScoreClient()


@pytest.fixture
def seeded_users(test_db) -> SeededUsers:
    """
    Create the gate owner (``acme``) and an invitee (``alice``).

    Both have linked GitHub credentials and an active session.
    """
    owner_id = users_repo.create_user("acme")
    invitee_id = users_repo.create_user("alice")
    assert owner_id is not None and invitee_id is not None
    users_repo.link_credential(owner_id, "owner-token", provider_account_id="1001")
    users_repo.link_credential(invitee_id, "alice-token", provider_account_id="2002")
    return SeededUsers(
        owner_id=owner_id,
        invitee_id=invitee_id,
        invitee_session=sessions_repo.create_session(invitee_id),
        owner_session=sessions_repo.create_session(owner_id),
    )


@pytest.fixture
def make_gate(seeded_users: SeededUsers) -> Callable[..., Gate]:
    """Factory inserting a gate on ``acme/secret`` owned by the seeded owner."""

    def _make(**overrides) -> Gate:
        fields = {
            "creator_id": seeded_users.owner_id,
            "repo_owner": "acme",
            "repo_name": "secret",
            "contract": TOKEN_CONTRACT,
            "contract_name": "Dai Stablecoin",
            "contract_decimals": 18,
            "num_tokens": Decimal("100"),
            "num_invites": 3,
            "block_number": PINNED_BLOCK,
            "read_only": False,
            "dynamic_check": False,
        }
        fields.update(overrides)
        gate = gates_repo.get_gate(gates_repo.create_gate(**fields))
        assert gate is not None
        return gate

    return _make


# ============================================================================
# WALLET FIXTURES
# ============================================================================


@pytest.fixture
def wallet():
    """A fresh local Ethereum account."""
    return Account.create()


# ============================================================================
# ORCHESTRATOR AND FASTAPI TEST CLIENT FIXTURES
# ============================================================================


@pytest.fixture
def orchestrator(
    fake_rpc: FakeRpc, fake_scores: FakeScoreClient, github_host: FakeGitHubHost
) -> GateAccessOrchestrator:
    oracle = BalanceOracle(fake_rpc, score_client=fake_scores, snapshot_source="score_api")
    return GateAccessOrchestrator(oracle, CollaboratorInviter(github_host.client))


@pytest.fixture
def test_client(
    test_db, orchestrator: GateAccessOrchestrator, fake_rpc: FakeRpc, github_host: FakeGitHubHost
) -> TestClient:
    """
    Create a FastAPI TestClient for API endpoint testing.

    Routes are registered around the in-memory doubles, so no request leaves
    the process.
    """
    from gate_repo.api.server import create_app

    app = create_app(orchestrator, GateProvisioner(fake_rpc, github_host.client))
    return TestClient(app)
