"""
Tests for the gate API endpoints.

Covers:
- Health and root endpoints
- POST /gates/access success and every mapped error body
- Gate creation, listing, deletion and public lookup
- DatabaseError mapping to a generic 500
"""

import pytest

from gate_repo import __version__
from gate_repo.config import config
from gate_repo.db import gates_repo
from gate_repo.db.errors import DatabaseOperationContext, DatabaseReadError
from tests.constants import PINNED_BLOCK, TOKEN_CONTRACT
from tests.fakes import sign_challenge

# ============================================================================
# HEALTH
# ============================================================================


@pytest.mark.api
def test_root_reports_version(test_client):
    response = test_client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Gate Repo API", "version": __version__}


@pytest.mark.api
def test_health(test_client):
    response = test_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


# ============================================================================
# POST /gates/access
# ============================================================================


def _access_body(session_id, account, gate_id, **extra):
    body = {
        "session_id": session_id,
        "address": account.address,
        "signature": sign_challenge(account),
        "gateId": gate_id,
    }
    body.update(extra)
    return body


@pytest.mark.api
def test_access_grants_and_consumes_one_invite(
    test_client, make_gate, seeded_users, wallet, fake_scores, github_host
):
    gate = make_gate()
    fake_scores.set_score(wallet.address, PINNED_BLOCK, "150")

    response = test_client.post(
        "/gates/access",
        json=_access_body(seeded_users.invitee_session, wallet, gate.id, readOnly=True),
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert gates_repo.get_gate(gate.id).used_invites == 1
    assert "alice" in github_host.collaborators["acme/secret"]


@pytest.mark.api
def test_access_body_flags_do_not_override_gate(
    test_client, make_gate, seeded_users, wallet, fake_scores, fake_rpc
):
    """dynamicCheck in the request cannot switch a snapshot gate to the live balance."""
    gate = make_gate()
    fake_rpc.set_balance(wallet.address, 10**30)

    response = test_client.post(
        "/gates/access",
        json=_access_body(seeded_users.invitee_session, wallet, gate.id, dynamicCheck=True),
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Insufficient token balance."}


@pytest.mark.api
def test_access_without_session(test_client, make_gate, wallet):
    gate = make_gate()

    response = test_client.post("/gates/access", json=_access_body(None, wallet, gate.id))

    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated."}


@pytest.mark.api
def test_access_with_unknown_session(test_client, make_gate, wallet):
    gate = make_gate()

    response = test_client.post("/gates/access", json=_access_body("bogus", wallet, gate.id))

    assert response.status_code == 401


@pytest.mark.api
def test_access_missing_gate_id(test_client, seeded_users, wallet):
    body = _access_body(seeded_users.invitee_session, wallet, None)

    response = test_client.post("/gates/access", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing parameters."}


@pytest.mark.api
def test_access_bad_signature(test_client, make_gate, seeded_users, wallet):
    gate = make_gate()
    body = _access_body(seeded_users.invitee_session, wallet, gate.id, signature="0xdeadbeef")

    response = test_client.post("/gates/access", json=body)

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid signature."}


@pytest.mark.api
def test_access_unknown_gate(test_client, seeded_users, wallet):
    response = test_client.post(
        "/gates/access", json=_access_body(seeded_users.invitee_session, wallet, "missing")
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Gate not found."}


@pytest.mark.api
def test_access_exhausted_gate(test_client, make_gate, seeded_users, wallet):
    gate = make_gate(num_invites=1)
    gates_repo.increment_used_invites(gate.id)

    response = test_client.post(
        "/gates/access", json=_access_body(seeded_users.invitee_session, wallet, gate.id)
    )

    assert response.status_code == 409
    assert response.json() == {"error": "No invites remaining."}


@pytest.mark.api
def test_access_when_score_service_down(test_client, make_gate, seeded_users, wallet, fake_scores):
    gate = make_gate()
    fake_scores.fail = True

    response = test_client.post(
        "/gates/access", json=_access_body(seeded_users.invitee_session, wallet, gate.id)
    )

    assert response.status_code == 503
    assert response.json() == {"error": "Could not check token balance."}


@pytest.mark.api
def test_access_already_member(
    test_client, make_gate, seeded_users, wallet, fake_scores, github_host
):
    gate = make_gate()
    fake_scores.set_score(wallet.address, PINNED_BLOCK, "150")
    github_host.collaborators["acme/secret"].add("alice")

    response = test_client.post(
        "/gates/access", json=_access_body(seeded_users.invitee_session, wallet, gate.id)
    )

    assert response.status_code == 409
    assert response.json() == {"error": "Already have access to repository."}


# ============================================================================
# GATE MANAGEMENT
# ============================================================================


def _create_body(session_id, **overrides):
    body = {
        "session_id": session_id,
        "owner": "acme",
        "repo": "secret",
        "contractAddress": TOKEN_CONTRACT,
        "numTokens": "12.5",
        "numInvites": 2,
        "readOnly": True,
    }
    body.update(overrides)
    return body


@pytest.mark.api
def test_create_gate(test_client, seeded_users, fake_rpc):
    response = test_client.post("/gates/create", json=_create_body(seeded_users.owner_session))

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    gate = payload["gate"]
    assert gate["repo_owner"] == "acme"
    assert gate["contract_name"] == "Dai Stablecoin"
    assert gate["num_tokens"] == "12.5"
    assert gate["block_number"] == fake_rpc.head
    assert gate["read_only"] is True
    assert gate["remaining_invites"] == 2
    assert gates_repo.get_gate(gate["id"]) is not None


@pytest.mark.api
def test_create_gate_requires_session(test_client, test_db):
    response = test_client.post("/gates/create", json=_create_body(None))

    assert response.status_code == 401


@pytest.mark.api
def test_create_gate_invalid_amount(test_client, seeded_users):
    response = test_client.post(
        "/gates/create", json=_create_body(seeded_users.owner_session, numTokens="0")
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Token amount must be greater than zero."}


@pytest.mark.api
def test_create_gate_without_admin(test_client, seeded_users):
    response = test_client.post("/gates/create", json=_create_body(seeded_users.invitee_session))

    assert response.status_code == 403
    assert response.json() == {"error": "Repository does not exist or no admin access."}


@pytest.mark.api
def test_list_gates(test_client, make_gate, seeded_users):
    gate = make_gate()

    response = test_client.post("/gates/all", json={"session_id": seeded_users.owner_session})

    assert response.status_code == 200
    assert [item["id"] for item in response.json()["gates"]] == [gate.id]

    other = test_client.post("/gates/all", json={"session_id": seeded_users.invitee_session})
    assert other.json() == {"gates": []}


@pytest.mark.api
def test_get_public_gate(test_client, make_gate):
    gate = make_gate(num_invites=4)
    gates_repo.increment_used_invites(gate.id)

    response = test_client.get(f"/gates/{gate.id}")

    assert response.status_code == 200
    payload = response.json()
    assert payload["id"] == gate.id
    assert payload["used_invites"] == 1
    assert payload["remaining_invites"] == 3


@pytest.mark.api
def test_get_unknown_gate(test_client, test_db):
    response = test_client.get("/gates/missing")

    assert response.status_code == 404
    assert response.json() == {"error": "Gate not found."}


@pytest.mark.api
def test_delete_gate(test_client, make_gate, seeded_users):
    gate = make_gate()

    response = test_client.post(
        "/gates/delete", json={"session_id": seeded_users.owner_session, "gateId": gate.id}
    )

    assert response.status_code == 200
    assert gates_repo.get_gate(gate.id) is None


@pytest.mark.api
def test_delete_gate_by_non_creator(test_client, make_gate, seeded_users):
    gate = make_gate()

    response = test_client.post(
        "/gates/delete", json={"session_id": seeded_users.invitee_session, "gateId": gate.id}
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Not authorized to delete gate."}
    assert gates_repo.get_gate(gate.id) is not None


@pytest.mark.api
def test_delete_gate_without_id(test_client, seeded_users):
    response = test_client.post("/gates/delete", json={"session_id": seeded_users.owner_session})

    assert response.status_code == 400


# ============================================================================
# DATABASE ERRORS
# ============================================================================


def _broken_lookup(gate_id):
    raise DatabaseReadError(
        context=DatabaseOperationContext(operation="gates.get_gate", details=f"gate_id={gate_id!r}")
    )


@pytest.mark.api
def test_database_error_is_generic_500(test_client, monkeypatch):
    monkeypatch.setattr("gate_repo.services.gate_provisioning.get_public_gate", _broken_lookup)

    response = test_client.get("/gates/abc")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error."}


@pytest.mark.api
def test_database_error_detail_when_verbose(test_client, monkeypatch):
    monkeypatch.setattr("gate_repo.services.gate_provisioning.get_public_gate", _broken_lookup)
    monkeypatch.setattr(config.features, "verbose_errors", True)

    response = test_client.get("/gates/abc")

    assert response.status_code == 500
    assert response.json() == {"error": "gates.get_gate: gate_id='abc'"}
