"""Tests for the two-credential collaborator invitation exchange."""

from __future__ import annotations

import pytest

from gate_repo.access.errors import (
    AlreadyMember,
    CredentialMissing,
    InviteAcceptFailed,
    InviteIssueFailed,
)
from gate_repo.access.inviter import CollaboratorInviter
from gate_repo.audit import read_events
from gate_repo.db.types import Credential

OWNER = Credential(
    id=1, user_id=1, provider="github", access_token="owner-token", provider_account_id="1001"
)
INVITEE = Credential(
    id=2, user_id=2, provider="github", access_token="alice-token", provider_account_id="2002"
)


def _event_types() -> list[str]:
    return [event["event_type"] for event in read_events("invitations")]


@pytest.mark.unit
def test_full_exchange_adds_collaborator(make_gate, github_host):
    gate = make_gate()

    receipt = CollaboratorInviter(github_host.client).invite(gate, OWNER, INVITEE)

    assert receipt.username == "alice"
    assert receipt.permission is None
    assert "alice" in github_host.collaborators["acme/secret"]
    assert [(token, method) for token, method, _ in github_host.calls] == [
        ("alice-token", "get_repository"),
        ("owner-token", "get_user_by_id"),
        ("owner-token", "add_collaborator"),
        ("alice-token", "accept_invitation"),
    ]
    assert _event_types() == ["invite.issued", "invite.accepted"]


@pytest.mark.unit
def test_read_only_gate_requests_pull_permission(make_gate, github_host):
    gate = make_gate(read_only=True)

    receipt = CollaboratorInviter(github_host.client).invite(gate, OWNER, INVITEE)

    assert receipt.permission == "pull"
    (_, _, args) = github_host.calls_named("add_collaborator")[0]
    assert args == ("acme", "secret", "alice", "pull")


@pytest.mark.unit
def test_existing_access_is_already_member_and_issues_nothing(make_gate, github_host):
    github_host.collaborators["acme/secret"].add("alice")

    with pytest.raises(AlreadyMember):
        CollaboratorInviter(github_host.client).invite(make_gate(), OWNER, INVITEE)

    assert github_host.calls_named("add_collaborator") == []
    assert _event_types() == []


@pytest.mark.unit
def test_repo_lookup_403_counts_as_no_access(make_gate, github_host):
    github_host.fail_lookup_status = 403

    receipt = CollaboratorInviter(github_host.client).invite(make_gate(), OWNER, INVITEE)

    assert receipt.username == "alice"


@pytest.mark.unit
def test_rejected_invitee_token_is_credential_missing(make_gate, github_host):
    stale = Credential(id=3, user_id=2, provider="github", access_token="revoked")

    with pytest.raises(CredentialMissing):
        CollaboratorInviter(github_host.client).invite(make_gate(), OWNER, stale)


@pytest.mark.unit
def test_repo_lookup_server_error_is_invite_issue_failed(make_gate, github_host):
    github_host.fail_lookup_status = 502

    with pytest.raises(InviteIssueFailed):
        CollaboratorInviter(github_host.client).invite(make_gate(), OWNER, INVITEE)


@pytest.mark.unit
def test_username_falls_back_to_invitee_identity(make_gate, github_host):
    no_account_id = Credential(id=4, user_id=2, provider="github", access_token="alice-token")

    receipt = CollaboratorInviter(github_host.client).invite(make_gate(), OWNER, no_account_id)

    assert receipt.username == "alice"
    assert github_host.calls_named("get_user_by_id") == []
    assert github_host.calls_named("get_authenticated_user")[0][0] == "alice-token"


@pytest.mark.unit
def test_unknown_account_id_is_invite_issue_failed(make_gate, github_host):
    ghost = Credential(
        id=5, user_id=2, provider="github", access_token="alice-token", provider_account_id="404404"
    )

    with pytest.raises(InviteIssueFailed):
        CollaboratorInviter(github_host.client).invite(make_gate(), OWNER, ghost)
    assert github_host.calls_named("add_collaborator") == []


@pytest.mark.unit
def test_add_collaborator_failure_is_invite_issue_failed(make_gate, github_host):
    github_host.fail_issue = True

    with pytest.raises(InviteIssueFailed):
        CollaboratorInviter(github_host.client).invite(make_gate(), OWNER, INVITEE)
    assert _event_types() == []


@pytest.mark.unit
def test_missing_invitation_id_is_invite_issue_failed(make_gate, github_host):
    github_host.issue_returns_nothing = True

    with pytest.raises(InviteIssueFailed):
        CollaboratorInviter(github_host.client).invite(make_gate(), OWNER, INVITEE)
    assert github_host.calls_named("accept_invitation") == []


@pytest.mark.unit
def test_accept_failure_leaves_invitation_outstanding(make_gate, github_host):
    github_host.fail_accept = True

    with pytest.raises(InviteAcceptFailed):
        CollaboratorInviter(github_host.client).invite(make_gate(), OWNER, INVITEE)

    assert _event_types() == ["invite.issued", "invite.accept_failed"]
    assert len(github_host.invitations) == 1
    assert "alice" not in github_host.collaborators["acme/secret"]
