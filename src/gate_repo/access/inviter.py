"""
Collaborator invitation exchange.

Two credentials take part, in a fixed order:

1. Invitee: ``GET /repos/{owner}/{repo}``. Success means the invitee can
   already see the repository, so no invitation is issued.
2. Owner: resolve the invitee's GitHub login from their numeric account id.
3. Owner: ``PUT /repos/{owner}/{repo}/collaborators/{login}``.
4. Invitee: ``PATCH /user/repository_invitations/{id}``.

Steps 3 and 4 change GitHub state and are never undone here. Each of them is
written to the audit ledger so an invitation that never reaches a committed
grant can be reconciled later.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gate_repo.access import trail
from gate_repo.access.errors import (
    AlreadyMember,
    CredentialMissing,
    InviteAcceptFailed,
    InviteIssueFailed,
)
from gate_repo.db.types import Credential, Gate
from gate_repo.github.client import GitHubClient, GitHubClientFactory, GitHubError

logger = logging.getLogger(__name__)

READ_ONLY_PERMISSION = "pull"

# Statuses on the invitee's repository lookup that mean "no access yet".
_NO_ACCESS_STATUSES = frozenset({403, 404})


@dataclass(slots=True, frozen=True)
class InvitationReceipt:
    """Outcome of a completed exchange."""

    invitation_id: int | str
    username: str
    permission: str | None


class CollaboratorInviter:
    """
    Issues and accepts a repository invitation on behalf of two users.

    Args:
        client_factory: Builds a :class:`GitHubClient` from an access token.
    """

    def __init__(self, client_factory: GitHubClientFactory) -> None:
        self._client_factory = client_factory

    def invite(
        self, gate: Gate, owner_credential: Credential, invitee_credential: Credential
    ) -> InvitationReceipt:
        """Run the four-step exchange for ``gate``.

        Raises:
            AlreadyMember: The invitee can already access the repository.
            CredentialMissing: GitHub rejected the invitee's token.
            InviteIssueFailed: The username could not be resolved or GitHub
                returned no invitation.
            InviteAcceptFailed: The invitation exists but acceptance failed.
        """
        owner = self._client_factory(owner_credential.access_token)
        invitee = self._client_factory(invitee_credential.access_token)

        self._ensure_not_member(invitee, gate)
        username = self._resolve_username(owner, invitee, invitee_credential)
        permission = READ_ONLY_PERMISSION if gate.read_only else None
        invitation_id = self._issue(owner, gate, username, permission)
        self._accept(invitee, gate, invitation_id, username)

        return InvitationReceipt(invitation_id=invitation_id, username=username, permission=permission)

    def _ensure_not_member(self, invitee: GitHubClient, gate: Gate) -> None:
        try:
            invitee.get_repository(gate.repo_owner, gate.repo_name)
        except GitHubError as exc:
            if exc.status_code in _NO_ACCESS_STATUSES:
                return
            if exc.status_code == 401:
                raise CredentialMissing("Linked GitHub account token was rejected.") from exc
            logger.warning("Repository lookup for %s failed: %s", gate.full_name, exc)
            raise InviteIssueFailed() from exc
        raise AlreadyMember()

    def _resolve_username(
        self, owner: GitHubClient, invitee: GitHubClient, invitee_credential: Credential
    ) -> str:
        try:
            if invitee_credential.provider_account_id:
                profile = owner.get_user_by_id(invitee_credential.provider_account_id)
            else:
                # No stored account id: ask GitHub who the invitee token belongs to.
                profile = invitee.get_authenticated_user()
        except GitHubError as exc:
            logger.warning(
                "Could not resolve GitHub username for user %s: %s", invitee_credential.user_id, exc
            )
            raise InviteIssueFailed("Could not resolve GitHub username.") from exc

        login = profile.get("login")
        if not isinstance(login, str) or not login:
            raise InviteIssueFailed("Could not resolve GitHub username.")
        return login

    def _issue(
        self, owner: GitHubClient, gate: Gate, username: str, permission: str | None
    ) -> int | str:
        try:
            invitation = owner.add_collaborator(
                gate.repo_owner, gate.repo_name, username, permission=permission
            )
        except GitHubError as exc:
            logger.warning("Invitation for %s on %s failed: %s", username, gate.full_name, exc)
            raise InviteIssueFailed() from exc

        invitation_id = (invitation or {}).get("id")
        if invitation_id in (None, ""):
            raise InviteIssueFailed()

        trail.record(
            "invite.issued",
            gate_id=gate.id,
            repository=gate.full_name,
            invitation_id=invitation_id,
            username=username,
            permission=permission,
        )
        logger.info("Invitation %s issued to %s on %s", invitation_id, username, gate.full_name)
        return invitation_id

    def _accept(
        self, invitee: GitHubClient, gate: Gate, invitation_id: int | str, username: str
    ) -> None:
        try:
            invitee.accept_invitation(invitation_id)
        except GitHubError as exc:
            trail.record(
                "invite.accept_failed",
                gate_id=gate.id,
                invitation_id=invitation_id,
                username=username,
                status_code=exc.status_code,
            )
            logger.warning(
                "Invitation %s left outstanding on %s: %s", invitation_id, gate.full_name, exc
            )
            raise InviteAcceptFailed() from exc

        trail.record(
            "invite.accepted", gate_id=gate.id, invitation_id=invitation_id, username=username
        )


def build_inviter() -> CollaboratorInviter:
    """Build an inviter backed by ``config.github``."""
    from gate_repo.github.client import build_client_factory

    return CollaboratorInviter(build_client_factory())
