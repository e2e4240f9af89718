"""
End-to-end gate access protocol.

One :meth:`GateAccessOrchestrator.run` call is one access attempt. It walks a
fixed sequence of states and stops at the first failure, raising the
:class:`~gate_repo.access.errors.AccessError` for that state:

====  ==========================  ==========================================
Step  State                       Failure
====  ==========================  ==========================================
1     AuthenticateCaller          ``Unauthenticated``
2     ValidateInput               ``MissingParameters``
3     VerifySignature             ``InvalidSignature``
4     LoadGate                    ``GateNotFound``
5     CheckQuota                  ``QuotaExhausted``
6     MeasureBalance              ``InsufficientBalance`` / ``BalanceUnavailable``
7     ResolveInviteeCredential    ``CredentialMissing``
8     ResolveOwnerCredential      ``OwnerCredentialMissing``
9     Invite                      ``AlreadyMember`` / ``InviteIssueFailed`` /
                                  ``InviteAcceptFailed`` / ``CredentialMissing``
10    CommitQuota                 ``QuotaExhausted`` (lost a race)
11    Success
====  ==========================  ==========================================

Steps 1-8 touch nothing outside this process except reads, so a denied
attempt never changes ``used_invites``. Step 9 changes GitHub state; step 10
is the only local write and the only point where concurrent attempts for the
same gate are serialized. Nothing is rolled back when step 10 fails after
step 9 succeeded; the attempt is logged at ERROR and written to the audit
ledger as ``quota.commit_failed`` for reconciliation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from gate_repo.access import trail
from gate_repo.access.balance import BalanceMeasurement, BalanceOracle
from gate_repo.access.errors import (
    AccessError,
    CredentialMissing,
    GateNotFound,
    InsufficientBalance,
    MissingParameters,
    OwnerCredentialMissing,
    QuotaExhausted,
    Unauthenticated,
)
from gate_repo.access.inviter import CollaboratorInviter, InvitationReceipt
from gate_repo.access.quota import InviteQuotaLedger
from gate_repo.access.signature import verify_address
from gate_repo.db import gates_repo, users_repo
from gate_repo.db.types import Gate

logger = logging.getLogger(__name__)


class AccessState(Enum):
    AUTHENTICATE_CALLER = 1
    VALIDATE_INPUT = 2
    VERIFY_SIGNATURE = 3
    LOAD_GATE = 4
    CHECK_QUOTA = 5
    MEASURE_BALANCE = 6
    RESOLVE_INVITEE_CREDENTIAL = 7
    RESOLVE_OWNER_CREDENTIAL = 8
    INVITE = 9
    COMMIT_QUOTA = 10
    SUCCESS = 11


@dataclass(slots=True)
class AccessAttempt:
    """
    Working state of one access attempt. Never persisted.

    Attributes:
        user_id: Authenticated caller, or ``None``.
        address: Claimed address, as supplied.
        signature: Hex signature over the challenge for ``address``.
        gate_id: Requested gate.
        state: Last state entered; on failure, the state that failed.
        verified_address: Recovered signer once step 3 passes.
        gate: Gate as loaded in step 4 (post-increment after step 10).
        balance: Measurement from step 6.
        invitation: Receipt from step 9.
    """

    user_id: int | None
    address: str
    signature: str
    gate_id: str
    state: AccessState = AccessState.AUTHENTICATE_CALLER
    verified_address: str | None = None
    gate: Gate | None = None
    balance: BalanceMeasurement | None = None
    invitation: InvitationReceipt | None = None
    history: list[AccessState] = field(default_factory=list)

    def enter(self, state: AccessState) -> None:
        self.state = state
        self.history.append(state)


class GateAccessOrchestrator:
    """
    Composes signature, balance, quota and invitation checks.

    Args:
        oracle: Balance measurement for step 6.
        inviter: GitHub invitation exchange for step 9.
        ledger: Quota checks for steps 5 and 10.
    """

    def __init__(
        self,
        oracle: BalanceOracle,
        inviter: CollaboratorInviter,
        ledger: InviteQuotaLedger | None = None,
    ) -> None:
        self.oracle = oracle
        self.inviter = inviter
        self.ledger = ledger or InviteQuotaLedger()

    def run(
        self, user_id: int | None, address: str | None, signature: str | None, gate_id: str | None
    ) -> AccessAttempt:
        """Run one access attempt to completion.

        Returns:
            The attempt in state ``SUCCESS``.

        Raises:
            AccessError: The first failing state's error. ``attempt`` is not
                returned in that case; the error is logged with its state.
        """
        attempt = AccessAttempt(
            user_id=user_id,
            address=(address or "").strip(),
            signature=(signature or "").strip(),
            gate_id=(gate_id or "").strip(),
        )
        try:
            self._run(attempt)
        except AccessError as exc:
            logger.warning(
                "Access denied for gate %s at %s: %s",
                attempt.gate_id or "-",
                attempt.state.name,
                exc.code,
            )
            raise
        logger.info(
            "Access granted: user %s joined %s via gate %s (%s/%s invites used)",
            attempt.user_id,
            attempt.gate.full_name if attempt.gate else "-",
            attempt.gate_id,
            attempt.gate.used_invites if attempt.gate else "?",
            attempt.gate.num_invites if attempt.gate else "?",
        )
        return attempt

    def _run(self, attempt: AccessAttempt) -> None:
        attempt.enter(AccessState.AUTHENTICATE_CALLER)
        if attempt.user_id is None:
            raise Unauthenticated()
        user_id = attempt.user_id

        attempt.enter(AccessState.VALIDATE_INPUT)
        if not (attempt.address and attempt.signature and attempt.gate_id):
            raise MissingParameters()

        attempt.enter(AccessState.VERIFY_SIGNATURE)
        attempt.verified_address = verify_address(attempt.address, attempt.signature)

        attempt.enter(AccessState.LOAD_GATE)
        gate = gates_repo.get_gate(attempt.gate_id)
        if gate is None:
            raise GateNotFound()
        attempt.gate = gate

        attempt.enter(AccessState.CHECK_QUOTA)
        if not self.ledger.has_capacity(gate):
            raise QuotaExhausted()

        attempt.enter(AccessState.MEASURE_BALANCE)
        attempt.balance = self.oracle.measure(gate, attempt.verified_address)
        if not attempt.balance.satisfies(gate.num_tokens):
            logger.info(
                "Gate %s requires %s %s; %s holds %s",
                gate.id,
                gate.num_tokens,
                gate.contract_name,
                attempt.verified_address,
                attempt.balance.amount,
            )
            raise InsufficientBalance()

        attempt.enter(AccessState.RESOLVE_INVITEE_CREDENTIAL)
        invitee_credential = users_repo.get_credential_for_user(user_id)
        if invitee_credential is None:
            raise CredentialMissing()

        attempt.enter(AccessState.RESOLVE_OWNER_CREDENTIAL)
        owner_credential = users_repo.get_credential_for_user(gate.creator_id)
        if owner_credential is None:
            raise OwnerCredentialMissing()

        attempt.enter(AccessState.INVITE)
        attempt.invitation = self.inviter.invite(gate, owner_credential, invitee_credential)

        attempt.enter(AccessState.COMMIT_QUOTA)
        attempt.gate = self._commit(attempt, gate)

        attempt.enter(AccessState.SUCCESS)
        trail.record(
            "access.granted",
            gate_id=gate.id,
            user_id=user_id,
            address=attempt.verified_address,
            invitation_id=attempt.invitation.invitation_id,
            used_invites=attempt.gate.used_invites,
        )

    def _commit(self, attempt: AccessAttempt, gate: Gate) -> Gate:
        try:
            return self.ledger.commit_increment(gate.id)
        except Exception as exc:
            # GitHub access was already granted; the slot was not consumed.
            invitation_id = attempt.invitation.invitation_id if attempt.invitation else None
            logger.error(
                "Invitation %s accepted on %s but quota commit failed for gate %s",
                invitation_id,
                gate.full_name,
                gate.id,
                exc_info=True,
            )
            trail.record(
                "quota.commit_failed",
                gate_id=gate.id,
                user_id=attempt.user_id,
                invitation_id=invitation_id,
                error=getattr(exc, "code", type(exc).__name__),
            )
            raise


def build_orchestrator() -> GateAccessOrchestrator:
    """Wire an orchestrator from runtime configuration."""
    from gate_repo.access.balance import build_balance_oracle
    from gate_repo.access.inviter import build_inviter

    return GateAccessOrchestrator(build_balance_oracle(), build_inviter())
