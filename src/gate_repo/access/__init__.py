"""Gate access verification and invitation protocol.

Public surface
--------------
- :class:`GateAccessOrchestrator` : runs one access attempt end to end.
- :class:`BalanceOracle`          : live or snapshot token balance reads.
- :class:`InviteQuotaLedger`      : advisory capacity check and atomic commit.
- :class:`CollaboratorInviter`    : two-credential GitHub invitation exchange.
- :func:`verify_address`          : signature-based address ownership proof.
"""

from gate_repo.access.balance import BalanceMeasurement, BalanceOracle
from gate_repo.access.errors import AccessError
from gate_repo.access.inviter import CollaboratorInviter, InvitationReceipt
from gate_repo.access.orchestrator import AccessAttempt, AccessState, GateAccessOrchestrator
from gate_repo.access.quota import InviteQuotaLedger
from gate_repo.access.signature import verify_address

__all__ = [
    "AccessAttempt",
    "AccessError",
    "AccessState",
    "BalanceMeasurement",
    "BalanceOracle",
    "CollaboratorInviter",
    "GateAccessOrchestrator",
    "InvitationReceipt",
    "InviteQuotaLedger",
    "verify_address",
]
