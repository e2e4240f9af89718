"""Invite quota accounting.

``has_capacity`` is an early, advisory check against a previously loaded gate.
``commit_increment`` is authoritative: it delegates to a single conditional
``UPDATE`` so two attempts racing for the last slot cannot both win.
"""

from __future__ import annotations

import logging

from gate_repo.access.errors import GateNotFound, QuotaExhausted
from gate_repo.db import gates_repo
from gate_repo.db.types import Gate

logger = logging.getLogger(__name__)


class InviteQuotaLedger:
    """Tracks ``used_invites`` against ``num_invites`` per gate."""

    def has_capacity(self, gate: Gate) -> bool:
        return gate.used_invites < gate.num_invites

    def commit_increment(self, gate_id: str) -> Gate:
        """Consume one invite slot and return the post-increment gate.

        Raises:
            QuotaExhausted: No slot was left at commit time.
            GateNotFound: The gate was deleted after it was loaded.
        """
        updated = gates_repo.increment_used_invites(gate_id)
        if updated is not None:
            return updated

        if gates_repo.get_gate(gate_id) is None:
            raise GateNotFound()
        logger.info("Quota commit lost for gate %s: no slots remaining", gate_id)
        raise QuotaExhausted()
