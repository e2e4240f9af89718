"""Audit package: append-only JSONL record of invitation side effects.

Public surface
--------------
- :func:`append_event`            : append one event to a stream.
- :func:`read_events`             : read every valid event in a stream.
- :func:`outstanding_invitations` : invitations issued without a committed grant.
- :func:`verify_stream`           : integrity check of the last event.
- :exc:`AuditWriteError`          : raised when an append fails.
"""

from gate_repo.audit.writer import (
    INVITATIONS_STREAM,
    AuditVerifyResult,
    AuditWriteError,
    append_event,
    outstanding_invitations,
    read_events,
    verify_stream,
)

__all__ = [
    "INVITATIONS_STREAM",
    "AuditVerifyResult",
    "AuditWriteError",
    "append_event",
    "outstanding_invitations",
    "read_events",
    "verify_stream",
]
