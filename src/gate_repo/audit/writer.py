"""JSONL audit ledger for invitation side effects.

Overview
--------
An access grant advances two stores that cannot share a transaction: GitHub
(invitation issued, then accepted) and the local ``gates`` table (invite slot
consumed). Nothing rolls GitHub back when a later local step fails, so every
external step is recorded here and :func:`outstanding_invitations` lists the
invitations that never reached a committed grant. Operators reconcile those
out of band (``gate-repo reconcile``).

Storage
-------
One JSONL file per stream::

    <config.audit.root>/<stream>.jsonl

The directory and file are created on the first write.

Envelope format
---------------
Every line is a self-contained JSON object:

.. code-block:: json

    {
      "event_id":       "a3f91c9e2d4b5e6f...",
      "timestamp":      "2026-02-27T14:23:01.452345+00:00",
      "stream":         "invitations",
      "event_type":     "invite.issued",
      "schema_version": "1.0",
      "meta":           {},
      "data":           {"gate_id": "...", "invitation_id": 42, ...},
      "_checksum":      "sha256:b94f3e..."
    }

``_checksum`` covers the envelope body (every field except ``_checksum``)
serialized with ``sort_keys=True``.

Event types (stream ``invitations``)
------------------------------------
::

    invite.issued          collaborator invitation created on GitHub
    invite.accepted        invitee accepted it
    invite.accept_failed   acceptance failed; invitation left outstanding
    quota.commit_failed    accepted, but the local invite slot was not consumed
    access.granted         slot committed; the attempt is complete

Concurrency
-----------
``fcntl.flock(LOCK_EX)`` is held for every append, serialising writers across
threads and processes on one host. POSIX only.

Failure isolation
-----------------
:exc:`AuditWriteError` is raised on filesystem failure. Callers log a warning
and continue; a lost audit record never fails an access attempt.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = "1.0"

INVITATIONS_STREAM = "invitations"

_TAIL_CHUNK_BYTES = 16_384


class AuditWriteError(Exception):
    """Raised when an audit append fails due to a filesystem or encoding error."""


@dataclass(frozen=True)
class AuditVerifyResult:
    """Result of :func:`verify_stream`.

    Attributes:
        status: ``"ok"``, ``"empty"`` or ``"corrupt"``.
        last_event_id: ``event_id`` of the last valid event, when ``"ok"``.
        error_detail: Failure reason, when ``"corrupt"``.
    """

    status: Literal["ok", "empty", "corrupt"]
    last_event_id: str | None
    error_detail: str | None


def append_event(
    stream: str,
    event_type: str,
    data: dict[str, Any],
    *,
    meta: dict[str, Any] | None = None,
) -> str:
    """Append one event to ``stream`` and return its ``event_id``.

    Raises:
        ValueError: ``stream`` or ``event_type`` is blank.
        AuditWriteError: The payload is not serialisable or the write failed.
    """
    if not stream or not stream.strip():
        raise ValueError("append_event: stream must be a non-empty string.")
    if not event_type or not event_type.strip():
        raise ValueError("append_event: event_type must be a non-empty string.")

    event_id = uuid.uuid4().hex
    envelope_body: dict[str, Any] = {
        "event_id": event_id,
        "timestamp": datetime.now(UTC).isoformat(),
        "stream": stream,
        "event_type": event_type,
        "schema_version": _SCHEMA_VERSION,
        "meta": meta if meta is not None else {},
        "data": data,
    }

    try:
        checksum = _compute_checksum(envelope_body)
        line = json.dumps(
            {**envelope_body, "_checksum": f"sha256:{checksum}"},
            ensure_ascii=False,
            sort_keys=True,
        )
    except (TypeError, ValueError) as exc:
        raise AuditWriteError(f"Event {event_type!r} payload is not JSON-serialisable: {exc}") from exc

    path = _stream_path(stream)
    try:
        _append_line_locked(path, line)
    except OSError as exc:
        raise AuditWriteError(f"Failed to write event {event_id!r} to {path}: {exc}") from exc

    logger.debug("audit: appended %r event %s to %s", event_type, event_id, path.name)
    return event_id


def read_events(stream: str) -> list[dict[str, Any]]:
    """Return every valid event in ``stream`` in append order.

    Lines that fail to parse or whose checksum does not match are skipped
    with a warning.
    """
    path = _stream_path(stream)
    if not path.exists():
        return []

    events: list[dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                envelope = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("audit: %s line %d is not valid JSON; skipped", path.name, lineno)
                continue
            if not isinstance(envelope, dict) or not _checksum_matches(envelope):
                logger.warning("audit: %s line %d failed checksum; skipped", path.name, lineno)
                continue
            events.append(envelope)
    return events


def outstanding_invitations(stream: str = INVITATIONS_STREAM) -> list[dict[str, Any]]:
    """Return issued invitations that never reached ``access.granted``.

    Each entry is the ``invite.issued`` event data enriched with the last
    event type seen for that invitation (``last_event``).
    """
    issued: dict[str, dict[str, Any]] = {}
    last_seen: dict[str, str] = {}
    granted: set[str] = set()

    for event in read_events(stream):
        data = event.get("data") or {}
        invitation_id = data.get("invitation_id")
        if invitation_id is None:
            continue
        key = str(invitation_id)
        event_type = event.get("event_type")
        if event_type == "invite.issued":
            issued[key] = {**data, "issued_at": event.get("timestamp")}
        elif event_type == "access.granted":
            granted.add(key)
        last_seen[key] = str(event_type)

    return [
        {**data, "last_event": last_seen.get(key)}
        for key, data in issued.items()
        if key not in granted
    ]


def verify_stream(stream: str) -> AuditVerifyResult:
    """Verify the integrity of the most recent event in ``stream``."""
    path = _stream_path(stream)
    if not path.exists():
        return AuditVerifyResult(status="empty", last_event_id=None, error_detail=None)

    last_line = _read_last_nonempty_line(path)
    if last_line is None:
        return AuditVerifyResult(status="empty", last_event_id=None, error_detail=None)

    try:
        envelope = json.loads(last_line)
    except json.JSONDecodeError as exc:
        return AuditVerifyResult(
            status="corrupt", last_event_id=None, error_detail=f"Last line is not valid JSON: {exc}"
        )

    if not isinstance(envelope, dict):
        return AuditVerifyResult(
            status="corrupt", last_event_id=None, error_detail="Last line is not a JSON object."
        )

    if not _checksum_matches(envelope):
        return AuditVerifyResult(
            status="corrupt",
            last_event_id=None,
            error_detail="Checksum missing or mismatched on last event.",
        )

    event_id = envelope.get("event_id")
    if not isinstance(event_id, str) or not event_id:
        return AuditVerifyResult(
            status="corrupt", last_event_id=None, error_detail="Last line has no 'event_id'."
        )
    return AuditVerifyResult(status="ok", last_event_id=event_id, error_detail=None)


# ── Internal helpers ──────────────────────────────────────────────────────────


def _stream_path(stream: str) -> Path:
    """Resolve ``<config.audit.root>/<stream>.jsonl`` at call time."""
    from gate_repo.config import config

    return config.audit.absolute_root / f"{stream}.jsonl"


def _compute_checksum(payload: dict[str, Any]) -> str:
    canonical = json.dumps(payload, ensure_ascii=False, sort_keys=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _checksum_matches(envelope: dict[str, Any]) -> bool:
    recorded = envelope.get("_checksum")
    if not isinstance(recorded, str):
        return False
    body = {k: v for k, v in envelope.items() if k != "_checksum"}
    return recorded == f"sha256:{_compute_checksum(body)}"


def _append_line_locked(path: Path, line: str) -> None:
    """Append a newline-terminated line to ``path`` under an exclusive lock."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as fh:
        fcntl.flock(fh, fcntl.LOCK_EX)
        try:
            fh.write(line + "\n")
            fh.flush()
        finally:
            fcntl.flock(fh, fcntl.LOCK_UN)


def _read_last_nonempty_line(path: Path) -> str | None:
    """Return the last non-empty line, reading at most ``_TAIL_CHUNK_BYTES`` from the end."""
    try:
        with path.open("rb") as fh:
            fh.seek(0, 2)
            size = fh.tell()
            if size == 0:
                return None
            fh.seek(max(0, size - _TAIL_CHUNK_BYTES))
            chunk = fh.read()
    except OSError:
        return None

    for line in reversed(chunk.decode("utf-8", errors="replace").splitlines()):
        if line.strip():
            return line.strip()
    return None
