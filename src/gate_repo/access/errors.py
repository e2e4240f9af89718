"""
Access error taxonomy.

Every terminal outcome of an access attempt other than success is one of these
exceptions. Each carries a stable machine ``code``, the HTTP status the API
layer responds with, and a short message that is safe to show the caller.
None of them is retried by the core.
"""

from __future__ import annotations


class AccessError(Exception):
    """Base class for terminal access-attempt failures."""

    code: str = "access_error"
    status_code: int = 400
    default_message: str = "Access denied."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(AccessError):
    code = "unauthenticated"
    status_code = 401
    default_message = "Not authenticated."


class MissingParameters(AccessError):
    code = "missing_parameters"
    status_code = 400
    default_message = "Missing parameters."


class InvalidSignature(AccessError):
    code = "invalid_signature"
    status_code = 401
    default_message = "Invalid signature."


class GateNotFound(AccessError):
    code = "gate_not_found"
    status_code = 404
    default_message = "Gate not found."


class QuotaExhausted(AccessError):
    code = "quota_exhausted"
    status_code = 409
    default_message = "No invites remaining."


class InsufficientBalance(AccessError):
    code = "insufficient_balance"
    status_code = 403
    default_message = "Insufficient token balance."


class BalanceUnavailable(AccessError):
    """The balance could not be measured (RPC or score service failure).

    Kept distinct from :class:`InsufficientBalance` so operators can tell
    "held too few tokens" from "could not check".
    """

    code = "balance_unavailable"
    status_code = 503
    default_message = "Could not check token balance."


class CredentialMissing(AccessError):
    code = "credential_missing"
    status_code = 403
    default_message = "No linked GitHub account."


class OwnerCredentialMissing(AccessError):
    code = "owner_credential_missing"
    status_code = 409
    default_message = "Gate owner has no linked GitHub account."


class AlreadyMember(AccessError):
    code = "already_member"
    status_code = 409
    default_message = "Already have access to repository."


class InviteIssueFailed(AccessError):
    code = "invite_issue_failed"
    status_code = 502
    default_message = "Could not create repository invitation."


class InviteAcceptFailed(AccessError):
    code = "invite_accept_failed"
    status_code = 502
    default_message = "Could not accept repository invitation."


class RepositoryAccessDenied(AccessError):
    """Gate creator lacks admin permission on the repository."""

    code = "repository_access_denied"
    status_code = 403
    default_message = "Repository does not exist or no admin access."


class NotGateCreator(AccessError):
    code = "not_gate_creator"
    status_code = 403
    default_message = "Not authorized to delete gate."


class TokenMetadataUnavailable(AccessError):
    """``name()``/``decimals()`` could not be read from the token contract."""

    code = "token_metadata_unavailable"
    status_code = 502
    default_message = "Could not read token contract."
