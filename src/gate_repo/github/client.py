"""
GitHub REST client scoped to one user's access token.

Only the four calls the invitation exchange and gate provisioning need are
implemented. Every method raises :class:`GitHubError` for transport failures
and non-success responses; callers decide which status codes are domain
outcomes (a 404 on ``get_repository`` simply means "no access").
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import requests

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"


class GitHubError(Exception):
    """GitHub request failure.

    Attributes:
        status_code: HTTP status, or ``None`` when the request never completed.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubClient:
    """
    Thin wrapper over the GitHub REST API v3.

    Args:
        token: OAuth or personal access token of the acting user.
        api_url: API root (GitHub Enterprise installs differ).
        timeout: Per-request timeout in seconds.
        session: Optional ``requests.Session`` (tests pass a mock).
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.api_url}{path}"
        try:
            response = self._session.request(
                method, url, headers=self._headers, timeout=self.timeout, **kwargs
            )
        except requests.exceptions.RequestException as exc:
            logger.warning("GitHub %s %s failed: %s", method, path, exc)
            raise GitHubError(f"GitHub unreachable: {method} {path}") from exc

        if not 200 <= response.status_code < 300:
            raise GitHubError(
                f"GitHub {method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: requests.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise GitHubError("GitHub returned invalid JSON", status_code=response.status_code) from exc
        if not isinstance(body, dict):
            raise GitHubError("GitHub returned a non-object payload", status_code=response.status_code)
        return body

    def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        """``GET /repos/{owner}/{repo}``."""
        return self._json(self._request("GET", f"/repos/{owner}/{repo}"))

    def get_authenticated_user(self) -> dict[str, Any]:
        """``GET /user``."""
        return self._json(self._request("GET", "/user"))

    def get_user_by_id(self, account_id: int | str) -> dict[str, Any]:
        """``GET /user/{account_id}`` (public profile by numeric id)."""
        return self._json(self._request("GET", f"/user/{account_id}"))

    def add_collaborator(
        self, owner: str, repo: str, username: str, *, permission: str | None = None
    ) -> dict[str, Any] | None:
        """``PUT /repos/{owner}/{repo}/collaborators/{username}``.

        Returns:
            The invitation object on ``201``; ``None`` on ``204`` (the user
            was already a collaborator, so GitHub created no invitation).
        """
        payload = {"permission": permission} if permission else {}
        response = self._request(
            "PUT", f"/repos/{owner}/{repo}/collaborators/{username}", json=payload
        )
        if response.status_code == 204 or not response.content:
            return None
        return self._json(response)

    def accept_invitation(self, invitation_id: int | str) -> int:
        """``PATCH /user/repository_invitations/{invitation_id}``; returns the status code."""
        response = self._request("PATCH", f"/user/repository_invitations/{invitation_id}")
        return response.status_code


GitHubClientFactory = Callable[[str], GitHubClient]


def build_client_factory() -> GitHubClientFactory:
    """Return a factory building token-scoped clients from ``config.github``."""
    from gate_repo.config import config

    def factory(token: str) -> GitHubClient:
        return GitHubClient(
            token, api_url=config.github.api_url, timeout=config.github.timeout_seconds
        )

    return factory
