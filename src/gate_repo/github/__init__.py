"""GitHub REST API client."""

from gate_repo.github.client import (
    GitHubClient,
    GitHubClientFactory,
    GitHubError,
    build_client_factory,
)

__all__ = ["GitHubClient", "GitHubClientFactory", "GitHubError", "build_client_factory"]
