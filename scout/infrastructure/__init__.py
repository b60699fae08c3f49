"""Infrastructure clients (HTTP, GitHub, LLM)."""

from scout.infrastructure.github import GitHubClient
from scout.infrastructure.http_client import HTTPClient

__all__ = ["GitHubClient", "HTTPClient"]
