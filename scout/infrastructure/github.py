"""GitHub REST API client.

Thin wrapper over the shared HTTPClient for the repository search endpoint
used by the pattern scanner.
https://docs.github.com/en/rest/search/search#search-repositories
"""

from typing import Any

import httpx

from scout.core.exceptions import ExternalAPIError, RateLimitError
from scout.core.logging import get_logger
from scout.infrastructure.http_client import HTTPClient

logger = get_logger(__name__)

SEARCH_REPOSITORIES = "/search/repositories"

# GitHub returns at most 100 items per page
MAX_PER_PAGE = 100


class GitHubClient:
    """GitHub repository search client.

    Attributes:
        http_client: Shared HTTP client (base URL points at the API)
    """

    def __init__(self, http_client: HTTPClient, token: str = ""):
        """Initialize GitHub client.

        Args:
            http_client: HTTP client whose base_url is the GitHub API URL
            token: Personal access token (unauthenticated if empty)
        """
        self.http_client = http_client
        self._headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    async def search_repositories(
        self,
        query: str,
        limit: int = 30,
        sort: str = "stars",
    ) -> list[dict[str, Any]]:
        """Search repositories.

        Args:
            query: GitHub search query (e.g. "spark language:Scala stars:>=10")
            limit: Maximum repositories to return (capped at 100)
            sort: Sort field

        Returns:
            Repository objects as returned by the API

        Raises:
            RateLimitError: If GitHub rate limits the request
            ExternalAPIError: If the request fails
        """
        params = {"q": query, "sort": sort, "order": "desc", "per_page": min(limit, MAX_PER_PAGE)}
        try:
            response = await self.http_client.get(
                SEARCH_REPOSITORIES, params=params, headers=self._headers
            )
        except httpx.HTTPError as e:
            raise ExternalAPIError(
                service="github", message=str(e), endpoint=SEARCH_REPOSITORIES
            ) from e

        self._raise_for_status(response)

        items = self._parse_items(response)
        logger.debug("GitHub search complete", query=query, results=len(items))
        return [item for item in items if isinstance(item, dict)][:limit]

    @staticmethod
    def _parse_items(response: httpx.Response) -> list[Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise ExternalAPIError(
                service="github",
                message=f"response is not JSON: {e}",
                status_code=response.status_code,
                endpoint=SEARCH_REPOSITORIES,
                response_body=response.text,
            ) from e

        items = body.get("items", []) if isinstance(body, dict) else None
        if not isinstance(items, list):
            raise ExternalAPIError(
                service="github",
                message="response has no items list",
                status_code=response.status_code,
                endpoint=SEARCH_REPOSITORIES,
                response_body=response.text,
            )
        return items

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return

        remaining = response.headers.get("X-RateLimit-Remaining")
        if response.status_code == 429 or (response.status_code == 403 and remaining == "0"):
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                service="github",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        raise ExternalAPIError(
            service="github",
            message=f"HTTP {response.status_code}",
            status_code=response.status_code,
            endpoint=SEARCH_REPOSITORIES,
            response_body=response.text,
        )


__all__ = ["GitHubClient"]
