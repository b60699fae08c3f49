"""Shared httpx connection pool.

One HTTPClient is created by the container per external API and closed in
the application lifespan. Service clients (GitHubClient) wrap it rather
than opening their own connections.
"""

from typing import Any

import httpx

from scout.core.logging import get_logger

logger = get_logger(__name__)


class HTTPClient:
    """Pooled async HTTP client.

    Args:
        base_url: Prefix for relative request paths
        headers: Headers sent with every request
        timeout: Per-request timeout in seconds
        max_connections: Pool size
        max_keepalive_connections: Idle connections kept open
        transport: Replacement transport (httpx.MockTransport in tests)

    Example:
        >>> client = HTTPClient(base_url="https://api.github.com")
        >>> response = await client.get("/search/repositories", params={"q": "spark"})
        >>> await client.close()
    """

    def __init__(
        self,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        max_connections: int = 20,
        max_keepalive_connections: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        limits = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_keepalive_connections,
        )
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            limits=limits,
            transport=transport,
            follow_redirects=True,
        )
        self.base_url = base_url
        logger.debug("HTTP pool opened", base_url=base_url or None, timeout=timeout)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET url; kwargs go to httpx unchanged (params, headers, ...)."""
        return await self._client.get(url, **kwargs)

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("HTTP pool closed", base_url=self.base_url or None)


__all__ = ["HTTPClient"]
