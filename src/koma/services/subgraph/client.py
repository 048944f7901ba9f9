"""GraphQL client for the KOMA token subgraph."""

from typing import Any

import httpx
import structlog

from koma.services.exceptions import (
    SubgraphNetworkError,
    SubgraphQueryError,
    SubgraphRateLimitError,
)

logger = structlog.get_logger()


class SubgraphClient:
    """Read-only client for a Graph Protocol subgraph endpoint.

    Example:
        async with SubgraphClient(settings.subgraph_url) as client:
            data = await client.query(MINTS_QUERY, {"first": 100, "skip": 0, "blockNumber": 0})
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize subgraph client.

        Args:
            url: GraphQL endpoint URL (SUBGRAPH_URL env var)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject httpx.MockTransport)
        """
        self.url = url
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a GraphQL query and return its ``data`` object.

        Args:
            query: GraphQL query document
            variables: Query variables

        Returns:
            The ``data`` member of the GraphQL response

        Raises:
            SubgraphNetworkError: Timeout, connection failure, 5xx
            SubgraphRateLimitError: HTTP 429
            SubgraphQueryError: Other 4xx, GraphQL errors, missing data
        """
        try:
            response = await self._client.post(
                self.url, json={"query": query, "variables": variables or {}}
            )
        except httpx.TimeoutException as e:
            raise SubgraphNetworkError(f"Subgraph request timed out: {e}") from e
        except httpx.TransportError as e:
            raise SubgraphNetworkError(f"Subgraph request failed: {e}") from e

        # Error classification
        if response.status_code == 429:
            raise SubgraphRateLimitError("Subgraph rate limit exceeded (429)")
        if response.status_code >= 500:
            raise SubgraphNetworkError(f"Subgraph unavailable ({response.status_code})")
        if response.status_code >= 400:
            raise SubgraphQueryError(
                f"Subgraph rejected request ({response.status_code}): {response.text[:200]}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise SubgraphQueryError(f"Subgraph returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise SubgraphQueryError("Subgraph response is not a JSON object")

        if payload.get("errors"):
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in payload["errors"]
            )
            raise SubgraphQueryError(f"GraphQL errors: {messages}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise SubgraphQueryError("Subgraph response has no data object")

        return data

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "SubgraphClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
