"""Cloudflare API client: GraphQL analytics transport and REST lookups."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Self

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from sitepulse.core.exceptions import (
    ApiReportedError,
    DeploymentNotFoundError,
    ParseError,
    ResolutionError,
    SitePulseError,
    TransportError,
)
from sitepulse.core.models import DeploymentInfo

if TYPE_CHECKING:
    from sitepulse.core.config import SitePulseConfig

logger = logging.getLogger(__name__)


class CloudflareClient:
    """
    Client for the Cloudflare v4 API.

    Handles:
    - Connection pooling (one shared httpx.AsyncClient)
    - GraphQL analytics queries (single attempt, typed failures)
    - REST lookups for zones and Pages deployments (retried on transport errors)

    Example:
        >>> client = CloudflareClient(config)
        >>> data = await client.execute_graphql("{ viewer { zones { ... } } }")
        >>> await client.close()
    """

    def __init__(
        self,
        config: SitePulseConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize Cloudflare client.

        Args:
            config: SitePulseConfig instance
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.api_base_url,
                timeout=self.config.timeout,
                headers=self._get_headers(),
                transport=self._transport,
            )
        return self._client

    def _get_headers(self) -> dict[str, str]:
        """Get HTTP headers for requests."""
        headers = {
            "Content-Type": "application/json",
        }
        if self.config.api_token:
            headers["Authorization"] = f"Bearer {self.config.api_token}"
        return headers

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.debug("Closed Cloudflare API client")

    async def execute_graphql(self, query: str) -> dict[str, Any]:
        """
        Execute one GraphQL analytics query.

        Exactly one outbound request is made; nothing is retried or cached.

        Args:
            query: GraphQL document

        Returns:
            The ``data`` object of the response

        Raises:
            TransportError: Network failure or non-2xx status
            ParseError: Body is not JSON or has no ``data`` object
            ApiReportedError: Response carries a non-empty ``errors`` list
        """
        logger.debug("Executing GraphQL query (%d chars)", len(query))

        try:
            response = await self.client.post("/graphql", json={"query": query})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_msg = (
                f"Failed to fetch analytics: HTTP {e.response.status_code} - "
                f"{e.response.text[:200]}"
            )
            logger.exception(error_msg)
            raise TransportError(error_msg, endpoint="/graphql") from e
        except httpx.HTTPError as e:
            error_msg = f"Failed to fetch analytics: {e}"
            logger.exception(error_msg)
            raise TransportError(error_msg, endpoint="/graphql") from e

        payload = self._decode(response, "analytics")

        errors = payload.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            message = first.get("message") if isinstance(first, dict) else None
            raise ApiReportedError(
                f"Analytics query failed: {message or 'Unknown GraphQL error'}",
                errors=errors if isinstance(errors, list) else [errors],
            )

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ParseError("Failed to parse analytics response: missing 'data' object")
        return data

    async def _get_json(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET a REST endpoint, retrying transient transport failures.

        Raises:
            TransportError: Network failure after retries, or non-2xx status
            ParseError: Body is not JSON
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.max_retries + 1),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.get(endpoint, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP GET {endpoint} failed: {e.response.status_code}"
            try:
                error_msg += f" - {e.response.json().get('errors')}"
            except (ValueError, AttributeError):
                error_msg += f" - {e.response.text[:200]}"
            logger.exception(error_msg)
            raise TransportError(error_msg, endpoint=endpoint) from e
        except httpx.HTTPError as e:
            error_msg = f"HTTP GET {endpoint} failed: {e}"
            logger.exception(error_msg)
            raise TransportError(error_msg, endpoint=endpoint) from e

        return self._decode(response, endpoint)

    @staticmethod
    def _decode(response: httpx.Response, what: str) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise ParseError(f"Failed to parse {what} response: {e}") from e
        if not isinstance(payload, dict):
            raise ParseError(f"Failed to parse {what} response: expected a JSON object")
        return payload

    async def fetch_zone_id(self, domain: str) -> str:
        """
        Look up the zone ID for a domain via the Zones API.

        Args:
            domain: Site domain (e.g., "example.com")

        Returns:
            ID of the first matching zone

        Raises:
            ResolutionError: If no zone matches the domain
        """
        payload = await self._get_json("/zones", params={"name": domain})

        result = payload.get("result")
        if isinstance(result, list) and result:
            zone_id = result[0].get("id") if isinstance(result[0], dict) else None
            if isinstance(zone_id, str) and zone_id:
                logger.info("Resolved %s to zone %s", domain, zone_id)
                return zone_id

        raise ResolutionError(f"No zone found for domain '{domain}'", domain=domain)

    async def fetch_last_deployment(self, account_id: str, project_name: str) -> DeploymentInfo:
        """
        Fetch the last successful production deployment from Cloudflare Pages.

        Raises:
            ParseError: If the deployments list is missing
            DeploymentNotFoundError: If none of the recent deployments succeeded
        """
        endpoint = f"/accounts/{account_id}/pages/projects/{project_name}/deployments"
        payload = await self._get_json(endpoint, params={"env": "production", "per_page": 5})

        deployments = payload.get("result")
        if not isinstance(deployments, list):
            raise ParseError("Unexpected deployments response format")

        for dep in deployments:
            if not isinstance(dep, dict):
                continue
            stage = dep.get("latest_stage") or {}
            if stage.get("name") != "deploy" or stage.get("status") != "success":
                continue

            trigger = (dep.get("deployment_trigger") or {}).get("metadata") or {}
            return DeploymentInfo(
                deployed_at=stage.get("ended_on") or dep.get("created_on") or "",
                commit_hash=trigger.get("commit_hash"),
                commit_message=trigger.get("commit_message"),
                status="success",
                url=dep.get("url"),
            )

        raise DeploymentNotFoundError("No successful production deployment found")

    async def test_connection(self, domain: str) -> dict[str, Any]:
        """
        Check that the token can see the zone for ``domain``.

        Returns:
            {"ok": True, "zone_id": ...} or {"ok": False, "error": ...}
        """
        try:
            zone_id = await self.fetch_zone_id(domain)
        except SitePulseError as e:
            logger.warning(f"Connection test failed for {domain}: {e}")
            return {"ok": False, "error": str(e)}
        return {"ok": True, "zone_id": zone_id}

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        """String representation of client."""
        status = "open" if self._client is not None else "idle"
        return f"CloudflareClient({self.config.api_base_url}, {status})"
