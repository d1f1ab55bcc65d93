"""Async HTTP transport for the catalog backend's bulk mutation endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import EngineConfig
from .errors import TransportFailure

logger = logging.getLogger(__name__)


class MutationTransport:
    """Thin httpx wrapper that turns every transport problem into TransportFailure.

    The transport either owns its AsyncClient (built from the config on
    start) or borrows one passed in by the caller. A borrowed client is
    never closed here.
    """

    def __init__(
        self,
        config: EngineConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = False
        self._started = False

    @property
    def is_started(self) -> bool:
        """Check if transport is started."""
        return self._started

    async def start(self) -> None:
        """Create the HTTP client if none was supplied."""
        if self._started:
            return

        if self._client is None and self._config.base_url:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                headers=self._get_headers(),
                timeout=self._config.http_timeout,
            )
            self._owns_client = True

        self._started = True
        logger.debug("Transport started")

    async def post_json(self, path: str, payload: dict[str, Any]) -> Any:
        """POST a JSON payload and return the decoded JSON body.

        Args:
            path: Endpoint path relative to the base URL.
            payload: JSON-serializable request body.

        Returns:
            Decoded response body.

        Raises:
            TransportFailure: No endpoint configured, network error, HTTP
                error status or a body that is not JSON.
        """
        if not self._started:
            await self.start()

        if self._client is None:
            raise TransportFailure("No catalog backend configured (base_url is not set)")

        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
        except httpx.RequestError as e:
            logger.warning("Network error calling %s: %s", path, e)
            raise TransportFailure(f"Network error calling {path}: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.warning("HTTP %d error calling %s: %s", e.response.status_code, path, e)
            raise TransportFailure(
                f"HTTP {e.response.status_code} error calling {path}"
            ) from e

        try:
            return response.json()
        except ValueError as e:
            logger.warning("Undecodable response from %s: %s", path, e)
            raise TransportFailure(f"Response from {path} is not valid JSON") from e

    async def shutdown(self) -> None:
        """Close the HTTP client if this transport created it."""
        if not self._started:
            return

        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            self._owns_client = False

        self._started = False
        logger.debug("Transport shutdown complete")

    def _get_headers(self) -> dict[str, str]:
        """Build HTTP headers including auth if configured."""
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        return headers
