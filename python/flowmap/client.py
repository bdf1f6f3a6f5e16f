"""HTTP flow source talking to the dashboard backend's Cilium endpoints."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from .config import DashboardConfig
from .errors import ResponseError, TransportError
from .export import build_export_url

logger = logging.getLogger(__name__)


class FlowSourceClient:
    """Fetches raw flow and matrix payloads with an ``httpx.AsyncClient``.

    Transport failures raise :class:`TransportError`; non-success statuses and
    undecodable bodies raise :class:`ResponseError`. Payload shape is left to
    the refresh controller.
    """

    def __init__(
        self,
        config: DashboardConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.request_timeout,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "FlowSourceClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    async def fetch_flows(self, namespace: Optional[str] = None) -> Any:
        return await self._get_json(self.config.flows_endpoint, namespace)

    async def fetch_matrix(self, namespace: Optional[str] = None) -> Any:
        return await self._get_json(self.config.matrix_endpoint, namespace)

    def export_url(self, fmt: str, namespace: Optional[str] = None) -> str:
        endpoint = self.config.base_url.rstrip("/") + self.config.export_endpoint
        return build_export_url(endpoint, fmt, namespace)

    # ------------------------------------------------------------------
    async def _get_json(self, endpoint: str, namespace: Optional[str]) -> Any:
        params = {"namespace": namespace} if namespace else None
        started = time.perf_counter()

        try:
            response = await self._client.get(endpoint, params=params)
        except httpx.TimeoutException as exc:
            logger.warning("Timed out fetching %s", endpoint)
            raise TransportError(f"Timed out fetching {endpoint}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch %s: %s", endpoint, exc)
            raise TransportError(f"Failed to fetch {endpoint}: {exc}") from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug("GET %s -> %d in %.1f ms", endpoint, response.status_code, elapsed_ms)

        if not response.is_success:
            raise ResponseError(f"HTTP {response.status_code}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise ResponseError(
                f"Invalid JSON from {endpoint}", status_code=response.status_code
            ) from exc


__all__ = ["FlowSourceClient"]
