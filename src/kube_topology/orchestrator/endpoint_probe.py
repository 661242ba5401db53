"""HTTP reachability probe for the exported service address.

A freshly assigned load balancer address often refuses connections for a
while; the probe retries connection errors and timeouts with exponential
backoff before giving up.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import BaseModel, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from kube_topology.core.config import ProbeConfig

logger = logging.getLogger(__name__)


class ProbeResult(BaseModel):
    """Outcome of probing a deployed endpoint."""

    url: str
    healthy: bool = False
    status_code: Optional[int] = Field(default=None)
    error: Optional[str] = Field(default=None)


class EndpointProbe:
    """Checks that the deployed workload answers over HTTP."""

    def __init__(self, config: Optional[ProbeConfig] = None):
        self.config = config or ProbeConfig()
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
            )
        return self._client

    def url_for(self, address: str) -> str:
        return f"{self.config.scheme}://{address}{self.config.path}"

    async def probe(self, address: str) -> ProbeResult:
        """Probe ``address`` (hostname or IP) and report whether it answered."""
        url = self.url_for(address)

        @retry(
            retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
            stop=stop_after_attempt(self.config.max_retries),
            wait=wait_exponential(
                min=self.config.retry_min_wait,
                max=self.config.retry_max_wait,
            ),
            reraise=True,
        )
        async def _do_probe() -> httpx.Response:
            client = await self._get_client()
            logger.debug(f"Probing {url}")
            return await client.get(url)

        try:
            response = await _do_probe()
        except httpx.HTTPError as e:
            logger.warning(f"Endpoint probe failed for {url}: {e}")
            return ProbeResult(url=url, error=str(e))

        healthy = response.status_code < 500
        logger.info(f"Endpoint {url} answered {response.status_code}")
        return ProbeResult(url=url, healthy=healthy, status_code=response.status_code)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
