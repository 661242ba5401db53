# tests/orchestrator/test_endpoint_probe.py

import httpx
import pytest

from kube_topology.core.config import ProbeConfig
from kube_topology.orchestrator.endpoint_probe import EndpointProbe


def _probe(handler, **overrides):
    settings = {"max_retries": 3, "retry_min_wait": 0, "retry_max_wait": 0}
    settings.update(overrides)
    probe = EndpointProbe(ProbeConfig(**settings))
    probe._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return probe


def test_url_for():
    probe = EndpointProbe(ProbeConfig(scheme="https", path="/healthz"))
    assert probe.url_for("lb.example.com") == "https://lb.example.com/healthz"


@pytest.mark.asyncio
async def test_healthy_endpoint():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, text="ok")

    probe = _probe(handler)
    result = await probe.probe("198.51.100.20")
    await probe.close()

    assert result.healthy
    assert result.status_code == 200
    assert seen == ["http://198.51.100.20/"]


@pytest.mark.asyncio
async def test_client_errors_still_count_as_reachable():
    probe = _probe(lambda request: httpx.Response(404))
    result = await probe.probe("198.51.100.20")
    assert result.healthy
    assert result.status_code == 404


@pytest.mark.asyncio
async def test_server_error_is_unhealthy():
    probe = _probe(lambda request: httpx.Response(503))
    result = await probe.probe("198.51.100.20")
    assert not result.healthy
    assert result.status_code == 503


@pytest.mark.asyncio
async def test_connection_errors_are_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200)

    result = await _probe(handler).probe("198.51.100.20")

    assert result.healthy
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    result = await _probe(handler, max_retries=2).probe("198.51.100.20")

    assert not result.healthy
    assert result.status_code is None
    assert "connection refused" in result.error
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_close_resets_client():
    probe = _probe(lambda request: httpx.Response(200))
    await probe.close()
    assert probe._client is None
