"""HTTPX MockTransport-based coverage for the transport adapter."""

import asyncio

import httpx
import pytest
from tenacity import stop_after_attempt, wait_none

from catalyst_crawler.application.domain import OutcomeStatus, PlainRequest
from catalyst_crawler.application.exceptions import ConfigurationError, TransportFailure
from catalyst_crawler.application.fetcher import Fetcher
from catalyst_crawler.application.throttle import ThrottleGate
from catalyst_crawler.infrastructure.catalog import CatalystCatalog
from catalyst_crawler.infrastructure import transport as transport_module
from catalyst_crawler.infrastructure.transport import HttpTransport

URL = "https://cdn.test/v24/abc_windows"


def redirect_to_self(request):
    return httpx.Response(302, headers={"Location": str(request.url)})


def run_get(handler, url=URL, retry_attempts=1, follow_redirects=False):
    async def scenario():
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), follow_redirects=follow_redirects
        ) as client:
            transport = HttpTransport(client, timeout=5, retry_attempts=retry_attempts)
            return await transport.get(url)

    return asyncio.run(scenario())


def test_success_response_is_returned():
    response = run_get(lambda request: httpx.Response(200, content=b"bundle"))

    assert response.status_code == 200
    assert response.content == b"bundle"
    assert response.is_success


def test_error_status_is_returned_not_raised():
    response = run_get(lambda request: httpx.Response(404))

    assert response.status_code == 404
    assert response.reason == "Not Found"
    assert not response.is_success


def test_connection_error_becomes_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportFailure, match="ConnectError"):
        run_get(handler)


def test_redirect_loop_is_transport_failure():
    with pytest.raises(TransportFailure, match="TooManyRedirects"):
        run_get(redirect_to_self, follow_redirects=True)


def test_redirect_loop_is_classified_by_fetcher(scope, counters, artifact_store):
    async def scenario():
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(redirect_to_self), follow_redirects=True
        ) as client:
            fetcher = Fetcher(
                transport=HttpTransport(client, timeout=5),
                gate=ThrottleGate(15),
                scope=scope,
                counters=counters,
                artifact_store=artifact_store,
            )
            outcome = await fetcher.fetch(PlainRequest(URL))
            return outcome, fetcher.gate.in_use

    outcome, in_use = asyncio.run(scenario())

    assert outcome.status is OutcomeStatus.CONNECTION_ERROR
    assert "TooManyRedirects" in outcome.message
    assert in_use == 0
    assert counters.active_requests == 0


def test_connection_errors_are_retried(monkeypatch):
    # Keep the attempt limit, drop the exponential backoff.
    monkeypatch.setattr(
        transport_module,
        "with_attempts",
        lambda decorated, attempts: decorated.retry_with(
            stop=stop_after_attempt(attempts), wait=wait_none()
        ),
    )
    calls = []

    def handler(request):
        calls.append(request.url)
        if len(calls) < 3:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, content=b"ok")

    response = run_get(handler, retry_attempts=3)

    assert response.status_code == 200
    assert len(calls) == 3


def test_single_attempt_does_not_retry():
    calls = []

    def handler(request):
        calls.append(request.url)
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(TransportFailure):
        run_get(handler, retry_attempts=1)
    assert len(calls) == 1


def test_retry_attempts_must_be_positive():
    with pytest.raises(ConfigurationError):
        HttpTransport(client=None, timeout=5, retry_attempts=0)


def test_catalog_url_templates():
    catalog = CatalystCatalog(fetcher=None, catalyst_url="https://peer.test/", cdn_url="https://cdn.test/")

    assert catalog._contents_url("bafy") == "https://peer.test/content/contents/bafy"
    assert catalog._manifest_url("bafy") == "https://cdn.test/manifest/bafy_windows.json"
    assert catalog.asset_url("v24", "abc_windows") == "https://cdn.test/v24/abc_windows"
