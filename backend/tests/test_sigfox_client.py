import asyncio

import httpx
import pytest

from iotfusion.errors import UpstreamError
from iotfusion.sigfox_client import USER_AGENT, SigfoxClient

URL = "http://upstream.test/data"


def _client(handler, retries=3):
    return SigfoxClient(URL, retries=retries, backoff=0, transport=httpx.MockTransport(handler))


def test_returns_record_array_and_sends_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"device": "A"}, "junk", {"device": "B"}])

    records = asyncio.run(_client(handler).fetch_records())

    assert records == [{"device": "A"}, {"device": "B"}]
    assert seen[0].headers["User-Agent"] == USER_AGENT
    assert seen[0].headers["Accept"] == "application/json"


def test_server_errors_are_retried():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(502)
        return httpx.Response(200, json=[])

    assert asyncio.run(_client(handler).fetch_records()) == []
    assert len(calls) == 3


def test_gives_up_after_configured_attempts():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(_client(handler, retries=2).fetch_records())

    assert len(calls) == 2
    assert excinfo.value.status_code == 503
    assert "Unable to reach external API" in excinfo.value.message


def test_not_found_maps_to_503_without_retry():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404)

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(_client(handler).fetch_records())

    assert len(calls) == 1
    assert excinfo.value.status_code == 503
    assert "404" in excinfo.value.message


def test_timeout_maps_to_504():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(_client(handler, retries=1).fetch_records())

    assert excinfo.value.status_code == 504


@pytest.mark.parametrize("response", [httpx.Response(200, json={"data": []}), httpx.Response(200, text="<html>")])
def test_non_array_body_is_bad_gateway(response):
    calls = []

    def handler(request):
        calls.append(request)
        return response

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(_client(handler).fetch_records())

    assert excinfo.value.status_code == 502
    assert len(calls) == 1
