import asyncio

import httpx
import pytest

from threatdesk.services.enrichment.core_service.abuseipdb_service import AbuseIPDBProvider
from threatdesk.services.enrichment.core_service.provider import (
    ProviderNotConfigured,
    ProviderRateLimited,
    ProviderUnavailable,
)


def make_provider(handler, api_key="test-key", attempts=1):
    return AbuseIPDBProvider(
        api_key=api_key,
        attempts=attempts,
        retry_base_delay=0.0,
        transport=httpx.MockTransport(handler),
    )


def test_fetch_maps_response_fields():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers["Key"]
        seen["ip"] = request.url.params["ipAddress"]
        seen["path"] = request.url.path
        return httpx.Response(
            200,
            json={
                "data": {
                    "ipAddress": "185.220.101.1",
                    "abuseConfidenceScore": 100,
                    "countryCode": "DE",
                    "usageType": "Data Center/Web Hosting/Transit",
                    "isWhitelisted": False,
                    "totalReports": 1234,
                }
            },
        )

    rep = asyncio.run(make_provider(handler).fetch("185.220.101.1"))

    assert seen == {"key": "test-key", "ip": "185.220.101.1", "path": "/api/v2/check"}
    assert rep.abuse_confidence_score == 100
    assert rep.country_code == "DE"
    assert rep.total_reports == 1234
    assert rep.is_whitelisted is False
    assert rep.raw_payload["ipAddress"] == "185.220.101.1"


def test_missing_key_raises_not_configured():
    provider = make_provider(lambda r: httpx.Response(200), api_key=None)
    with pytest.raises(ProviderNotConfigured):
        asyncio.run(provider.fetch("8.8.8.8"))


def test_rate_limit_raises():
    provider = make_provider(lambda r: httpx.Response(429))
    with pytest.raises(ProviderRateLimited):
        asyncio.run(provider.fetch("8.8.8.8"))


@pytest.mark.parametrize("status", [401, 500, 503])
def test_error_status_raises_unavailable(status):
    provider = make_provider(lambda r: httpx.Response(status))
    with pytest.raises(ProviderUnavailable):
        asyncio.run(provider.fetch("8.8.8.8"))


def test_empty_body_raises_unavailable():
    provider = make_provider(lambda r: httpx.Response(200, json={"errors": []}))
    with pytest.raises(ProviderUnavailable):
        asyncio.run(provider.fetch("8.8.8.8"))


def test_transport_error_is_retried_then_raised():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    provider = make_provider(handler, attempts=2)
    with pytest.raises(ProviderUnavailable):
        asyncio.run(provider.fetch("8.8.8.8"))
    assert len(calls) == 2
