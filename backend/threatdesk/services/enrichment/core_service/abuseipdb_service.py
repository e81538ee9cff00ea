# backend/threatdesk/services/enrichment/core_service/abuseipdb_service.py
import logging
from typing import Any, Optional

import httpx

from threatdesk.schemas.reputation import ReputationData
from threatdesk.services.enrichment.core_service.provider import (
    ProviderNotConfigured,
    ProviderRateLimited,
    ProviderUnavailable,
    ReputationProvider,
)
from threatdesk.services.enrichment.core_service.retry import async_retry

logger = logging.getLogger(__name__)


BASE_URL = "https://api.abuseipdb.com/api/v2"


class AbuseIPDBProvider(ReputationProvider):
    """
    Client for the AbuseIPDB /check endpoint.

    Every failure mode (no key, 429, non-2xx, transport error, empty body)
    is raised as a ReputationProviderError subclass.
    """

    name = "abuseipdb"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = BASE_URL,
        max_age_days: int = 90,
        timeout: float = 10.0,
        attempts: int = 2,
        retry_base_delay: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/check"
        self._max_age_days = max_age_days
        self._timeout = timeout
        self._attempts = attempts
        self._retry_base_delay = retry_base_delay
        self._transport = transport

    async def _get(self, ip: str) -> httpx.Response:
        headers = {"Key": self._api_key, "Accept": "application/json"}
        params = {
            "ipAddress": ip,
            "maxAgeInDays": self._max_age_days,
            "verbose": True,
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await client.get(self._url, headers=headers, params=params)

    async def fetch(self, ip: str) -> ReputationData:
        if not self._api_key:
            raise ProviderNotConfigured("AbuseIPDB API key not configured")

        try:
            resp = await async_retry(
                lambda: self._get(ip),
                attempts=self._attempts,
                base_delay=self._retry_base_delay,
                label=f"AbuseIPDB check for {ip}",
            )
        except httpx.HTTPError as e:
            raise ProviderUnavailable(f"{type(e).__name__}: {e}") from e

        if resp.status_code == 429:
            raise ProviderRateLimited("AbuseIPDB rate limit exceeded")
        if resp.is_error:
            raise ProviderUnavailable(
                f"AbuseIPDB API error: {resp.status_code} {resp.reason_phrase}"
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise ProviderUnavailable("AbuseIPDB returned invalid JSON") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            raise ProviderUnavailable("AbuseIPDB response carried no data")

        return self._to_reputation(ip, data)

    @staticmethod
    def _to_reputation(ip: str, data: dict[str, Any]) -> ReputationData:
        score = int(data.get("abuseConfidenceScore") or 0)
        return ReputationData(
            ip_address=ip,
            abuse_confidence_score=max(0, min(100, score)),
            country_code=data.get("countryCode"),
            usage_type=data.get("usageType"),
            is_whitelisted=bool(data.get("isWhitelisted")),
            total_reports=int(data.get("totalReports") or 0),
            raw_payload=data,
        )
