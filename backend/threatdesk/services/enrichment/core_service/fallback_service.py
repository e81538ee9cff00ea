# backend/threatdesk/services/enrichment/core_service/fallback_service.py
from ipaddress import ip_address, ip_network

from threatdesk.schemas.reputation import ReputationData
from threatdesk.services.enrichment.core_service.provider import ReputationProvider


PRIVATE_NETWORKS = (
    ip_network("10.0.0.0/8"),
    ip_network("172.16.0.0/12"),
    ip_network("192.168.0.0/16"),
)

PRIVATE_USAGE_TYPE = "Data Center/Web Hosting/Transit"
PUBLIC_USAGE_TYPE = "Residential"
PUBLIC_COUNTRY_CODE = "US"


def is_private_address(ip: str) -> bool:
    try:
        addr = ip_address(ip.strip())
    except ValueError:
        return False
    return addr.version == 4 and any(addr in net for net in PRIVATE_NETWORKS)


def _last_octet(ip: str) -> int:
    parts = ip.strip().split(".")
    if len(parts) != 4:
        return 0
    try:
        return max(0, int(parts[3]))
    except ValueError:
        return 0


class FallbackReputationProvider(ReputationProvider):
    """
    Deterministic local assessment used when AbuseIPDB is unavailable,
    rate-limited or not configured. Never fails.

    Private ranges are whitelisted with score 0. Public addresses are
    banded by their last octet:
      > 200   -> score 75-99, 50-99 reports
      101-200 -> score 25-49, 10-29 reports
      <= 100  -> score 0-14,  0-4 reports
    """

    name = "fallback"

    def is_private(self, ip: str) -> bool:
        return is_private_address(ip)

    def generate(self, ip: str) -> ReputationData:
        private = self.is_private(ip)
        score = 0
        reports = 0

        if not private:
            octet = _last_octet(ip)
            if octet > 200:
                score = 75 + (octet % 25)
                reports = 50 + (octet % 50)
            elif octet > 100:
                score = 25 + (octet % 25)
                reports = 10 + (octet % 20)
            else:
                score = octet % 15
                reports = octet % 5

        country = None if private else PUBLIC_COUNTRY_CODE
        usage = PRIVATE_USAGE_TYPE if private else PUBLIC_USAGE_TYPE

        return ReputationData(
            ip_address=ip,
            abuse_confidence_score=score,
            country_code=country,
            usage_type=usage,
            is_whitelisted=private,
            total_reports=reports,
            raw_payload={
                "ipAddress": ip,
                "abuseConfidenceScore": score,
                "totalReports": reports,
                "countryCode": country,
                "usageType": usage,
                "isWhitelisted": private,
                "stub": True,
                "note": "Generated locally; configure ABUSEIPDB_API_KEY for real data",
            },
        )

    async def fetch(self, ip: str) -> ReputationData:
        return self.generate(ip)
