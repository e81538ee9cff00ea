# backend/threatdesk/api/v1/routes_reputation.py

from ipaddress import ip_address

from fastapi import APIRouter, Depends, HTTPException, status

from threatdesk.api.deps import get_reputation_cache
from threatdesk.schemas.reputation import EvictionResult, ReputationStats
from threatdesk.services.enrichment.reputation_cache import ReputationCache
from threatdesk.services.risk_scoring.risk_utils import risk_level

router = APIRouter(
    prefix="/reputation",
    tags=["enrichment"],
)


@router.get("/stats", response_model=ReputationStats, summary="Reputation cache statistics")
def reputation_stats(cache: ReputationCache = Depends(get_reputation_cache)) -> ReputationStats:
    return cache.stats()


@router.post("/evict", response_model=EvictionResult, summary="Delete stale cache entries")
def evict_stale(cache: ReputationCache = Depends(get_reputation_cache)) -> EvictionResult:
    return EvictionResult(removed=cache.evict_stale())


@router.get("/{ip}", summary="Reputation for a single IP (cached)")
async def lookup_ip(ip: str, cache: ReputationCache = Depends(get_reputation_cache)) -> dict:
    try:
        ip = str(ip_address(ip.strip()))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{ip!r} is not a valid IP address",
        )

    record = await cache.lookup(ip)
    return {
        **record.model_dump(),
        "risk_level": risk_level(record.abuse_confidence_score),
    }
