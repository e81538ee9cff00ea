# backend/threatdesk/api/v1/routes_health.py

from fastapi import APIRouter, Depends

from threatdesk.api.deps import get_reputation_cache
from threatdesk.core.config import settings
from threatdesk.core.timeutils import utcnow_iso
from threatdesk.services.enrichment.reputation_cache import ReputationCache

router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check(cache: ReputationCache = Depends(get_reputation_cache)) -> dict:
    """
    Liveness check. Also reports which reputation provider is active, so a
    missing AbuseIPDB key shows up as `fallback` here.
    """
    return {
        "status": "ok",
        "service": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "reputation_provider": cache.provider_name,
        "timestamp": utcnow_iso(),
    }
