# backend/threatdesk/services/enrichment/reputation_cache.py
import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, Iterable, Optional, Tuple

from threatdesk.core.config import Settings
from threatdesk.core.timeutils import utcnow
from threatdesk.schemas.reputation import ReputationData, ReputationRecord, ReputationStats
from threatdesk.services.enrichment.core_service.abuseipdb_service import AbuseIPDBProvider
from threatdesk.services.enrichment.core_service.fallback_service import FallbackReputationProvider
from threatdesk.services.enrichment.core_service.provider import (
    ProviderRateLimited,
    ReputationProvider,
    ReputationProviderError,
)
from threatdesk.services.enrichment.reputation_store_service import ReputationStore

logger = logging.getLogger(__name__)


class ReputationCache:
    """
    TTL cache of IP reputation records in front of a provider.

    `lookup` never fails because of the provider: when it is missing, down
    or rate-limited the fallback generator answers instead, and that answer
    is cached exactly like a real one. Store errors do propagate.
    """

    def __init__(
        self,
        store: ReputationStore,
        provider: Optional[ReputationProvider] = None,
        fallback: Optional[FallbackReputationProvider] = None,
        ttl: timedelta = timedelta(days=7),
        batch_delay: float = 0.25,
        high_risk_threshold: int = 50,
        critical_risk_threshold: int = 75,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._provider = provider
        self._fallback = fallback or FallbackReputationProvider()
        self.ttl = ttl
        self.batch_delay = batch_delay
        self._high = high_risk_threshold
        self._critical = critical_risk_threshold
        self._clock = clock
        self._sleep = sleep
        self._last_network_call: Optional[float] = None

    @property
    def provider_name(self) -> str:
        return self._provider.name if self._provider else self._fallback.name

    def is_fresh(self, record: ReputationRecord, now: datetime) -> bool:
        return now - record.last_checked < self.ttl

    # --------------------------------------------------------
    # Lookup
    # --------------------------------------------------------
    async def lookup(self, ip: str) -> ReputationRecord:
        record, _ = await self._resolve(ip, paced=False)
        return record

    async def batch_lookup(self, ips: Iterable[Optional[str]]) -> Dict[str, ReputationRecord]:
        """
        Resolve each distinct IP in turn. Successive provider calls are
        spaced by `batch_delay` seconds; cache hits and fallback answers
        are not delayed. Pacing starts over with every batch.
        """
        unique = list(dict.fromkeys(ip.strip() for ip in ips if ip and ip.strip()))
        self._last_network_call = None

        results: Dict[str, ReputationRecord] = {}
        network_calls = 0
        for ip in unique:
            results[ip], used_network = await self._resolve(ip, paced=True)
            network_calls += used_network

        logger.info(
            "Resolved %d IPs (%d provider calls)", len(results), network_calls
        )
        return results

    async def _resolve(self, ip: str, paced: bool) -> Tuple[ReputationRecord, bool]:
        now = self._clock()

        cached = self._store.get(ip)
        if cached is not None and self.is_fresh(cached, now):
            logger.debug("IP reputation cache hit for %s", ip)
            return cached, False

        data: Optional[ReputationData] = None
        used_network = False

        if self._provider is not None and not self._fallback.is_private(ip):
            if paced:
                await self._wait_for_slot()
            used_network = True
            logger.info("Fetching IP reputation for %s from %s", ip, self._provider.name)
            try:
                data = await self._provider.fetch(ip)
            except ProviderRateLimited:
                logger.warning(
                    "%s rate limit exceeded, using fallback for %s", self._provider.name, ip
                )
            except ReputationProviderError as e:
                logger.warning("Reputation provider failed for %s (%s), using fallback", ip, e)
            except Exception:
                logger.exception("Unexpected error fetching reputation for %s, using fallback", ip)
            finally:
                self._last_network_call = time.monotonic()

        if data is None:
            data = self._fallback.generate(ip)

        return self._store.upsert(data, checked_at=now), used_network

    async def _wait_for_slot(self) -> None:
        if self._last_network_call is None:
            return
        remaining = self.batch_delay - (time.monotonic() - self._last_network_call)
        if remaining > 0:
            await self._sleep(remaining)

    # --------------------------------------------------------
    # Maintenance / stats
    # --------------------------------------------------------
    def evict_stale(self) -> int:
        cutoff = self._clock() - self.ttl
        removed = self._store.delete_checked_before(cutoff)
        logger.info("Cleared %d stale IP reputation cache entries", removed)
        return removed

    def stats(self) -> ReputationStats:
        return self._store.stats(self._high, self._critical)


def build_reputation_cache(settings: Settings, store: ReputationStore) -> ReputationCache:
    """Install AbuseIPDB when a key is configured, otherwise run on fallback only."""
    provider: Optional[ReputationProvider] = None
    if settings.ABUSEIPDB_API_KEY:
        provider = AbuseIPDBProvider(
            api_key=settings.ABUSEIPDB_API_KEY,
            base_url=settings.ABUSEIPDB_BASE_URL,
            max_age_days=settings.ABUSEIPDB_MAX_AGE_DAYS,
            timeout=settings.ABUSEIPDB_TIMEOUT_SECONDS,
            attempts=settings.ABUSEIPDB_RETRY_ATTEMPTS,
        )
    else:
        logger.warning("AbuseIPDB API key not configured, using fallback reputation data")

    return ReputationCache(
        store=store,
        provider=provider,
        ttl=timedelta(days=settings.REPUTATION_CACHE_TTL_DAYS),
        batch_delay=settings.REPUTATION_BATCH_DELAY_SECONDS,
        high_risk_threshold=settings.HIGH_RISK_SCORE_THRESHOLD,
        critical_risk_threshold=settings.CRITICAL_RISK_SCORE_THRESHOLD,
    )
