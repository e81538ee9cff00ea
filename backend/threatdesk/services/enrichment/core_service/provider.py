# backend/threatdesk/services/enrichment/core_service/provider.py
import abc

from threatdesk.schemas.reputation import ReputationData


class ReputationProviderError(Exception):
    """Provider could not produce an assessment. Always absorbed by the cache."""


class ProviderNotConfigured(ReputationProviderError):
    pass


class ProviderRateLimited(ReputationProviderError):
    pass


class ProviderUnavailable(ReputationProviderError):
    pass


class ReputationProvider(abc.ABC):
    """A source of IP reputation assessments."""

    name: str = "provider"

    @abc.abstractmethod
    async def fetch(self, ip: str) -> ReputationData:
        """Assess `ip` or raise ReputationProviderError."""
