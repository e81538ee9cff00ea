# backend/threatdesk/api/deps.py
"""
Store / service providers for the routes.

Everything is built from explicit constructors here so tests can swap any
piece through `app.dependency_overrides`.
"""
from functools import lru_cache

from fastapi import Depends

from threatdesk.core.config import settings
from threatdesk.db.session import SessionLocal
from threatdesk.services.alerting.alert_store_service import AlertStore, SqlAlertStore
from threatdesk.services.detection.detection_engine import DetectionEngine
from threatdesk.services.detection.params import DetectionParams
from threatdesk.services.enrichment.reputation_cache import ReputationCache, build_reputation_cache
from threatdesk.services.enrichment.reputation_store_service import SqlReputationStore
from threatdesk.services.events.event_store_service import EventStore, SqlEventStore


def get_event_store() -> EventStore:
    return SqlEventStore(SessionLocal)


def get_alert_store() -> AlertStore:
    return SqlAlertStore(SessionLocal)


@lru_cache
def get_reputation_cache() -> ReputationCache:
    # built once per process; provider pacing applies within a single batch_lookup
    return build_reputation_cache(settings, SqlReputationStore(SessionLocal))


def get_detection_engine(
    events: EventStore = Depends(get_event_store),
    alerts: AlertStore = Depends(get_alert_store),
    reputation: ReputationCache = Depends(get_reputation_cache),
) -> DetectionEngine:
    return DetectionEngine(
        events=events,
        alerts=alerts,
        reputation=reputation,
        params=DetectionParams.from_settings(settings),
    )
