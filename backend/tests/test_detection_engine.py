import asyncio

from conftest import NOW, FakeProvider, FakeSleep, make_event
from threatdesk.core.config import Settings
from threatdesk.schemas.alerts import AlertStatus
from threatdesk.services.detection.detection_engine import DetectionEngine
from threatdesk.services.detection.params import DetectionParams
from threatdesk.services.enrichment.reputation_cache import ReputationCache
from threatdesk.services.memory_stores import (
    InMemoryAlertStore,
    InMemoryEventStore,
    InMemoryReputationStore,
)


def seed(events):
    events.append(
        # brute force from one IP against one account
        [make_event(status="failed", username="admin", source_ip="198.51.100.66")
         for _ in range(5)]
        # off-hours login
        + [make_event(status="success", username="alice", timestamp="2025-10-15T02:00:00Z",
                      source_ip="198.51.100.20")]
        # suspicious range
        + [make_event(status="success", source_ip="192.168.1.50", username="bob")]
    )


def build(provider=None, params=None):
    events, alerts = InMemoryEventStore(), InMemoryAlertStore()
    cache = ReputationCache(
        store=InMemoryReputationStore(),
        provider=provider,
        clock=lambda: NOW,
        sleep=FakeSleep(),
    )
    engine = DetectionEngine(events, alerts, cache, params=params, clock=lambda: NOW)
    return engine, events, alerts


def test_run_all_with_provider_down_still_completes():
    engine, events, alerts = build(provider=FakeProvider(fail=True))
    seed(events)

    result = asyncio.run(engine.run_all())

    assert len(result.brute_force) == 2
    assert len(result.off_hours) == 1
    assert len(result.geo_anomaly) == 1
    # fallback scores for .66 / .20 / private range are all below 50
    assert result.high_risk_ip == []
    assert result.total == 4
    assert result.summary() == {
        "brute_force": 2,
        "off_hours": 1,
        "geo_anomaly": 1,
        "high_risk_ip": 0,
    }
    assert alerts.count(status=AlertStatus.OPEN) == 4


def test_run_all_reports_high_risk_alerts():
    engine, events, _ = build(provider=FakeProvider(scores={"198.51.100.66": 90}))
    seed(events)

    result = asyncio.run(engine.run_all())

    assert [a.source_ip for a in result.high_risk_ip] == ["198.51.100.66"]
    assert result.total == 5


def test_run_all_with_reputation_cache_failure_returns_partial_totals():
    events, alerts = InMemoryEventStore(), InMemoryAlertStore()
    seed(events)

    class DownCache:
        async def batch_lookup(self, ips):
            raise TimeoutError("no route to reputation backend")

    result = asyncio.run(
        DetectionEngine(events, alerts, DownCache(), clock=lambda: NOW).run_all()
    )

    assert result.high_risk_ip == []
    assert result.total == 4


def test_rerun_reemits_alerts_by_default():
    engine, events, alerts = build()
    seed(events)

    first = asyncio.run(engine.run_all())
    second = asyncio.run(engine.run_all())

    assert second.total == first.total
    assert alerts.count() == first.total * 2


def test_dedupe_suppresses_repeat_alerts():
    engine, events, alerts = build(params=DetectionParams(dedupe_alerts=True))
    seed(events)

    first = asyncio.run(engine.run_all())
    second = asyncio.run(engine.run_all())

    assert first.total == 4
    assert second.total == 0
    assert alerts.count() == 4


def test_params_from_settings():
    settings = Settings(
        BRUTE_FORCE_THRESHOLD=7,
        BRUTE_FORCE_WINDOW_SECONDS=600,
        SUSPICIOUS_IP_PREFIXES=["172.16."],
        ALERT_DEDUPE_ENABLED=True,
    )
    params = DetectionParams.from_settings(settings)

    assert params.brute_force_threshold == 7
    assert params.brute_force_window_seconds == 600
    assert params.suspicious_prefixes == ("172.16.",)
    assert params.dedupe_alerts is True
    assert params.business_hours_start == 9
    assert params.business_hours_end == 18
