# backend/threatdesk/services/memory_stores.py
"""
In-memory implementations of the store interfaces.

Same contracts as the SQL stores; used by tests and local experiments
where a database is not wanted.
"""
import itertools
import threading
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

from threatdesk.core.timeutils import utcnow
from threatdesk.schemas.alerts import Alert, AlertCreate, AlertSeverity, AlertStatus
from threatdesk.schemas.events import EventIngestRequest, StoredEvent
from threatdesk.schemas.reputation import ReputationData, ReputationRecord, ReputationStats
from threatdesk.services.alerting.alert_store_service import AlertStore
from threatdesk.services.enrichment.reputation_store_service import ReputationStore
from threatdesk.services.events.event_filter import EventFilter
from threatdesk.services.events.event_store_service import (
    EventStore,
    IPActivity,
    build_event_record,
)


def _newest_first_key(e: StoredEvent):
    return (e.occurred_at is not None, e.occurred_at or datetime.min, e.id)


class InMemoryEventStore(EventStore):
    def __init__(self) -> None:
        self._events: List[StoredEvent] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def append(self, entries: Iterable[EventIngestRequest]) -> int:
        created_at = utcnow()
        # build everything first so a bad entry leaves the store untouched
        pending = [build_event_record(e, created_at) for e in entries]
        with self._lock:
            for values in pending:
                self._events.append(StoredEvent(id=next(self._ids), **values))
        return len(pending)

    def query(self, flt: EventFilter, newest_first: bool = False) -> Iterator[StoredEvent]:
        events = list(self._events)
        if newest_first:
            events.sort(key=_newest_first_key, reverse=True)
        return (e for e in events if flt.matches(e))

    def list_events(self, limit: int = 100, offset: int = 0) -> List[StoredEvent]:
        events = sorted(self._events, key=_newest_first_key, reverse=True)
        return events[offset:offset + limit]

    def count(self) -> int:
        return len(self._events)

    def source_ip_activity(self, since: datetime) -> Dict[str, IPActivity]:
        flt = EventFilter(since=since, require_source_ip=True)
        grouped: Dict[str, List[datetime]] = defaultdict(list)
        for e in self._events:
            if flt.matches(e):
                grouped[e.source_ip].append(e.occurred_at)
        return {
            ip: IPActivity(count=len(times), first_seen=min(times), last_seen=max(times))
            for ip, times in grouped.items()
        }


class InMemoryAlertStore(AlertStore):
    def __init__(self) -> None:
        self._alerts: Dict[int, Alert] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def insert(self, alert: AlertCreate) -> Alert:
        with self._lock:
            stored = Alert(
                id=next(self._ids),
                status=AlertStatus.OPEN,
                created_at=utcnow(),
                **alert.model_dump(),
            )
            self._alerts[stored.id] = stored
        return stored

    def exists(self, alert: AlertCreate) -> bool:
        key = alert.dedupe_key()
        return any(
            (a.alert_type.value, a.affected_entity, a.source_ip, a.first_seen) == key
            for a in self._alerts.values()
        )

    def get(self, alert_id: int) -> Optional[Alert]:
        return self._alerts.get(alert_id)

    def list_alerts(
        self,
        status: Optional[AlertStatus] = AlertStatus.OPEN,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Alert]:
        alerts = [a for a in self._alerts.values() if status is None or a.status == status]
        alerts.sort(key=lambda a: (a.created_at, a.id), reverse=True)
        return alerts[offset:offset + limit]

    def set_status(self, alert_id: int, status: AlertStatus) -> Optional[Alert]:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                return None
            alert = alert.model_copy(update={"status": status})
            self._alerts[alert_id] = alert
        return alert

    def count(
        self,
        status: Optional[AlertStatus] = None,
        severity: Optional[AlertSeverity] = None,
    ) -> int:
        return sum(
            1
            for a in self._alerts.values()
            if (status is None or a.status == status)
            and (severity is None or a.severity == severity)
        )


class InMemoryReputationStore(ReputationStore):
    def __init__(self) -> None:
        self._records: Dict[str, ReputationRecord] = {}

    def get(self, ip: str) -> Optional[ReputationRecord]:
        return self._records.get(ip)

    def upsert(self, data: ReputationData, checked_at: datetime) -> ReputationRecord:
        record = ReputationRecord(last_checked=checked_at, **data.model_dump())
        self._records[data.ip_address] = record
        return record

    def delete_checked_before(self, cutoff: datetime) -> int:
        stale = [ip for ip, r in self._records.items() if r.last_checked <= cutoff]
        for ip in stale:
            del self._records[ip]
        return len(stale)

    def stats(self, high_threshold: int, critical_threshold: int) -> ReputationStats:
        records = list(self._records.values())
        return ReputationStats(
            total_cached=len(records),
            high_risk=sum(1 for r in records if r.abuse_confidence_score >= high_threshold),
            critical_risk=sum(1 for r in records if r.abuse_confidence_score >= critical_threshold),
            whitelisted=sum(1 for r in records if r.is_whitelisted),
        )
