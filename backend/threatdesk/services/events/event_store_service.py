# backend/threatdesk/services/events/event_store_service.py

import abc
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Iterator, List

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from threatdesk.core.timeutils import parse_event_timestamp, to_naive_utc, utcnow
from threatdesk.models.event_record import EventRecord
from threatdesk.schemas.events import EventIngestRequest, StoredEvent
from threatdesk.services.events.event_filter import EventFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IPActivity:
    count: int
    first_seen: datetime
    last_seen: datetime


class EventStore(abc.ABC):
    """
    Append-only store of normalized events.

    Events are never updated or deleted; they are the audit trail.
    """

    @abc.abstractmethod
    def append(self, entries: Iterable[EventIngestRequest]) -> int:
        """Store all entries in one transaction and return how many were stored."""

    @abc.abstractmethod
    def query(self, flt: EventFilter, newest_first: bool = False) -> Iterator[StoredEvent]:
        """Lazily yield events matching `flt`."""

    @abc.abstractmethod
    def list_events(self, limit: int = 100, offset: int = 0) -> List[StoredEvent]:
        ...

    @abc.abstractmethod
    def count(self) -> int:
        ...

    @abc.abstractmethod
    def source_ip_activity(self, since: datetime) -> Dict[str, IPActivity]:
        """Distinct source IPs seen after `since`, with count and time span."""


def build_event_record(payload: EventIngestRequest, created_at: datetime) -> dict:
    """Column values for a new event; shared by both store implementations."""
    return {
        "timestamp": payload.timestamp,
        "occurred_at": to_naive_utc(parse_event_timestamp(payload.timestamp)),
        "event_type": payload.event_type,
        "username": payload.username,
        "source_ip": payload.source_ip,
        "destination_ip": payload.destination_ip,
        "status": payload.status,
        "message": payload.message,
        "raw_payload": payload.raw_payload,
        "created_at": created_at,
    }


class SqlEventStore(EventStore):
    """DB-backed event store (Postgres / SQLite via SQLAlchemy)."""

    QUERY_BATCH_SIZE = 500

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _get_db(self) -> Session:
        return self._session_factory()

    # --------------------------------------------------------
    # Create / store
    # --------------------------------------------------------
    def append(self, entries: Iterable[EventIngestRequest]) -> int:
        entries = list(entries)
        if not entries:
            return 0

        created_at = utcnow()
        with self._get_db() as db, db.begin():
            db.add_all(
                [EventRecord(**build_event_record(e, created_at)) for e in entries]
            )

        logger.info("Stored %d events", len(entries))
        return len(entries)

    # --------------------------------------------------------
    # Read
    # --------------------------------------------------------
    @staticmethod
    def _apply_filter(stmt, flt: EventFilter):
        if flt.since is not None:
            stmt = stmt.where(EventRecord.occurred_at > flt.since)
        if flt.status_contains:
            status = func.lower(EventRecord.status)
            stmt = stmt.where(
                or_(*[status.contains(tok.lower(), autoescape=True) for tok in flt.status_contains])
            )
        if flt.source_ip_prefix is not None:
            stmt = stmt.where(
                EventRecord.source_ip.startswith(flt.source_ip_prefix, autoescape=True)
            )
        if flt.require_source_ip:
            stmt = stmt.where(EventRecord.source_ip.is_not(None), EventRecord.source_ip != "")
        return stmt

    def query(self, flt: EventFilter, newest_first: bool = False) -> Iterator[StoredEvent]:
        stmt = self._apply_filter(select(EventRecord), flt)
        if newest_first:
            stmt = stmt.order_by(EventRecord.occurred_at.desc().nulls_last(), EventRecord.id.desc())
        stmt = stmt.execution_options(yield_per=self.QUERY_BATCH_SIZE)

        with self._get_db() as db:
            for record in db.scalars(stmt):
                yield StoredEvent.model_validate(record)

    def list_events(self, limit: int = 100, offset: int = 0) -> List[StoredEvent]:
        """
        Return `limit` events ordered by event timestamp, newest first.
        """
        stmt = (
            select(EventRecord)
            .order_by(EventRecord.occurred_at.desc().nulls_last(), EventRecord.id.desc())
            .limit(limit)
            .offset(offset)
        )
        with self._get_db() as db:
            return [StoredEvent.model_validate(r) for r in db.scalars(stmt)]

    def count(self) -> int:
        with self._get_db() as db:
            return db.scalar(select(func.count(EventRecord.id))) or 0

    def source_ip_activity(self, since: datetime) -> Dict[str, IPActivity]:
        stmt = self._apply_filter(
            select(
                EventRecord.source_ip,
                func.count(EventRecord.id),
                func.min(EventRecord.occurred_at),
                func.max(EventRecord.occurred_at),
            ),
            EventFilter(since=since, require_source_ip=True),
        ).group_by(EventRecord.source_ip)

        with self._get_db() as db:
            return {
                ip: IPActivity(count=n, first_seen=first, last_seen=last)
                for ip, n, first, last in db.execute(stmt)
            }
