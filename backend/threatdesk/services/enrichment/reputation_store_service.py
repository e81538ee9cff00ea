# backend/threatdesk/services/enrichment/reputation_store_service.py

import abc
from datetime import datetime
from typing import Optional

from sqlalchemy import case, delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from threatdesk.models.ip_reputation import IPReputationRecord
from threatdesk.schemas.reputation import (
    ReputationData,
    ReputationRecord,
    ReputationStats,
)


class ReputationStore(abc.ABC):
    """Persistence for cached reputation records, one row per IP."""

    @abc.abstractmethod
    def get(self, ip: str) -> Optional[ReputationRecord]:
        """Stored record for `ip` regardless of age."""

    @abc.abstractmethod
    def upsert(self, data: ReputationData, checked_at: datetime) -> ReputationRecord:
        ...

    @abc.abstractmethod
    def delete_checked_before(self, cutoff: datetime) -> int:
        """Delete records with last_checked <= cutoff; return how many."""

    @abc.abstractmethod
    def stats(self, high_threshold: int, critical_threshold: int) -> ReputationStats:
        ...


class SqlReputationStore(ReputationStore):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _get_db(self) -> Session:
        return self._session_factory()

    def get(self, ip: str) -> Optional[ReputationRecord]:
        with self._get_db() as db:
            record = db.get(IPReputationRecord, ip)
            return ReputationRecord.model_validate(record) if record else None

    def upsert(self, data: ReputationData, checked_at: datetime) -> ReputationRecord:
        with self._get_db() as db, db.begin():
            record = db.get(IPReputationRecord, data.ip_address)
            if record is None:
                record = IPReputationRecord(ip_address=data.ip_address)
                db.add(record)

            record.abuse_confidence_score = data.abuse_confidence_score
            record.country_code = data.country_code
            record.usage_type = data.usage_type
            record.is_whitelisted = data.is_whitelisted
            record.total_reports = data.total_reports
            record.raw_payload = data.raw_payload
            record.last_checked = checked_at
            db.flush()
            out = ReputationRecord.model_validate(record)
        return out

    def delete_checked_before(self, cutoff: datetime) -> int:
        stmt = delete(IPReputationRecord).where(IPReputationRecord.last_checked <= cutoff)
        with self._get_db() as db, db.begin():
            result = db.execute(stmt)
        return result.rowcount or 0

    def stats(self, high_threshold: int, critical_threshold: int) -> ReputationStats:
        score = IPReputationRecord.abuse_confidence_score
        stmt = select(
            func.count(IPReputationRecord.ip_address),
            func.coalesce(func.sum(case((score >= high_threshold, 1), else_=0)), 0),
            func.coalesce(func.sum(case((score >= critical_threshold, 1), else_=0)), 0),
            func.coalesce(
                func.sum(case((IPReputationRecord.is_whitelisted, 1), else_=0)), 0
            ),
        )
        with self._get_db() as db:
            total, high, critical, whitelisted = db.execute(stmt).one()

        return ReputationStats(
            total_cached=total or 0,
            high_risk=high or 0,
            critical_risk=critical or 0,
            whitelisted=whitelisted or 0,
        )
