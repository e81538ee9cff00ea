# backend/threatdesk/services/alerting/alert_store_service.py

import abc
import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from threatdesk.models.alert_record import AlertRecord
from threatdesk.schemas.alerts import (
    Alert,
    AlertCreate,
    AlertSeverity,
    AlertStatus,
)

logger = logging.getLogger(__name__)


class AlertStore(abc.ABC):
    @abc.abstractmethod
    def insert(self, alert: AlertCreate) -> Alert:
        ...

    @abc.abstractmethod
    def exists(self, alert: AlertCreate) -> bool:
        """True when an alert with the same dedupe key is already stored."""

    @abc.abstractmethod
    def get(self, alert_id: int) -> Optional[Alert]:
        ...

    @abc.abstractmethod
    def list_alerts(
        self,
        status: Optional[AlertStatus] = AlertStatus.OPEN,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Alert]:
        """Alerts with `status` (all when None), newest first."""

    @abc.abstractmethod
    def set_status(self, alert_id: int, status: AlertStatus) -> Optional[Alert]:
        ...

    @abc.abstractmethod
    def count(
        self,
        status: Optional[AlertStatus] = None,
        severity: Optional[AlertSeverity] = None,
    ) -> int:
        ...


class SqlAlertStore(AlertStore):
    """DB-backed alert store (Postgres / SQLite via SQLAlchemy)."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _get_db(self) -> Session:
        return self._session_factory()

    def insert(self, alert: AlertCreate) -> Alert:
        record = AlertRecord(
            alert_type=alert.alert_type.value,
            severity=alert.severity.value,
            title=alert.title,
            description=alert.description,
            affected_entity=alert.affected_entity,
            source_ip=alert.source_ip,
            event_count=alert.event_count,
            first_seen=alert.first_seen,
            last_seen=alert.last_seen,
            status=AlertStatus.OPEN.value,
        )
        with self._get_db() as db, db.begin():
            db.add(record)
            db.flush()
            out = Alert.model_validate(record)
        return out

    def exists(self, alert: AlertCreate) -> bool:
        stmt = select(AlertRecord.id).where(
            AlertRecord.alert_type == alert.alert_type.value,
            AlertRecord.affected_entity.is_(None)
            if alert.affected_entity is None
            else AlertRecord.affected_entity == alert.affected_entity,
            AlertRecord.source_ip.is_(None)
            if alert.source_ip is None
            else AlertRecord.source_ip == alert.source_ip,
            AlertRecord.first_seen == alert.first_seen,
        ).limit(1)
        with self._get_db() as db:
            return db.scalar(stmt) is not None

    def get(self, alert_id: int) -> Optional[Alert]:
        with self._get_db() as db:
            record = db.get(AlertRecord, alert_id)
            return Alert.model_validate(record) if record else None

    def list_alerts(
        self,
        status: Optional[AlertStatus] = AlertStatus.OPEN,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Alert]:
        stmt = select(AlertRecord)
        if status is not None:
            stmt = stmt.where(AlertRecord.status == status.value)
        stmt = (
            stmt.order_by(AlertRecord.created_at.desc(), AlertRecord.id.desc())
            .limit(limit)
            .offset(offset)
        )
        with self._get_db() as db:
            return [Alert.model_validate(r) for r in db.scalars(stmt)]

    def set_status(self, alert_id: int, status: AlertStatus) -> Optional[Alert]:
        with self._get_db() as db, db.begin():
            record = db.get(AlertRecord, alert_id)
            if record is None:
                return None
            record.status = status.value
            db.flush()
            out = Alert.model_validate(record)

        logger.info("Alert %s moved to status %s", alert_id, status.value)
        return out

    def count(
        self,
        status: Optional[AlertStatus] = None,
        severity: Optional[AlertSeverity] = None,
    ) -> int:
        stmt = select(func.count(AlertRecord.id))
        if status is not None:
            stmt = stmt.where(AlertRecord.status == status.value)
        if severity is not None:
            stmt = stmt.where(AlertRecord.severity == severity.value)
        with self._get_db() as db:
            return db.scalar(stmt) or 0
