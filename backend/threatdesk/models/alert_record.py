# backend/threatdesk/models/alert_record.py
from sqlalchemy import Column, DateTime, Integer, String, Text

from threatdesk.core.timeutils import utcnow
from threatdesk.db.base_class import Base


class AlertRecord(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)

    alert_type = Column(String(32), nullable=False)
    severity = Column(String(16), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)

    affected_entity = Column(String, nullable=True)
    source_ip = Column(String, nullable=True)
    event_count = Column(Integer, nullable=False, default=1)

    first_seen = Column(DateTime, nullable=False)
    last_seen = Column(DateTime, nullable=False)

    status = Column(String(16), nullable=False, default="open", index=True)
    ai_summary = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
