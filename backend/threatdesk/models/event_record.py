# backend/threatdesk/models/event_record.py
from sqlalchemy import Column, DateTime, Integer, String, Text

from threatdesk.core.timeutils import utcnow
from threatdesk.db.base_class import Base, JSONPayload


class EventRecord(Base):
    """Append-only audit record. Rows are never updated or deleted."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # ISO-8601 text exactly as supplied by the caller
    timestamp = Column(String, nullable=False, index=True)
    # timestamp converted to naive UTC; null when it could not be parsed
    occurred_at = Column(DateTime, nullable=True, index=True)

    event_type = Column(String, nullable=True, index=True)
    username = Column(String, nullable=True, index=True)
    source_ip = Column(String, nullable=True, index=True)
    destination_ip = Column(String, nullable=True)
    status = Column(String, nullable=True)
    message = Column(Text, nullable=True)

    raw_payload = Column(JSONPayload, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
