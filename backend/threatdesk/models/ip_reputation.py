# backend/threatdesk/models/ip_reputation.py
from sqlalchemy import Boolean, Column, DateTime, Integer, String

from threatdesk.db.base_class import Base, JSONPayload


class IPReputationRecord(Base):
    __tablename__ = "ip_reputation"

    ip_address = Column(String, primary_key=True)
    abuse_confidence_score = Column(Integer, nullable=False, default=0)
    country_code = Column(String(8), nullable=True)
    usage_type = Column(String, nullable=True)
    is_whitelisted = Column(Boolean, nullable=False, default=False)
    total_reports = Column(Integer, nullable=False, default=0)
    last_checked = Column(DateTime, nullable=False, index=True)
    raw_payload = Column(JSONPayload, nullable=True)
