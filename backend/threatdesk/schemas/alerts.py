# backend/threatdesk/schemas/alerts.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AlertType(str, Enum):
    BRUTE_FORCE = "brute_force"
    OFF_HOURS_ACCESS = "off_hours_access"
    GEO_ANOMALY = "geo_anomaly"
    HIGH_RISK_IP = "high_risk_ip"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    CLOSED = "closed"


class AlertCreate(BaseModel):
    """What a detection rule hands to the alert store."""
    alert_type: AlertType
    severity: AlertSeverity
    title: str
    description: str
    affected_entity: Optional[str] = None
    source_ip: Optional[str] = None
    event_count: int = Field(1, ge=1)
    first_seen: datetime
    last_seen: datetime

    @model_validator(mode="after")
    def _check_window(self) -> "AlertCreate":
        if self.first_seen > self.last_seen:
            raise ValueError("first_seen must not be after last_seen")
        return self

    def dedupe_key(self) -> tuple:
        return (
            self.alert_type.value,
            self.affected_entity,
            self.source_ip,
            self.first_seen,
        )


class Alert(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    alert_type: AlertType
    severity: AlertSeverity
    title: str
    description: str
    affected_entity: Optional[str] = None
    source_ip: Optional[str] = None
    event_count: int
    first_seen: datetime
    last_seen: datetime
    status: AlertStatus = AlertStatus.OPEN
    ai_summary: Optional[str] = None
    created_at: datetime


class AlertStatusUpdate(BaseModel):
    status: AlertStatus


class AlertListResponse(BaseModel):
    success: bool = True
    count: int
    alerts: List[Alert]
