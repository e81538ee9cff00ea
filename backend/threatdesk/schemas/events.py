# backend/threatdesk/schemas/events.py
from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from threatdesk.core.timeutils import utcnow_iso


class EventIngestRequest(BaseModel):
    """
    A single normalized event, as produced by the parsing layer.

    Ingestion never rejects a batch over one bad field: missing values are
    defaulted and scalar values of the wrong type are coerced to text.
    """
    timestamp: str = Field(
        default_factory=utcnow_iso,
        description="ISO-8601 time of the event. If omitted, backend sets now().",
    )
    event_type: Optional[str] = Field(
        "unknown", description="Free-form event type: login, ssh, vpn, etc."
    )
    username: Optional[str] = None
    source_ip: Optional[str] = None
    destination_ip: Optional[str] = None
    status: Optional[str] = Field(
        None, description="Outcome token, e.g. success / failed / denied."
    )
    message: Optional[str] = None

    # Original record, kept verbatim for audit
    raw_payload: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _keep_raw_payload(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("raw_payload"):
            data = dict(data)
            data["raw_payload"] = {k: v for k, v in data.items() if k != "raw_payload"}
        return data

    @field_validator(
        "event_type", "username", "source_ip", "destination_ip", "status", "message",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, (dict, list)):
            return None
        v = str(v).strip()
        return v or None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, v: Any) -> str:
        if v is None or isinstance(v, (dict, list)):
            return utcnow_iso()
        if isinstance(v, datetime):
            return v.isoformat()
        v = str(v).strip()
        return v or utcnow_iso()

    @field_validator("raw_payload", mode="before")
    @classmethod
    def _coerce_raw_payload(cls, v: Any) -> Dict[str, Any]:
        if isinstance(v, dict):
            return v
        return {"value": v}


class StoredEvent(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: str
    occurred_at: Optional[datetime] = None
    event_type: Optional[str] = None
    username: Optional[str] = None
    source_ip: Optional[str] = None
    destination_ip: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None
    raw_payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class EventListResponse(BaseModel):
    success: bool = True
    count: int
    logs: List[StoredEvent]
