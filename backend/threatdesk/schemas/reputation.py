# backend/threatdesk/schemas/reputation.py
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReputationData(BaseModel):
    """
    Provider-neutral reputation assessment for one IP.
    Produced by AbuseIPDB or by the fallback generator.
    """
    ip_address: str
    abuse_confidence_score: int = Field(0, ge=0, le=100)
    country_code: Optional[str] = None
    usage_type: Optional[str] = None
    is_whitelisted: bool = False
    total_reports: int = 0
    raw_payload: Optional[Dict[str, Any]] = None


class ReputationRecord(ReputationData):
    model_config = ConfigDict(from_attributes=True)

    last_checked: datetime


class ReputationStats(BaseModel):
    total_cached: int
    high_risk: int
    critical_risk: int
    whitelisted: int


class EvictionResult(BaseModel):
    success: bool = True
    removed: int
