# backend/threatdesk/schemas/detection.py
from typing import Dict, List

from pydantic import BaseModel, Field

from threatdesk.schemas.alerts import Alert


class DetectionResult(BaseModel):
    """Alerts inserted by one detection run, keyed by rule."""
    brute_force: List[Alert] = Field(default_factory=list)
    off_hours: List[Alert] = Field(default_factory=list)
    geo_anomaly: List[Alert] = Field(default_factory=list)
    high_risk_ip: List[Alert] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return (
            len(self.brute_force)
            + len(self.off_hours)
            + len(self.geo_anomaly)
            + len(self.high_risk_ip)
        )

    def summary(self) -> Dict[str, int]:
        return {
            "brute_force": len(self.brute_force),
            "off_hours": len(self.off_hours),
            "geo_anomaly": len(self.geo_anomaly),
            "high_risk_ip": len(self.high_risk_ip),
        }


class DetectionResponse(BaseModel):
    success: bool = True
    alerts_generated: int
    detection_summary: Dict[str, int]
    details: DetectionResult | None = None


class IngestResponse(BaseModel):
    success: bool = True
    logs_ingested: int
    alerts_generated: int | None = None
    detection_summary: Dict[str, int] | None = None
