# backend/threatdesk/services/detection/params.py
from dataclasses import dataclass, field
from typing import Tuple

from threatdesk.core.config import Settings


@dataclass(frozen=True)
class DetectionParams:
    """Tunable thresholds and windows for the detection rules."""

    # Brute force
    brute_force_threshold: int = 5
    brute_force_window_seconds: int = 300
    failure_tokens: Tuple[str, ...] = ("fail", "denied", "invalid")

    # Off-hours access, [start, end) in the event's own UTC offset, Mon-Fri
    business_hours_start: int = 9
    business_hours_end: int = 18
    success_tokens: Tuple[str, ...] = ("success", "accepted")

    # Shared look-back for off-hours, geo and high-risk rules
    lookback_hours: int = 24

    # Geo / IP-range anomaly
    suspicious_prefixes: Tuple[str, ...] = field(
        default_factory=lambda: ("10.0.0.", "192.168.", "0.0.0.")
    )

    # High-risk IP
    high_risk_score: int = 50
    critical_risk_score: int = 75

    dedupe_alerts: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "DetectionParams":
        return cls(
            brute_force_threshold=settings.BRUTE_FORCE_THRESHOLD,
            brute_force_window_seconds=settings.BRUTE_FORCE_WINDOW_SECONDS,
            business_hours_start=settings.BUSINESS_HOURS_START,
            business_hours_end=settings.BUSINESS_HOURS_END,
            lookback_hours=settings.DETECTION_LOOKBACK_HOURS,
            suspicious_prefixes=tuple(settings.SUSPICIOUS_IP_PREFIXES),
            high_risk_score=settings.HIGH_RISK_SCORE_THRESHOLD,
            critical_risk_score=settings.CRITICAL_RISK_SCORE_THRESHOLD,
            dedupe_alerts=settings.ALERT_DEDUPE_ENABLED,
        )
