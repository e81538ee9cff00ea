# backend/threatdesk/services/detection/detection_engine.py
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from threatdesk.core.timeutils import parse_event_timestamp, utcnow
from threatdesk.schemas.alerts import Alert, AlertCreate, AlertSeverity, AlertType
from threatdesk.schemas.detection import DetectionResult
from threatdesk.schemas.events import StoredEvent
from threatdesk.services.alerting.alert_store_service import AlertStore
from threatdesk.services.detection.params import DetectionParams
from threatdesk.services.enrichment.reputation_cache import ReputationCache
from threatdesk.services.events.event_filter import EventFilter
from threatdesk.services.events.event_store_service import EventStore
from threatdesk.services.risk_scoring.risk_utils import risk_level

logger = logging.getLogger(__name__)


def _span(events: List[StoredEvent]) -> tuple[datetime, datetime]:
    times = [e.occurred_at for e in events]
    return min(times), max(times)


def _latest(events: List[StoredEvent]) -> StoredEvent:
    return max(events, key=lambda e: (e.occurred_at, e.id))


class DetectionEngine:
    """
    Fixed, ordered set of detection rules over the event store.

    Rules:
      1. Brute force: failed logins per source IP and per username.
      2. Off-hours access: successful logins outside business hours.
      3. Geo / IP-range anomaly: activity from suspicious address prefixes.
      4. High-risk IP: source IPs with a bad reputation score.

    Every rule is a full re-scan of current state and returns the alerts it
    inserted. No state is carried between runs, so re-running over the same
    events raises the same alerts again unless `dedupe_alerts` is on.
    """

    def __init__(
        self,
        events: EventStore,
        alerts: AlertStore,
        reputation: Optional[ReputationCache],
        params: Optional[DetectionParams] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._events = events
        self._alerts = alerts
        self._reputation = reputation
        self.params = params or DetectionParams()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Public entry point
    # -------------------------------------------------------------------------
    async def run_all(self) -> DetectionResult:
        """
        Run all rules in fixed order. A failure in the first three rules
        aborts the run; the high-risk IP rule never raises.
        """
        logger.info("Running threat detection rules...")

        result = DetectionResult(
            brute_force=self.detect_brute_force(),
            off_hours=self.detect_off_hours_access(),
            geo_anomaly=self.detect_geo_anomalies(),
        )
        result.high_risk_ip = await self.detect_high_risk_ips()

        counts = result.summary()
        logger.info("Detection complete: %d alerts generated", result.total)
        for rule, n in counts.items():
            logger.info("  - %s: %d", rule, n)
        return result

    def _emit(self, alert: AlertCreate) -> Optional[Alert]:
        if self.params.dedupe_alerts and self._alerts.exists(alert):
            logger.debug(
                "Skipping duplicate %s alert for %s", alert.alert_type.value, alert.affected_entity
            )
            return None
        return self._alerts.insert(alert)

    def _lookback_start(self) -> datetime:
        return self._clock() - timedelta(hours=self.params.lookback_hours)

    # -------------------------------------------------------------------------
    # Rule 1: Brute force
    # -------------------------------------------------------------------------
    def detect_brute_force(self) -> List[Alert]:
        p = self.params
        since = self._clock() - timedelta(seconds=p.brute_force_window_seconds)
        flt = EventFilter(since=since, status_contains=p.failure_tokens)
        window_minutes = f"{p.brute_force_window_seconds / 60:g}"

        by_ip: Dict[str, List[StoredEvent]] = defaultdict(list)
        by_user: Dict[str, List[StoredEvent]] = defaultdict(list)
        for ev in self._events.query(flt):
            if ev.source_ip:
                by_ip[ev.source_ip].append(ev)
            if ev.username:
                by_user[ev.username].append(ev)

        alerts: List[Alert] = []

        for ip, group in sorted(by_ip.items()):
            if len(group) < p.brute_force_threshold:
                continue
            first, last = _span(group)
            alert = self._emit(
                AlertCreate(
                    alert_type=AlertType.BRUTE_FORCE,
                    severity=AlertSeverity.HIGH,
                    title=f"Brute Force Attack Detected from {ip}",
                    description=(
                        f"Detected {len(group)} failed login attempts from IP {ip} "
                        f"within {window_minutes} minutes"
                    ),
                    affected_entity=ip,
                    source_ip=ip,
                    event_count=len(group),
                    first_seen=first,
                    last_seen=last,
                )
            )
            if alert:
                alerts.append(alert)

        # A single burst may also trip the per-account pass; both alerts are kept.
        for username, group in sorted(by_user.items()):
            if len(group) < p.brute_force_threshold:
                continue
            first, last = _span(group)
            alert = self._emit(
                AlertCreate(
                    alert_type=AlertType.BRUTE_FORCE,
                    severity=AlertSeverity.HIGH,
                    title=f"Brute Force Attack on Account {username}",
                    description=(
                        f"Detected {len(group)} failed login attempts for user {username} "
                        f"within {window_minutes} minutes"
                    ),
                    affected_entity=username,
                    source_ip=_latest(group).source_ip,
                    event_count=len(group),
                    first_seen=first,
                    last_seen=last,
                )
            )
            if alert:
                alerts.append(alert)

        return alerts

    # -------------------------------------------------------------------------
    # Rule 2: Off-hours access
    # -------------------------------------------------------------------------
    def _is_off_hours(self, local: datetime) -> bool:
        p = self.params
        if local.weekday() >= 5:
            return True
        return local.hour < p.business_hours_start or local.hour >= p.business_hours_end

    def detect_off_hours_access(self) -> List[Alert]:
        p = self.params
        flt = EventFilter(since=self._lookback_start(), status_contains=p.success_tokens)

        # drain the cursor before inserting; an open SQLite read blocks the writer
        matched = list(self._events.query(flt, newest_first=True))

        alerts: List[Alert] = []
        for ev in matched:
            # hour and weekday as written in the event, in its own offset
            local = parse_event_timestamp(ev.timestamp)
            if local is None or not self._is_off_hours(local):
                continue

            alert = self._emit(
                AlertCreate(
                    alert_type=AlertType.OFF_HOURS_ACCESS,
                    severity=AlertSeverity.MEDIUM,
                    title=f"Off-Hours Access by {ev.username or 'Unknown User'}",
                    description=(
                        f"Successful login detected outside business hours from IP "
                        f"{ev.source_ip or 'unknown'} at {ev.timestamp}"
                    ),
                    affected_entity=ev.username,
                    source_ip=ev.source_ip,
                    event_count=1,
                    first_seen=ev.occurred_at,
                    last_seen=ev.occurred_at,
                )
            )
            if alert:
                alerts.append(alert)

        return alerts

    # -------------------------------------------------------------------------
    # Rule 3: Geo / IP-range anomaly
    # -------------------------------------------------------------------------
    def detect_geo_anomalies(self) -> List[Alert]:
        since = self._lookback_start()
        alerts: List[Alert] = []

        for prefix in self.params.suspicious_prefixes:
            by_ip: Dict[str, List[StoredEvent]] = defaultdict(list)
            flt = EventFilter(since=since, source_ip_prefix=prefix, require_source_ip=True)
            for ev in self._events.query(flt):
                by_ip[ev.source_ip].append(ev)

            for ip, group in sorted(by_ip.items()):
                first, last = _span(group)
                named = [e for e in group if e.username]
                alert = self._emit(
                    AlertCreate(
                        alert_type=AlertType.GEO_ANOMALY,
                        severity=AlertSeverity.MEDIUM,
                        title=f"Suspicious IP Range Detected: {ip}",
                        description=(
                            f"Activity detected from potentially suspicious IP range "
                            f"{prefix}*. {len(group)} events recorded."
                        ),
                        affected_entity=_latest(named).username if named else ip,
                        source_ip=ip,
                        event_count=len(group),
                        first_seen=first,
                        last_seen=last,
                    )
                )
                if alert:
                    alerts.append(alert)

        return alerts

    # -------------------------------------------------------------------------
    # Rule 4: High-risk IP (reputation)
    # -------------------------------------------------------------------------
    async def detect_high_risk_ips(self) -> List[Alert]:
        """
        Only rule with an external dependency. If reputation resolution fails
        outright the rule logs and returns what it has, never raising.
        """
        p = self.params
        if self._reputation is None:
            logger.info("No reputation cache configured; skipping high-risk IP rule")
            return []

        activity = self._events.source_ip_activity(self._lookback_start())
        if not activity:
            return []

        try:
            reputations = await self._reputation.batch_lookup(sorted(activity))
        except Exception:
            logger.exception("IP reputation lookup failed; high-risk IP rule skipped")
            return []

        alerts: List[Alert] = []
        for ip in sorted(activity):
            rep = reputations.get(ip)
            if rep is None or rep.is_whitelisted:
                continue
            score = rep.abuse_confidence_score
            if score < p.high_risk_score:
                continue

            seen = activity[ip]
            level = risk_level(score, critical=p.critical_risk_score, high=p.high_risk_score)
            severity = AlertSeverity.CRITICAL if level == "critical" else AlertSeverity.HIGH

            alert = self._emit(
                AlertCreate(
                    alert_type=AlertType.HIGH_RISK_IP,
                    severity=severity,
                    title=f"High-Risk IP Activity: {ip}",
                    description=(
                        f"IP {ip} has an abuse confidence score of {score}/100 with "
                        f"{rep.total_reports} reports (country: {rep.country_code or 'unknown'}, "
                        f"usage: {rep.usage_type or 'unknown'}). {seen.count} events from this IP "
                        f"in the last {p.lookback_hours} hours."
                    ),
                    affected_entity=ip,
                    source_ip=ip,
                    event_count=seen.count,
                    first_seen=seen.first_seen,
                    last_seen=seen.last_seen,
                )
            )
            if alert:
                alerts.append(alert)

        return alerts
