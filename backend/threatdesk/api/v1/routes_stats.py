# backend/threatdesk/api/v1/routes_stats.py

from fastapi import APIRouter, Depends

from threatdesk.api.deps import get_alert_store, get_event_store
from threatdesk.schemas.alerts import AlertSeverity, AlertStatus
from threatdesk.services.alerting.alert_store_service import AlertStore
from threatdesk.services.events.event_store_service import EventStore

router = APIRouter(tags=["stats"])


@router.get("/stats", summary="Dashboard statistics")
def get_stats(
    events: EventStore = Depends(get_event_store),
    alerts: AlertStore = Depends(get_alert_store),
) -> dict:
    return {
        "success": True,
        "stats": {
            "total_logs": events.count(),
            "total_alerts": alerts.count(),
            "open_alerts": alerts.count(status=AlertStatus.OPEN),
            "critical_alerts": alerts.count(
                status=AlertStatus.OPEN, severity=AlertSeverity.CRITICAL
            ),
            "high_alerts": alerts.count(status=AlertStatus.OPEN, severity=AlertSeverity.HIGH),
            "recent_activity": events.list_events(limit=10),
        },
    }
