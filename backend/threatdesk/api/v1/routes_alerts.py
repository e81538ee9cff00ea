# backend/threatdesk/api/v1/routes_alerts.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from threatdesk.api.deps import get_alert_store
from threatdesk.schemas.alerts import Alert, AlertListResponse, AlertStatus, AlertStatusUpdate
from threatdesk.services.alerting.alert_store_service import AlertStore

router = APIRouter(
    prefix="/alerts",
    tags=["alerts"],
)


@router.get("", response_model=AlertListResponse, summary="List alerts by status")
def list_alerts(
    status_filter: Optional[AlertStatus] = Query(AlertStatus.OPEN, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    alerts: AlertStore = Depends(get_alert_store),
) -> AlertListResponse:
    items = alerts.list_alerts(status=status_filter, limit=limit, offset=offset)
    return AlertListResponse(count=len(items), alerts=items)


@router.get("/{alert_id}", response_model=Alert, summary="Get a single alert")
def get_alert(alert_id: int, alerts: AlertStore = Depends(get_alert_store)) -> Alert:
    alert = alerts.get(alert_id)
    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alert {alert_id} not found",
        )
    return alert


@router.patch("/{alert_id}", response_model=Alert, summary="Change alert status")
def update_alert_status(
    alert_id: int,
    payload: AlertStatusUpdate,
    alerts: AlertStore = Depends(get_alert_store),
) -> Alert:
    """
    Operator action: move an alert between open / investigating / closed.
    """
    alert = alerts.set_status(alert_id, payload.status)
    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alert {alert_id} not found",
        )
    return alert
