# backend/threatdesk/api/v1/routes_detect.py

from fastapi import APIRouter, Depends

from threatdesk.api.deps import get_detection_engine
from threatdesk.schemas.detection import DetectionResponse
from threatdesk.services.detection.detection_engine import DetectionEngine

router = APIRouter(tags=["detection"])


@router.post("/detect", response_model=DetectionResponse, summary="Run detection rules now")
async def run_detection(
    engine: DetectionEngine = Depends(get_detection_engine),
) -> DetectionResponse:
    """
    Manually trigger a full detection run over stored events.
    """
    result = await engine.run_all()
    return DetectionResponse(
        alerts_generated=result.total,
        detection_summary=result.summary(),
        details=result,
    )
