import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from threatdesk.api.v1.routes_health import router as health_router
from threatdesk.api.v1.routes_events import router as events_router
from threatdesk.api.v1.routes_alerts import router as alerts_router
from threatdesk.api.v1.routes_detect import router as detect_router
from threatdesk.api.v1.routes_stats import router as stats_router
from threatdesk.api.v1.routes_reputation import router as reputation_router

from threatdesk.db.init_db import init_db
from threatdesk.core.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create DB tables if they don't exist (dev only)
    init_db()
    yield


app = FastAPI(
    title="Threat Detection Backend",
    version="0.1.0",
    description="Security event ingestion, rule-based detection and IP reputation enrichment.",
    lifespan=lifespan,
)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


@app.get("/", tags=["root"])
async def root() -> dict:
    return {
        "status": "ok",
        "service": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
    }


# API v1
app.include_router(health_router, prefix="/api/v1")
app.include_router(events_router, prefix="/api/v1")
app.include_router(alerts_router, prefix="/api/v1")
app.include_router(detect_router, prefix="/api/v1")
app.include_router(stats_router, prefix="/api/v1")
app.include_router(reputation_router, prefix="/api/v1")
