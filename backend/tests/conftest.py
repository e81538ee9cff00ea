import os

# settings are read at import time; keep tests off the Postgres default
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("ABUSEIPDB_API_KEY", None)

from datetime import datetime, timedelta
from typing import List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from threatdesk.db.init_db import init_db
from threatdesk.schemas.events import EventIngestRequest
from threatdesk.schemas.reputation import ReputationData
from threatdesk.services.enrichment.core_service.provider import (
    ProviderUnavailable,
    ReputationProvider,
)

# Wednesday, mid business day
NOW = datetime(2025, 10, 15, 12, 0, 0)


def iso(dt: datetime) -> str:
    return dt.isoformat() + "Z"


def ago(**kwargs) -> str:
    return iso(NOW - timedelta(**kwargs))


def make_event(**kwargs) -> EventIngestRequest:
    data = {
        "timestamp": ago(seconds=30),
        "event_type": "login",
        "username": "alice",
        "source_ip": "203.0.113.10",
        "status": "success",
    }
    data.update(kwargs)
    return EventIngestRequest(**data)


class FakeProvider(ReputationProvider):
    """Scripted provider: returns `scores[ip]` or raises when `fail` is set."""

    name = "fake"

    def __init__(self, scores: Optional[dict] = None, fail: bool = False) -> None:
        self.scores = scores or {}
        self.fail = fail
        self.calls: List[str] = []

    async def fetch(self, ip: str) -> ReputationData:
        self.calls.append(ip)
        if self.fail:
            raise ProviderUnavailable("provider down")
        return ReputationData(
            ip_address=ip,
            abuse_confidence_score=self.scores.get(ip, 0),
            country_code="NL",
            usage_type="Data Center/Web Hosting/Transit",
            total_reports=42,
            raw_payload={"ipAddress": ip},
        )


class FakeSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()
