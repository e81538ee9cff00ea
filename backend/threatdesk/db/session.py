# backend/threatdesk/db/session.py

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from threatdesk.core.config import settings


def _connect_args(url: str) -> dict:
    # FastAPI serves sync routes from a threadpool
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.SQLALCHEMY_DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.SQLALCHEMY_DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)
