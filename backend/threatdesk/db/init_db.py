# backend/threatdesk/db/init_db.py
from typing import Optional

from sqlalchemy.engine import Engine

from threatdesk.db.base_class import Base

# Import models so they are registered with Base.metadata
from threatdesk import models  # noqa: F401


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Create all tables if they don't exist.
    In production, replace this with Alembic migrations.
    """
    if bind is None:
        from threatdesk.db.session import engine

        bind = engine
    Base.metadata.create_all(bind=bind)
