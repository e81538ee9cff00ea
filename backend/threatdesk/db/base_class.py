# backend/threatdesk/db/base_class.py
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# JSONB on Postgres, plain JSON on SQLite (tests / local dev)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")
