# backend/api/editorial/db.py
from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from editorial.config import Settings
from editorial.tables import metadata


def build_engine(settings: Settings) -> Engine:
    """
    Construct the process's engine. Callers own it and must `dispose()` it.
    """
    return create_engine_for_url(settings.database_url)


def create_engine_for_url(db_url: str) -> Engine:
    _, _, location = db_url.partition("://")
    in_memory = db_url.startswith("sqlite") and location.strip("/") in ("", ":memory:")
    if in_memory:
        # one shared connection, otherwise every checkout sees an empty database
        return create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    return create_engine(db_url, pool_pre_ping=True, future=True)


def create_schema(engine: Engine) -> None:
    """Create tables for local and test databases. Production uses Alembic."""
    metadata.create_all(engine)


def db_ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
