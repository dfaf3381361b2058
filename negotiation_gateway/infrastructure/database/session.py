"""Engine and session factory for the negotiation database"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from negotiation_gateway.config import settings


def build_engine(database_url: str) -> Engine:
    """
    Engine for the given URL.

    Postgres gets a bounded pool recycled hourly; SQLite (local runs and
    tests) is shared across FastAPI's worker threads.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

# Commits are explicit: a negotiation is written in one transaction
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; anything left uncommitted is rolled back on close"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
