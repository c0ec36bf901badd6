"""Database engine, session factory, and declarative base."""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import QueuePool

from ..config import settings


def _engine_options(url: str) -> dict:
    """Pool settings for PostgreSQL; SQLite (local dev) gets a plain connection."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.effective_database_url, **_engine_options(settings.effective_database_url))

SessionLocal = sessionmaker(bind=engine)


class Base(DeclarativeBase):
    pass


def get_db() -> Generator[Session, None, None]:
    """Yield one session per request; the route decides when to commit."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
