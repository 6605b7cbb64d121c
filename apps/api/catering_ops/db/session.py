"""
Engine and request-scoped sessions.

Production runs on PostgreSQL; a ``sqlite://`` URL is accepted for local
tooling and tests, where the connection is shared across the threadpool that
FastAPI runs sync endpoints in.
"""
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from catering_ops.core.config import get_settings

settings = get_settings()


def build_engine(url: str):
    if make_url(url).get_backend_name() == "sqlite":
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """One session per request, closed when the response is sent."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
