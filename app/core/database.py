"""Database connection and session management."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.core.config import settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class."""

    pass


def _engine_options() -> dict[str, Any]:
    if settings.is_sqlite:
        # SQLite has no server-side pool; sessions may hop threads under TestClient
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }


# Note: echo=False to disable SQL logging; raise the sqlalchemy.engine logger to debug queries
engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    **_engine_options(),
)

SessionLocal = sessionmaker(
    bind=engine,
    class_=Session,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency.

    The session commits once the request handler returns, so everything a
    request writes (a whole generated instance batch included) lands in a
    single transaction or not at all.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
