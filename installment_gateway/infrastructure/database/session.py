"""Engine and session factory for the plan store"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from installment_gateway.config import settings


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the plan store.

    Postgres gets a bounded, pre-pinged pool recycled hourly. SQLite (local
    runs and tests) gets a thread-shareable connection instead.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=settings.db_echo,
        )

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle_seconds,
        echo=settings.db_echo,
    )


engine = build_engine(settings.database_url)

# Domain plans are detached copies; keep loaded attributes after commit
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; the service commits or rolls back each unit of work"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
