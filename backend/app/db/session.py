"""Database engine and session dependency."""

from collections.abc import Generator
from pathlib import Path
from typing import Annotated, Any, Dict

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings

# Seconds a SQLite writer waits on a locked database before failing
SQLITE_BUSY_TIMEOUT = 5


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        if ":memory:" not in url:
            db_file = url.split("sqlite:///")[-1]
            Path(db_file).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
        return {
            "connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
            "pool_pre_ping": True,
        }
    return {
        "pool_size": 20,
        "max_overflow": 40,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


def build_engine(url: str) -> Engine:
    """Create the engine for ``url``; SQLite connections get foreign keys enabled."""
    db_engine = create_engine(url, echo=False, **_engine_options(url))

    if url.startswith("sqlite"):
        @event.listens_for(db_engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return db_engine


engine = build_engine(settings.database_url)

# Objects stay readable after commit; services return them to the routes
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


DbSession = Annotated[Session, Depends(get_db)]
