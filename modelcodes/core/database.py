"""Database engine and session factory."""
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker, Session
from modelcodes.core.config import settings

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    """Open a session per request and always close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def violates_unique(exc: IntegrityError, constraint_name: str, columns: str) -> bool:
    """Whether an IntegrityError came from one particular unique constraint.

    PostgreSQL reports the constraint name; SQLite only names the
    ``table.column`` list, e.g. ``code_usage_entries.model``.
    """
    diag = getattr(exc.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name == constraint_name
    return f"UNIQUE constraint failed: {columns}" in str(exc.orig)
