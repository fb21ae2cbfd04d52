"""
Engine, session factory and schema bootstrap for the settings tables.

Every manager call is one short synchronous unit of work, so a plain
sessionmaker is all the services need.
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from settingstore.config import get_settings
from settingstore.models import Base

settings = get_settings()

connect_args = {}
if settings.database_url.startswith("sqlite"):
    # the API serves sync routes from a thread pool
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.database_url,
    echo=settings.debug,  # Log SQL when DEBUG=true
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


def init_db() -> None:
    """Create missing settings tables (SQLite deployments without Alembic)."""
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding a session that is closed after the request.

    Usage:
        def get_manager(db: Session = Depends(get_db)):
            return SettingsManager(db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
