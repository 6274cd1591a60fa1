"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`DATABASE_URL` (a local SQLite file `app.db` by default) and provides
small helpers used by the application and tests.
"""

import logging

from sqlmodel import SQLModel, create_engine, Session

from .config import settings

logger = logging.getLogger("usercrud.database")


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.DATABASE_URL, echo=settings.APP_DEBUG, connect_args=_connect_args(settings.DATABASE_URL))


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    Intended for local development and tests; production deployments
    should rely on a proper migration tool instead.
    """
    from . import models  # noqa: F401  registers the tables on the metadata

    SQLModel.metadata.create_all(engine)
    logger.info("database tables ensured on %s", engine.url.render_as_string(hide_password=True))


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
