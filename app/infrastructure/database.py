"""Database configuration and session management."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import get_settings


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


settings = get_settings()

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Create an engine for ``database_url``.

    SQLite connections are shared with the worker threads used by the API, and
    an in-memory database must live on a single connection to survive between
    sessions.
    """

    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True)

    options: dict[str, object] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return create_engine(database_url, **options)


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    """Return the session factory used by requests and background tasks."""

    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = build_engine(settings.database_url)
SessionLocal = build_session_factory(engine)


def initialize_database(bind: Engine | None = None) -> None:
    """Ensure all ORM models have corresponding database tables."""

    from app.infrastructure import models  # noqa: F401  # ensure models are imported

    target = bind or engine
    Base.metadata.create_all(bind=target, checkfirst=True)
    logger.info("Database schema ready on %s", target.url.render_as_string(hide_password=True))

