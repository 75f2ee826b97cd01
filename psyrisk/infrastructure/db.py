"""
Engine and session factory construction from ``DatabaseConfig``.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DatabaseConfig, get_settings
from .logging import get_logger
from .models import Base

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # sqlite ignores ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_database_engine(config: DatabaseConfig | None = None) -> Engine:
    """
    Create a SQLAlchemy engine from the database configuration.

    Example:
        >>> engine = create_database_engine(DatabaseConfig(sqlite_path=":memory:"))
    """
    config = config or get_settings().database
    options = config.get_engine_options()
    if config.is_memory:
        # one shared connection, otherwise every session sees an empty database
        options.update(connect_args={"check_same_thread": False}, poolclass=StaticPool)

    try:
        engine = create_engine(config.get_connection_url(), **options)
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}")
        raise

    if config.is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.info(f"Database engine ready ({engine.url.render_as_string(hide_password=True)})")
    return engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine or create_database_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


def init_schema(engine: Engine) -> None:
    """Create missing tables directly; MySQL deployments are migrated with alembic instead."""
    Base.metadata.create_all(engine)
    logger.info("Database schema ensured")


def get_database_url() -> str:
    return get_settings().database.get_connection_url()
