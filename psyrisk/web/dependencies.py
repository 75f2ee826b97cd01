from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session, sessionmaker

from psyrisk.infrastructure.config import DatabaseConfig
from psyrisk.infrastructure.db import create_database_engine, create_session_factory, init_schema


def open_database(app, config: DatabaseConfig) -> sessionmaker[Session]:
    """Build the engine and session factory once per application and keep them on ``app.state``."""
    engine = create_database_engine(config)
    if config.is_sqlite:
        # mysql deployments are migrated with alembic
        init_schema(engine)
    app.state.db_engine = engine
    app.state.session_factory = create_session_factory(engine)
    return app.state.session_factory


def close_database(app) -> None:
    engine = getattr(app.state, "db_engine", None)
    if engine is not None:
        engine.dispose()
        app.state.db_engine = None
        app.state.session_factory = None


def get_db_session(request: Request) -> Generator[Session, None, None]:
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()
