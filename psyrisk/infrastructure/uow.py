from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from .logging import get_logger

logger = get_logger(__name__)


class UnitOfWork:
    """
    Transaction scope for scripts and batch jobs that call the application API
    outside a request.

    Example:
        >>> with UnitOfWork(SessionLocal).begin() as session:
        ...     save_dimension(session, 7, 1, answers)
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    @contextmanager
    def begin(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.warning(f"Transaction rolled back: {type(e).__name__}: {e}")
            raise
        finally:
            session.close()
