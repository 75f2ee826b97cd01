from __future__ import annotations

from typing import Any, Generic, NoReturn, TypeVar

from sqlalchemy.orm import Session

from .exceptions import NotFoundError, handle_database_error
from .logging import get_logger

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Helpers shared by the entity repositories.

    Subclasses set ``model`` and, for a specific not-found kind, ``not_found``.
    Nothing here commits; the caller owns the transaction.
    """

    model: type[T]
    not_found: type[NotFoundError] = NotFoundError

    def __init__(self, session: Session):
        if getattr(self, "model", None) is None:
            raise ValueError(f"{type(self).__name__}.model must be set to an ORM class.")
        self.s = session
        self.logger = get_logger(f"repositories.{type(self).__name__}")

    def _handle_error(self, error: Exception, operation: str) -> NoReturn:
        self.logger.error(f"Database error in {operation}: {error}", exc_info=True)
        raise handle_database_error(error, operation) from error

    def get(self, id_: Any) -> T | None:
        return self.s.get(self.model, id_)

    def get_by_id_required(self, id_: Any) -> T:
        obj = self.get(id_)
        if obj is None:
            if self.not_found is NotFoundError:
                raise NotFoundError(id_, entity=self.model.__name__.removesuffix("ORM"))
            raise self.not_found(id_)
        return obj

    def create(self, **fields: Any) -> T:
        obj = self.model(**fields)
        self.s.add(obj)
        self.s.flush()
        return obj
