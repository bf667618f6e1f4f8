# burhan/infrastructure/repositories_base.py
from __future__ import annotations

import builtins
from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .exceptions import handle_database_error
from .logging import get_logger

T = TypeVar("T")  # ORM model type


class BaseRepository(Generic[T]):
    """
    Lightweight generic repository with common CRUD + query helpers.
    - Works on ORM rows; entity repos translate rows to domain objects.
    - SQLAlchemy failures surface as DatabaseError subclasses.
    """

    model: type[T]  # must be set by subclasses

    def __init__(self, session: Session):
        if not hasattr(self, "model") or self.model is None:
            raise ValueError(f"{self.__class__.__name__}.model must be set to an ORM class.")
        self.s = session
        self.logger = get_logger(self.__class__.__name__)

    def _handle_error(self, error: SQLAlchemyError, operation: str) -> None:
        self.logger.error(f"Database error in {operation}: {str(error)}", exc_info=True)
        raise handle_database_error(error, operation) from error

    # ---------- Read ----------
    def get(self, id_: Any) -> T | None:
        try:
            return self.s.get(self.model, id_)
        except SQLAlchemyError as e:
            self._handle_error(e, f"get {self.model.__name__}")

    def list(
        self,
        *filters: Any,
        order_by: Iterable[Any] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> builtins.list[T]:
        q = self.s.query(self.model)
        for f in filters:
            q = q.filter(f)
        if order_by:
            for ob in order_by:
                q = q.order_by(ob)
        if offset:
            q = q.offset(offset)
        if limit:
            q = q.limit(limit)
        try:
            return list(q.all())
        except SQLAlchemyError as e:
            self._handle_error(e, f"list {self.model.__name__}")

    def count(self, *filters: Any) -> int:
        q = self.s.query(self.model)
        for f in filters:
            q = q.filter(f)
        return int(q.count())

    # ---------- Write ----------
    def create(self, **fields: Any) -> T:
        obj = self.model(**fields)
        self.s.add(obj)
        try:
            self.s.flush()  # get PKs without committing
        except SQLAlchemyError as e:
            self._handle_error(e, f"create {self.model.__name__}")
        return obj

    def delete(self, obj: T) -> None:
        self.s.delete(obj)
        self.s.flush()

    def delete_where(self, *filters: Any) -> int:
        """Bulk delete; returns the number of rows removed."""
        q = self.s.query(self.model)
        for f in filters:
            q = q.filter(f)
        try:
            removed = q.delete(synchronize_session=False)
            self.s.flush()
        except SQLAlchemyError as e:
            self._handle_error(e, f"delete {self.model.__name__}")
        return int(removed)
