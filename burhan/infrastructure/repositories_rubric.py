# burhan/infrastructure/repositories_rubric.py
from __future__ import annotations

import builtins
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from ..domain.models import Rubric
from ..domain.schemas import RubricDocument
from .logging import log_database_operation as log_op
from .models import RubricVersionORM, as_utc
from .repositories_base import BaseRepository as GenericBaseRepository


@dataclass(frozen=True, slots=True)
class RubricVersion:
    version: int
    rubric: Rubric
    created_at: datetime
    note: str | None = None


def _to_version(row: RubricVersionORM) -> RubricVersion:
    return RubricVersion(
        version=row.id,
        rubric=RubricDocument.model_validate(row.document).to_rubric(),
        created_at=as_utc(row.created_at),
        note=row.note,
    )


class RubricRepo(GenericBaseRepository[RubricVersionORM]):
    """Append-only store of rubric versions; the newest one is live."""

    model = RubricVersionORM

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("rubric.latest")
    def latest(self) -> RubricVersion | None:
        row = self.s.query(self.model).order_by(self.model.id.desc()).limit(1).one_or_none()
        return _to_version(row) if row is not None else None

    @log_op("rubric.get_version")
    def get_version(self, version: int) -> RubricVersion | None:
        row = self.get(version)
        return _to_version(row) if row is not None else None

    @log_op("rubric.save")
    def save(self, rubric: Rubric, note: str | None = None) -> RubricVersion:
        document = RubricDocument.from_rubric(rubric).model_dump(mode="json")
        row = self.create(document=document, note=note)
        return _to_version(row)

    @log_op("rubric.history")
    def history(self, limit: int | None = None) -> builtins.list[RubricVersion]:
        rows = self.list(order_by=[self.model.id.desc()], limit=limit)
        return [_to_version(r) for r in rows]

    @log_op("rubric.clear")
    def clear(self) -> int:
        """Drop every stored version so the default rubric becomes live again."""
        return self.delete_where()
