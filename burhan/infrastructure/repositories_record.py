# burhan/infrastructure/repositories_record.py
from __future__ import annotations

import builtins
from types import MappingProxyType
from typing import Any

from sqlalchemy.orm import Session

from ..domain.models import AssessmentRecord, ProjectInfo
from ..domain.schemas import RubricDocument
from .exceptions import RecordNotFoundError
from .logging import log_database_operation as log_op
from .models import AssessmentRecordORM, as_utc
from .repositories_base import BaseRepository as GenericBaseRepository


def record_to_row_fields(record: AssessmentRecord) -> dict[str, Any]:
    info = record.project_info
    snapshot = (
        RubricDocument.from_rubric(record.rubric_snapshot).model_dump(mode="json")
        if record.rubric_snapshot is not None
        else None
    )
    return {
        "id": record.id,
        "user_name": info.user_name,
        "project_name": info.project_name,
        "organization": info.organization or None,
        "email": info.email or None,
        "phone": info.phone or None,
        "created_at": record.date,
        "score": record.score,
        "max_score": record.max_score,
        "classification": record.classification,
        "percentage": record.percentage,
        "detailed_answers": {k: list(v) for k, v in record.detailed_answers.items()},
        "rubric_snapshot": snapshot,
        "rubric_version": record.rubric_version,
    }


def row_to_record(row: AssessmentRecordORM) -> AssessmentRecord:
    snapshot = (
        RubricDocument.model_validate(row.rubric_snapshot).to_rubric()
        if row.rubric_snapshot is not None
        else None
    )
    return AssessmentRecord(
        id=row.id,
        project_info=ProjectInfo(
            user_name=row.user_name,
            project_name=row.project_name,
            organization=row.organization or "",
            email=row.email or "",
            phone=row.phone or "",
        ),
        date=as_utc(row.created_at),
        score=row.score,
        max_score=row.max_score,
        classification=row.classification,
        percentage=row.percentage,
        detailed_answers=MappingProxyType(
            {k: tuple(v) for k, v in (row.detailed_answers or {}).items()}
        ),
        rubric_snapshot=snapshot,
        rubric_version=row.rubric_version,
    )


class RecordRepo(GenericBaseRepository[AssessmentRecordORM]):
    model = AssessmentRecordORM

    def __init__(self, session: Session):
        super().__init__(session)

    # -------- Read --------

    @log_op("record.find")
    def find(self, record_id: str) -> AssessmentRecord | None:
        row = self.get(record_id)
        return row_to_record(row) if row is not None else None

    @log_op("record.get_required")
    def get_required(self, record_id: str) -> AssessmentRecord:
        row = self.get(record_id)
        if row is None:
            raise RecordNotFoundError(record_id)
        return row_to_record(row)

    @log_op("record.list")
    def list_records(
        self, user_name: str | None = None, limit: int | None = None, offset: int | None = None
    ) -> builtins.list[AssessmentRecord]:
        """History newest first, optionally for one assessor."""
        filters = [self.model.user_name == user_name] if user_name else []
        rows = self.list(
            *filters,
            order_by=[self.model.created_at.desc(), self.model.id.desc()],
            limit=limit,
            offset=offset,
        )
        return [row_to_record(r) for r in rows]

    # -------- Write --------

    @log_op("record.add")
    def add(self, record: AssessmentRecord) -> AssessmentRecord:
        self.create(**record_to_row_fields(record))
        return record

    @log_op("record.remove")
    def remove(self, record_id: str) -> None:
        row = self.get(record_id)
        if row is None:
            raise RecordNotFoundError(record_id)
        self.delete(row)

    @log_op("record.remove_all")
    def remove_all(self, user_name: str | None = None) -> int:
        filters = [self.model.user_name == user_name] if user_name else []
        return self.delete_where(*filters)
