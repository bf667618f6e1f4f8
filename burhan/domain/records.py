from __future__ import annotations

import uuid
from datetime import datetime, timezone
from types import MappingProxyType

from .errors import RubricError
from .answers import AnswerSheet, PositionalAnswers, as_answer_sheet
from .completion import require_complete
from .models import AssessmentRecord, ProjectInfo, Rubric, ScoreReport
from .scoring import score_rubric


def build_record(
    project_info: ProjectInfo,
    rubric: Rubric,
    answers: AnswerSheet | PositionalAnswers,
    *,
    record_id: str | None = None,
    now: datetime | None = None,
    rubric_version: int | None = None,
) -> AssessmentRecord:
    """
    Assemble the immutable record of a finished assessment.

    Raises IncompleteAssessmentError while any question is unanswered. Apart
    from id and timestamp generation this performs no I/O; storing the record
    is up to the caller.
    """
    sheet = as_answer_sheet(rubric, answers)
    require_complete(rubric, sheet)
    report = score_rubric(rubric, sheet)

    positional = {key: tuple(values) for key, values in sheet.to_positional(rubric).items()}

    return AssessmentRecord(
        id=record_id or str(uuid.uuid4()),
        project_info=project_info,
        date=now or datetime.now(timezone.utc),
        score=report.raw_score,
        max_score=report.max_score,
        classification=report.classification,
        percentage=report.percentage,
        detailed_answers=MappingProxyType(positional),
        rubric_snapshot=rubric,
        rubric_version=rubric_version,
    )


def rescore_record(record: AssessmentRecord, rubric: Rubric | None = None) -> ScoreReport:
    """
    Recompute a stored record's scores.

    The rubric snapshot stored with the record wins; ``rubric`` is only used
    for legacy records saved without one.
    """
    snapshot = record.rubric_snapshot if record.rubric_snapshot is not None else rubric
    if snapshot is None:
        raise RubricError(
            f"Record {record.id} has no rubric snapshot and none was supplied",
            details={"record_id": record.id},
        )
    return score_rubric(snapshot, record.detailed_answers)
