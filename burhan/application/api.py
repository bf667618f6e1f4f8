"""
Application API layer with error handling, validation and logging.

This module composes the pure domain functions with the repositories. Every
function takes an open SQLAlchemy session (normally from ``UnitOfWork.begin()``
or the web dependency) and never commits on its own.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Literal

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..domain.answers import AnswerSheet, PositionalAnswers, as_answer_sheet
from ..domain.completion import completion
from ..domain.editor import validate_rubric
from ..domain.models import (
    AnswerValue,
    AssessmentRecord,
    CompletionReport,
    ProjectInfo,
    Rubric,
    ScoreReport,
)
from ..domain.records import build_record, rescore_record
from ..domain.schemas import ProjectInfoInput, load_rubric_file, validate_input
from ..domain.scoring import ImprovementPlan, improvement_plan, score_rubric
from ..infrastructure.config import get_settings
from ..infrastructure.exceptions import (
    BurhanError,
    ConfigurationError,
    ExportError,
    MultipleValidationError,
    RubricError,
    ValidationError,
    log_error_details,
)
from ..infrastructure.logging import get_logger, log_operation, set_context
from ..infrastructure.repositories import RecordRepo, RubricRepo, RubricVersion
from ..utils.exports import make_json_export_payload, make_xlsx_export_bytes

logger = get_logger(__name__)

DEFAULT_RUBRIC_PATH = Path(__file__).resolve().parent.parent / "source_data" / "default_rubric.json"

ExportFormat = Literal["json", "xlsx"]


# ---------- Rubric ----------


@log_operation("load_default_rubric")
def load_default_rubric(path: str | Path | None = None) -> Rubric:
    """
    Load the built-in rubric, or the file configured with ``APP_RUBRIC_PATH``.

    Raises:
        ConfigurationError: If the rubric file cannot be read
        RubricError: If the file is not a valid rubric document
    """
    source = Path(path or get_settings().app.rubric_path or DEFAULT_RUBRIC_PATH).expanduser()
    try:
        rubric = load_rubric_file(source)
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read rubric file {source}: {e}", config_key="APP_RUBRIC_PATH"
        ) from e
    except PydanticValidationError as e:
        raise RubricError(
            f"Rubric file {source} is not a valid rubric document",
            details={"path": str(source), "errors": e.errors(include_url=False)},
        ) from e

    logger.info(f"Loaded rubric with {len(rubric)} domains and {rubric.question_count} questions")
    return validate_rubric(rubric)


def get_active_rubric_version(session: Session) -> tuple[Rubric, int | None]:
    """The live rubric and its stored version; version is None while the defaults apply."""
    latest = RubricRepo(session).latest()
    if latest is None:
        return load_default_rubric(), None
    return latest.rubric, latest.version


@log_operation("get_active_rubric")
def get_active_rubric(session: Session) -> Rubric:
    rubric, _ = get_active_rubric_version(session)
    return rubric


@log_operation("save_rubric")
def save_rubric(session: Session, rubric: Rubric, note: str | None = None) -> RubricVersion:
    """
    Validate and store ``rubric`` as the new live version.

    Raises:
        ValidationError / MultipleValidationError: If the rubric breaks an invariant
    """
    validate_rubric(rubric)
    version = RubricRepo(session).save(rubric, note=note)
    set_context(rubric_version=version.version)
    logger.info(f"Saved rubric version {version.version}")
    return version


@log_operation("reset_rubric_to_defaults")
def reset_rubric_to_defaults(session: Session) -> Rubric:
    """
    Drop every stored rubric version so the defaults are live again.

    Stored assessments keep their own rubric snapshots and are not touched.
    """
    removed = RubricRepo(session).clear()
    logger.info(f"Removed {removed} stored rubric versions")
    return load_default_rubric()


class RubricEditSession:
    """
    Admin working copy of the rubric.

    Editor operations are applied to the working copy only; nothing reaches
    the database until ``save``.

    Example:
        >>> edit = RubricEditSession(get_active_rubric(session))
        >>> edit.apply(add_domain, "حوكمة البيانات")
        >>> edit.dirty
        True
        >>> edit.save(session)
    """

    def __init__(self, rubric: Rubric):
        self.saved = rubric
        self.working = rubric
        self._dirty = False

    @property
    def dirty(self) -> bool:
        return self._dirty

    def apply(self, operation: Callable[..., Rubric], *args: Any, **kwargs: Any) -> Rubric:
        updated = operation(self.working, *args, **kwargs)
        if updated is not self.working:
            self.working = updated
            self._dirty = True
        return self.working

    def save(self, session: Session, note: str | None = None) -> RubricVersion:
        version = save_rubric(session, self.working, note=note)
        self.saved = self.working
        self._dirty = False
        return version

    def discard(self) -> Rubric:
        self.working = self.saved
        self._dirty = False
        return self.working


# ---------- Assessment ----------


@dataclass(frozen=True, slots=True)
class Evaluation:
    score: ScoreReport
    completion: CompletionReport


def start_assessment(rubric: Rubric) -> AnswerSheet:
    """A new session: every question of ``rubric`` unanswered."""
    return AnswerSheet.empty(rubric)


def record_answer(
    rubric: Rubric, sheet: AnswerSheet, question_id: str, value: AnswerValue
) -> AnswerSheet:
    return sheet.with_answer(rubric, question_id, value)


def evaluate(rubric: Rubric, answers: AnswerSheet | PositionalAnswers) -> Evaluation:
    """Live score and completion for a session in progress."""
    sheet = as_answer_sheet(rubric, answers)
    return Evaluation(score=score_rubric(rubric, sheet), completion=completion(rubric, sheet))


def _validated_project_info(project_info: ProjectInfo | Mapping[str, Any]) -> ProjectInfo:
    data = asdict(project_info) if isinstance(project_info, ProjectInfo) else dict(project_info)
    validation_result = validate_input(ProjectInfoInput, data)
    if not validation_result.success:
        errors = [ValidationError(e.field, e.message, e.value) for e in validation_result.errors]
        logger.warning(
            "Project info validation failed: "
            + "; ".join(f"{e.field}: {e.message}" for e in validation_result.errors)
        )
        if len(errors) == 1:
            raise errors[0]
        raise MultipleValidationError(errors)
    return ProjectInfo(**validation_result.data)


@log_operation("submit_assessment")
def submit_assessment(
    session: Session,
    project_info: ProjectInfo | Mapping[str, Any],
    answers: AnswerSheet | PositionalAnswers,
    rubric: Rubric | None = None,
) -> AssessmentRecord:
    """
    Validate, score and store a finished assessment.

    Args:
        session: Database session
        project_info: Assessor and project details; every field is required
        answers: Answer sheet or positional answers per domain key
        rubric: Rubric the answers were given against (the live one if None)

    Raises:
        ValidationError: If project details are invalid
        IncompleteAssessmentError: If any question is still unanswered
    """
    info = _validated_project_info(project_info)
    version: int | None = None
    if rubric is None:
        rubric, version = get_active_rubric_version(session)

    record = build_record(info, rubric, answers, rubric_version=version)
    set_context(user_name=info.user_name, record_id=record.id)

    try:
        RecordRepo(session).add(record)
    except BurhanError:
        raise
    except Exception as e:
        error_details = log_error_details(e, {"record_id": record.id})
        logger.error("Failed to store assessment record", extra=error_details)
        raise BurhanError(
            "Failed to store assessment record",
            details=error_details,
            user_message="Unable to save the assessment. Please try again.",
        ) from e

    logger.info(
        f"Stored assessment {record.id}: {record.score}/{record.max_score} "
        f"({record.percentage}%, {record.classification})"
    )
    return record


# ---------- History ----------


@log_operation("list_assessments")
def list_assessments(
    session: Session, user_name: str | None = None, limit: int | None = None
) -> list[AssessmentRecord]:
    return RecordRepo(session).list_records(user_name=user_name, limit=limit)


@log_operation("get_assessment")
def get_assessment(session: Session, record_id: str) -> AssessmentRecord:
    """Raises RecordNotFoundError for an unknown id."""
    set_context(record_id=record_id)
    return RecordRepo(session).get_required(record_id)


@log_operation("delete_assessment")
def delete_assessment(session: Session, record_id: str) -> None:
    set_context(record_id=record_id)
    RecordRepo(session).remove(record_id)
    logger.info(f"Deleted assessment {record_id}")


@log_operation("delete_all_assessments")
def delete_all_assessments(session: Session, user_name: str | None = None) -> int:
    removed = RecordRepo(session).remove_all(user_name=user_name)
    logger.info(f"Deleted {removed} assessments")
    return removed


@dataclass(frozen=True, slots=True)
class AssessmentReport:
    record: AssessmentRecord
    score: ScoreReport
    plan: ImprovementPlan


@log_operation("assessment_plan")
def assessment_plan(session: Session, record_id: str) -> AssessmentReport:
    """
    Rescore a stored assessment and build its improvement plan.

    The record's own rubric snapshot is used; the live rubric only stands in
    for records stored without one.
    """
    record = get_assessment(session, record_id)
    rubric = record.rubric_snapshot
    if rubric is None:
        rubric = get_active_rubric(session)
    report = rescore_record(record, rubric)
    return AssessmentReport(record=record, score=report, plan=improvement_plan(rubric, report))


@log_operation("export_assessments")
def export_assessments(
    session: Session,
    export_format: ExportFormat,
    exported_by: str,
    user_name: str | None = None,
) -> str | bytes:
    """
    Export stored assessments as a JSON document or an XLSX workbook.

    Raises:
        ExportError: If exports are disabled or the format is unknown
    """
    if not get_settings().app.enable_data_export:
        raise ExportError("Data export is disabled", export_format=export_format)

    records = list_assessments(session, user_name=user_name)
    if export_format == "json":
        return make_json_export_payload(records, exported_by=exported_by)
    if export_format == "xlsx":
        return make_xlsx_export_bytes(records)
    raise ExportError(f"Unsupported export format: {export_format}", export_format=export_format)
