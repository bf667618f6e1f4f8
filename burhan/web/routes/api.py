from __future__ import annotations

import io
import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from burhan.application import api as app_api
from burhan.domain.models import AssessmentRecord, CompletionReport, Rubric, ScoreReport
from burhan.domain.schemas import AnswersInput, RubricDocument
from burhan.domain.scoring import PlanItem, classify_domain
from burhan.infrastructure.exceptions import (
    BurhanError,
    DatabaseError,
    DomainNotFoundError,
    ExportError,
    IncompleteAssessmentError,
    MultipleValidationError,
    QuestionNotFoundError,
    RecordNotFoundError,
    ValidationError,
)
from burhan.web.dependencies import get_db_session
from burhan.web.schemas import (
    AssessmentDetail,
    AssessmentSubmitRequest,
    AssessmentSummary,
    CompletionOut,
    DeleteResponse,
    DomainScoreOut,
    PlanItemOut,
    PlanResponse,
    RubricResponse,
    ScoreResponse,
)

router = APIRouter(prefix="/api")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _to_http(exc: BurhanError) -> HTTPException:
    if isinstance(exc, (RecordNotFoundError, DomainNotFoundError, QuestionNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.user_message)
    if isinstance(exc, IncompleteAssessmentError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": exc.user_message, **exc.details},
        )
    if isinstance(exc, (ValidationError, MultipleValidationError)):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": exc.user_message, **exc.details},
        )
    if isinstance(exc, DatabaseError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.user_message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.user_message)


def _rubric_response(rubric: Rubric, version: Optional[int]) -> RubricResponse:
    return RubricResponse(
        version=version,
        domain_count=len(rubric),
        question_count=rubric.question_count,
        max_score=rubric.max_score,
        rubric=RubricDocument.from_rubric(rubric),
    )


def _score_response(report: ScoreReport, completion: Optional[CompletionReport] = None) -> ScoreResponse:
    per_domain = []
    for domain_score in report.per_domain.values():
        band = classify_domain(domain_score)
        per_domain.append(
            DomainScoreOut(
                key=domain_score.key,
                title=domain_score.title,
                score=domain_score.score,
                level=band.level,
                label=band.label,
            )
        )
    completion_out = None
    if completion is not None:
        completion_out = CompletionOut(
            answered=completion.answered,
            total=completion.total,
            pct=completion.pct,
            missing=completion.missing,
            is_complete=completion.total > 0 and completion.missing == 0,
            per_domain_pct=dict(completion.per_domain_pct),
        )
    return ScoreResponse(
        per_domain=per_domain,
        raw_score=report.raw_score,
        max_score=report.max_score,
        percentage=report.percentage,
        classification=report.classification,
        completion=completion_out,
    )


def _summary(record: AssessmentRecord) -> AssessmentSummary:
    info = record.project_info
    return AssessmentSummary(
        id=record.id,
        date=record.date,
        user_name=info.user_name,
        project_name=info.project_name,
        organization=info.organization,
        score=record.score,
        max_score=record.max_score,
        percentage=record.percentage,
        classification=record.classification,
        rubric_version=record.rubric_version,
    )


def _detail(record: AssessmentRecord) -> AssessmentDetail:
    return AssessmentDetail(
        **_summary(record).model_dump(),
        email=record.project_info.email,
        phone=record.project_info.phone,
        detailed_answers={k: list(v) for k, v in record.detailed_answers.items()},
    )


def _plan_items(items: tuple[PlanItem, ...]) -> list[PlanItemOut]:
    return [
        PlanItemOut(
            domain_key=item.domain_key,
            title=item.title,
            score=item.score,
            level_label=item.level_label,
            tier=item.tier,
            recommendation=item.recommendation,
        )
        for item in items
    ]


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


# ---------- Rubric ----------


@router.get("/rubric", response_model=RubricResponse)
def get_rubric(db: Session = Depends(get_db_session)) -> RubricResponse:
    try:
        rubric, version = app_api.get_active_rubric_version(db)
    except BurhanError as exc:
        raise _to_http(exc) from exc
    return _rubric_response(rubric, version)


@router.put("/rubric", response_model=RubricResponse)
def replace_rubric(
    payload: RubricDocument,
    note: Optional[str] = Query(default=None, max_length=500),
    db: Session = Depends(get_db_session),
) -> RubricResponse:
    try:
        saved = app_api.save_rubric(db, payload.to_rubric(), note=note)
        db.commit()
    except BurhanError as exc:
        db.rollback()
        raise _to_http(exc) from exc
    except Exception:
        db.rollback()
        raise
    return _rubric_response(saved.rubric, saved.version)


@router.delete("/rubric", response_model=RubricResponse)
def reset_rubric(db: Session = Depends(get_db_session)) -> RubricResponse:
    try:
        rubric = app_api.reset_rubric_to_defaults(db)
        db.commit()
    except BurhanError as exc:
        db.rollback()
        raise _to_http(exc) from exc
    except Exception:
        db.rollback()
        raise
    return _rubric_response(rubric, None)


# ---------- Scoring ----------


@router.post("/scores", response_model=ScoreResponse)
def score_answers(payload: AnswersInput, db: Session = Depends(get_db_session)) -> ScoreResponse:
    try:
        rubric = app_api.get_active_rubric(db)
        evaluation = app_api.evaluate(rubric, payload.answers)
    except BurhanError as exc:
        raise _to_http(exc) from exc
    return _score_response(evaluation.score, evaluation.completion)


# ---------- Assessments ----------


@router.post("/assessments", response_model=AssessmentDetail, status_code=status.HTTP_201_CREATED)
def submit_assessment(
    payload: AssessmentSubmitRequest,
    db: Session = Depends(get_db_session),
) -> AssessmentDetail:
    try:
        record = app_api.submit_assessment(db, payload.project_info.model_dump(), payload.answers)
        db.commit()
    except BurhanError as exc:
        db.rollback()
        raise _to_http(exc) from exc
    except Exception:
        db.rollback()
        raise
    return _detail(record)


@router.get("/assessments", response_model=list[AssessmentSummary])
def list_assessments(
    user_name: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    db: Session = Depends(get_db_session),
) -> list[AssessmentSummary]:
    try:
        records = app_api.list_assessments(db, user_name=user_name, limit=limit)
    except BurhanError as exc:
        raise _to_http(exc) from exc
    return [_summary(r) for r in records]


@router.delete("/assessments", response_model=DeleteResponse)
def delete_all_assessments(
    user_name: Optional[str] = None,
    db: Session = Depends(get_db_session),
) -> DeleteResponse:
    try:
        removed = app_api.delete_all_assessments(db, user_name=user_name)
        db.commit()
    except BurhanError as exc:
        db.rollback()
        raise _to_http(exc) from exc
    except Exception:
        db.rollback()
        raise
    return DeleteResponse(deleted=removed)


@router.get("/assessments/exports/json")
def export_assessments_json(
    exported_by: str = Query(default="anonymous", max_length=255),
    user_name: Optional[str] = None,
    db: Session = Depends(get_db_session),
) -> JSONResponse:
    try:
        payload_str = app_api.export_assessments(db, "json", exported_by=exported_by, user_name=user_name)
    except ExportError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.user_message) from exc
    except BurhanError as exc:
        raise _to_http(exc) from exc
    return JSONResponse(content=json.loads(payload_str))


@router.get("/assessments/exports/xlsx")
def export_assessments_xlsx(
    user_name: Optional[str] = None,
    db: Session = Depends(get_db_session),
) -> StreamingResponse:
    try:
        xlsx_bytes = app_api.export_assessments(db, "xlsx", exported_by="", user_name=user_name)
    except ExportError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.user_message) from exc
    except BurhanError as exc:
        raise _to_http(exc) from exc
    stream = io.BytesIO(xlsx_bytes)
    stream.seek(0)
    headers = {"Content-Disposition": "attachment; filename=burhan_assessments.xlsx"}
    return StreamingResponse(stream, media_type=XLSX_MEDIA_TYPE, headers=headers)


@router.get("/assessments/{record_id}", response_model=AssessmentDetail)
def get_assessment(record_id: str, db: Session = Depends(get_db_session)) -> AssessmentDetail:
    try:
        record = app_api.get_assessment(db, record_id)
    except BurhanError as exc:
        raise _to_http(exc) from exc
    return _detail(record)


@router.delete("/assessments/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assessment(record_id: str, db: Session = Depends(get_db_session)) -> Response:
    try:
        app_api.delete_assessment(db, record_id)
        db.commit()
    except BurhanError as exc:
        db.rollback()
        raise _to_http(exc) from exc
    except Exception:
        db.rollback()
        raise
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/assessments/{record_id}/plan", response_model=PlanResponse)
def get_assessment_plan(record_id: str, db: Session = Depends(get_db_session)) -> PlanResponse:
    try:
        report = app_api.assessment_plan(db, record_id)
    except BurhanError as exc:
        raise _to_http(exc) from exc
    return PlanResponse(
        record_id=report.record.id,
        score=_score_response(report.score),
        urgent=_plan_items(report.plan.urgent),
        priority=_plan_items(report.plan.priority),
        strengths=_plan_items(report.plan.strengths),
    )
