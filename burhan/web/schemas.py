from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from burhan.domain.schemas import AnswerSlot, RubricDocument


class RubricResponse(BaseModel):
    version: Optional[int] = None
    domain_count: int
    question_count: int
    max_score: float
    rubric: RubricDocument


class DomainScoreOut(BaseModel):
    key: str
    title: str
    score: float
    level: int
    label: str


class CompletionOut(BaseModel):
    answered: int
    total: int
    pct: int
    missing: int
    is_complete: bool
    per_domain_pct: dict[str, float]


class ScoreResponse(BaseModel):
    per_domain: list[DomainScoreOut]
    raw_score: float
    max_score: float
    percentage: int
    classification: str
    completion: Optional[CompletionOut] = None


class ProjectInfoPayload(BaseModel):
    # validated field by field in the application layer
    user_name: str = ""
    project_name: str = ""
    organization: str = ""
    email: str = ""
    phone: str = ""


class AssessmentSubmitRequest(BaseModel):
    project_info: ProjectInfoPayload
    answers: dict[str, list[AnswerSlot]]


class AssessmentSummary(BaseModel):
    id: str
    date: datetime
    user_name: str
    project_name: str
    organization: str
    score: float
    max_score: float
    percentage: int
    classification: str
    rubric_version: Optional[int] = None


class AssessmentDetail(AssessmentSummary):
    email: str
    phone: str
    detailed_answers: dict[str, list[Optional[int]]]


class PlanItemOut(BaseModel):
    domain_key: str
    title: str
    score: float
    level_label: str
    tier: Literal["weak", "medium", "advanced"]
    recommendation: str


class PlanResponse(BaseModel):
    record_id: str
    score: ScoreResponse
    urgent: list[PlanItemOut]
    priority: list[PlanItemOut]
    strengths: list[PlanItemOut]


class DeleteResponse(BaseModel):
    deleted: int
