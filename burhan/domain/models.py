from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

LEVEL_COUNT = 5  # maturity rungs 1..5
MAX_POINTS = LEVEL_COUNT - 1  # points of the top rung
DOMAIN_MAX_SCORE = 25.0
NOT_APPLICABLE = 0

# Answer slot: None (unanswered), 0 (not applicable) or a rung 1..5
AnswerValue = int | None


@dataclass(frozen=True, slots=True)
class Question:
    id: str
    text: str
    weight: float
    levels: tuple[str, ...]  # exactly LEVEL_COUNT entries


@dataclass(frozen=True, slots=True)
class Domain:
    key: str
    title: str
    questions: tuple[Question, ...] = ()
    # improvement plan text keyed by "weak" / "medium" / "advanced"
    recommendations: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def question_index(self, question_id: str) -> int | None:
        for index, question in enumerate(self.questions):
            if question.id == question_id:
                return index
        return None


@dataclass(frozen=True, slots=True)
class Rubric:
    domains: tuple[Domain, ...] = ()

    def __iter__(self) -> Iterator[Domain]:
        return iter(self.domains)

    def __len__(self) -> int:
        return len(self.domains)

    def domain(self, key: str) -> Domain | None:
        for d in self.domains:
            if d.key == key:
                return d
        return None

    @property
    def question_count(self) -> int:
        return sum(len(d.questions) for d in self.domains)

    @property
    def max_score(self) -> float:
        return DOMAIN_MAX_SCORE * len(self.domains)

    def question_ids(self) -> list[str]:
        return [q.id for d in self.domains for q in d.questions]


@dataclass(frozen=True, slots=True)
class DomainScore:
    key: str
    title: str
    score: float  # 0..25, one decimal


@dataclass(frozen=True, slots=True)
class ScoreReport:
    per_domain: Mapping[str, DomainScore]
    raw_score: float
    max_score: float
    percentage: int
    classification: str


@dataclass(frozen=True, slots=True)
class CompletionReport:
    answered: int
    total: int
    pct: int
    per_domain_pct: Mapping[str, float]

    @property
    def missing(self) -> int:
        return self.total - self.answered


@dataclass(frozen=True, slots=True)
class ProjectInfo:
    user_name: str
    project_name: str
    organization: str = ""
    email: str = ""
    phone: str = ""


@dataclass(frozen=True, slots=True)
class AssessmentRecord:
    id: str
    project_info: ProjectInfo
    date: datetime
    score: float
    max_score: float
    classification: str
    percentage: int
    detailed_answers: Mapping[str, tuple[AnswerValue, ...]]
    rubric_snapshot: Rubric | None = None
    rubric_version: int | None = None
