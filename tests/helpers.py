from __future__ import annotations

from collections.abc import Sequence
from types import MappingProxyType

from burhan.domain.models import Domain, ProjectInfo, Question, Rubric

LEVELS = ("L1", "L2", "L3", "L4", "L5")


def make_domain(key: str, weights: Sequence[float], recommendations: dict[str, str] | None = None) -> Domain:
    return Domain(
        key=key,
        title=f"Domain {key}",
        questions=tuple(
            Question(id=f"{key}_q{i}", text=f"Question {i} of {key}", weight=w, levels=LEVELS)
            for i, w in enumerate(weights, start=1)
        ),
        recommendations=MappingProxyType(dict(recommendations or {})),
    )


def make_rubric(layout: dict[str, Sequence[float]]) -> Rubric:
    """``{"gov": [1.0, 2.0]}`` builds one domain with two questions of those weights."""
    return Rubric(domains=tuple(make_domain(key, weights) for key, weights in layout.items()))


def full_answers(rubric: Rubric, value: int = 5) -> dict[str, list[int]]:
    return {d.key: [value] * len(d.questions) for d in rubric}


def sample_project_info(**overrides: str) -> ProjectInfo:
    fields = {
        "user_name": "Sara Al-Harbi",
        "project_name": "Core Banking Migration",
        "organization": "Riyadh Digital",
        "email": "sara@example.com",
        "phone": "+966501234567",
    }
    fields.update(overrides)
    return ProjectInfo(**fields)
