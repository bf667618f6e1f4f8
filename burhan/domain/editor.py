"""
Structural edits of a rubric.

Every operation takes a rubric and returns a new one; inputs are never
mutated. Question identity is the ``id``: moving a question changes only its
position, so answers keyed by id stay attached to it.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Collection, Sequence
from dataclasses import replace

from .errors import (
    DomainNotFoundError,
    MultipleValidationError,
    QuestionNotFoundError,
    ValidationError,
)
from .models import LEVEL_COUNT, Domain, Question, Rubric

MAX_WEIGHT = 5.0
DEFAULT_WEIGHT = 1.0
DEFAULT_DOMAIN_TITLE = "مسار تقييم جديد"
DEFAULT_QUESTION_TEXT = "نص المعيار التقني الجديد هنا..."
DEFAULT_LEVELS: tuple[str, ...] = (
    "وصف المستوى 1: (ضعيف)",
    "وصف المستوى 2: (تأسيسي)",
    "وصف المستوى 3: (مستقر)",
    "وصف المستوى 4: (متقدم)",
    "وصف المستوى 5: (رائد)",
)


def _fresh_id(prefix: str, existing: Collection[str]) -> str:
    while True:
        candidate = f"{prefix}_{uuid.uuid4().hex[:12]}"
        if candidate not in existing:
            return candidate


def check_weight(weight: object, field: str = "weight") -> float:
    """Accept a weight in (0, 5]; anything else raises ValidationError."""
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        raise ValidationError(field, "must be a number", weight)
    value = float(weight)
    if math.isnan(value) or value <= 0:
        raise ValidationError(field, "must be greater than 0", weight)
    if value > MAX_WEIGHT:
        raise ValidationError(field, f"must not exceed {MAX_WEIGHT}", weight)
    return value


def check_levels(levels: Sequence[str], field: str = "levels") -> tuple[str, ...]:
    if isinstance(levels, str) or len(levels) != LEVEL_COUNT:
        raise ValidationError(field, f"exactly {LEVEL_COUNT} level descriptions are required", levels)
    return tuple(str(level) for level in levels)


def _domain_at(rubric: Rubric, index: int) -> Domain:
    if not 0 <= index < len(rubric.domains):
        raise DomainNotFoundError(index)
    return rubric.domains[index]


def _question_at(domain: Domain, index: int) -> Question:
    if not 0 <= index < len(domain.questions):
        raise QuestionNotFoundError(index, domain.key)
    return domain.questions[index]


def _with_domain(rubric: Rubric, index: int, domain: Domain) -> Rubric:
    domains = list(rubric.domains)
    domains[index] = domain
    return replace(rubric, domains=tuple(domains))


def _with_question(rubric: Rubric, domain_index: int, question_index: int, question: Question) -> Rubric:
    domain = _domain_at(rubric, domain_index)
    questions = list(domain.questions)
    questions[question_index] = question
    return _with_domain(rubric, domain_index, replace(domain, questions=tuple(questions)))


def _move(items: tuple, from_index: int, to_index: int) -> tuple:
    moved = list(items)
    item = moved.pop(from_index)
    moved.insert(to_index, item)
    return tuple(moved)


# ---------- Domains ----------


def add_domain(rubric: Rubric, title: str = DEFAULT_DOMAIN_TITLE) -> Rubric:
    key = _fresh_id("domain", {d.key for d in rubric.domains})
    return replace(rubric, domains=rubric.domains + (Domain(key=key, title=title),))


def remove_domain(rubric: Rubric, index: int) -> Rubric:
    _domain_at(rubric, index)
    return replace(rubric, domains=rubric.domains[:index] + rubric.domains[index + 1 :])


def update_domain_title(rubric: Rubric, index: int, title: str) -> Rubric:
    domain = _domain_at(rubric, index)
    return _with_domain(rubric, index, replace(domain, title=title))


def move_domain(rubric: Rubric, from_index: int, to_index: int) -> Rubric:
    """Reorder domains; a target outside the list leaves the rubric unchanged."""
    _domain_at(rubric, from_index)
    if not 0 <= to_index < len(rubric.domains) or to_index == from_index:
        return rubric
    return replace(rubric, domains=_move(rubric.domains, from_index, to_index))


# ---------- Questions ----------


def add_question(
    rubric: Rubric,
    domain_index: int,
    text: str = DEFAULT_QUESTION_TEXT,
    weight: float = DEFAULT_WEIGHT,
    levels: Sequence[str] = DEFAULT_LEVELS,
) -> Rubric:
    domain = _domain_at(rubric, domain_index)
    question = Question(
        id=_fresh_id("q_custom", set(rubric.question_ids())),
        text=text,
        weight=check_weight(weight),
        levels=check_levels(levels),
    )
    return _with_domain(rubric, domain_index, replace(domain, questions=domain.questions + (question,)))


def remove_question(rubric: Rubric, domain_index: int, question_index: int) -> Rubric:
    domain = _domain_at(rubric, domain_index)
    _question_at(domain, question_index)
    questions = domain.questions[:question_index] + domain.questions[question_index + 1 :]
    return _with_domain(rubric, domain_index, replace(domain, questions=questions))


def move_question(rubric: Rubric, domain_index: int, from_index: int, to_index: int) -> Rubric:
    """Splice a question to a new position; a target outside the domain is a no-op."""
    domain = _domain_at(rubric, domain_index)
    _question_at(domain, from_index)
    if not 0 <= to_index < len(domain.questions) or to_index == from_index:
        return rubric
    return _with_domain(
        rubric, domain_index, replace(domain, questions=_move(domain.questions, from_index, to_index))
    )


def update_question_text(rubric: Rubric, domain_index: int, question_index: int, text: str) -> Rubric:
    question = _question_at(_domain_at(rubric, domain_index), question_index)
    return _with_question(rubric, domain_index, question_index, replace(question, text=text))


def update_question_weight(
    rubric: Rubric, domain_index: int, question_index: int, weight: float
) -> Rubric:
    question = _question_at(_domain_at(rubric, domain_index), question_index)
    return _with_question(
        rubric, domain_index, question_index, replace(question, weight=check_weight(weight))
    )


def update_question_level(
    rubric: Rubric, domain_index: int, question_index: int, level_index: int, text: str
) -> Rubric:
    question = _question_at(_domain_at(rubric, domain_index), question_index)
    if not 0 <= level_index < LEVEL_COUNT:
        raise ValidationError("level_index", f"must be between 0 and {LEVEL_COUNT - 1}", level_index)
    levels = list(question.levels)
    levels[level_index] = text
    return _with_question(rubric, domain_index, question_index, replace(question, levels=tuple(levels)))


# ---------- Whole rubric ----------


def validate_rubric(rubric: Rubric) -> Rubric:
    """
    Check every structural invariant and report all violations at once.

    Raises:
        ValidationError: exactly one problem was found
        MultipleValidationError: several problems were found
    """
    errors: list[ValidationError] = []
    seen_keys: set[str] = set()
    seen_ids: set[str] = set()

    for d_index, domain in enumerate(rubric.domains):
        if not domain.key:
            errors.append(ValidationError(f"domains[{d_index}].key", "must not be empty"))
        elif domain.key in seen_keys:
            errors.append(ValidationError(f"domains[{d_index}].key", "duplicate domain key", domain.key))
        seen_keys.add(domain.key)

        for q_index, question in enumerate(domain.questions):
            where = f"domains[{d_index}].questions[{q_index}]"
            if not question.id:
                errors.append(ValidationError(f"{where}.id", "must not be empty"))
            elif question.id in seen_ids:
                errors.append(ValidationError(f"{where}.id", "duplicate question id", question.id))
            seen_ids.add(question.id)
            try:
                check_weight(question.weight, f"{where}.weight")
            except ValidationError as exc:
                errors.append(exc)
            try:
                check_levels(question.levels, f"{where}.levels")
            except ValidationError as exc:
                errors.append(exc)

    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise MultipleValidationError(errors)
    return rubric
