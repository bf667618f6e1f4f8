from __future__ import annotations

from .errors import IncompleteAssessmentError
from .answers import AnswerSheet, PositionalAnswers, as_answer_sheet
from .models import AnswerValue, CompletionReport, Rubric
from .scoring import round_half_up


def is_answered(value: AnswerValue) -> bool:
    """Not applicable (0) is a final response and counts as answered."""
    return value is not None


def completion(rubric: Rubric, answers: AnswerSheet | PositionalAnswers) -> CompletionReport:
    """
    Count answered questions overall and per domain.

    Walks the rubric in the same order as ``score_rubric`` so progress and
    scores always describe the same answer set.
    """
    sheet = as_answer_sheet(rubric, answers)
    answered = 0
    total = 0
    per_domain_pct: dict[str, float] = {}

    for domain in rubric:
        domain_answered = sum(1 for value in sheet.for_domain(domain) if is_answered(value))
        question_count = len(domain.questions)
        per_domain_pct[domain.key] = (
            domain_answered / question_count * 100 if question_count else 0.0
        )
        answered += domain_answered
        total += question_count

    pct = int(round_half_up(answered / total * 100)) if total else 0
    return CompletionReport(answered=answered, total=total, pct=pct, per_domain_pct=per_domain_pct)


def is_complete(rubric: Rubric, answers: AnswerSheet | PositionalAnswers) -> bool:
    # compare counts, not the rounded percentage: 199 of 200 rounds to 100%
    report = completion(rubric, answers)
    return report.total > 0 and report.answered == report.total


def require_complete(
    rubric: Rubric, answers: AnswerSheet | PositionalAnswers
) -> CompletionReport:
    """Return the completion report, or raise IncompleteAssessmentError if any slot is open."""
    report = completion(rubric, answers)
    if report.total == 0 or report.answered < report.total:
        raise IncompleteAssessmentError(report.answered, report.total)
    return report
