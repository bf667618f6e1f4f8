"""
Maturity scoring and classification.

Every function here is pure: the caller passes the rubric snapshot to score
against, and nothing is cached or logged.

- A question's weight maps to a coarse multiplier (1-4) through fixed bands.
- A selected rung ``v`` earns ``v - 1`` points; unanswered and "not
  applicable" (0) both earn 0 points. Completion treats them differently
  (see ``completion.py``).
- A domain scores ``weighted / max * 25`` where ``max`` assumes the top rung
  for every question, so a domain is always within 0..25.
- The overall percentage is the summed domain scores over ``25 * N``.
- One band table classifies both the overall percentage (0..100) and a
  single domain score (0..25).
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from .answers import (
    AnswerSheet,
    PositionalAnswers,
    as_answer_sheet,
    check_answer,
    domain_answer_list,
)
from .models import (
    DOMAIN_MAX_SCORE,
    MAX_POINTS,
    AnswerValue,
    Domain,
    DomainScore,
    Rubric,
    ScoreReport,
)

# (minimum weight, multiplier), checked top-down
WEIGHT_BANDS: tuple[tuple[float, int], ...] = ((1.8, 4), (1.5, 3), (1.2, 2))
DEFAULT_MULTIPLIER = 1

RecommendationTier = Literal["weak", "medium", "advanced"]
NO_RECOMMENDATION = "لا توجد توصيات متاحة لهذا القسم."


@dataclass(frozen=True, slots=True)
class MaturityBand:
    level: int
    label: str
    name: str
    upper_pct: int  # inclusive upper bound, percent of the scale maximum
    tier: RecommendationTier


MATURITY_BANDS: tuple[MaturityBand, ...] = (
    MaturityBand(1, "ضعيف", "Weak", 20, "weak"),
    MaturityBand(2, "تأسيسي", "Foundational", 40, "weak"),
    MaturityBand(3, "مستقر", "Stable", 60, "medium"),
    MaturityBand(4, "متقدم", "Advanced", 80, "medium"),
    MaturityBand(5, "رائد", "Pioneer", 100, "advanced"),
)


def round_half_up(value: float, places: int = 0) -> Decimal:
    """Round like the browser did (half away from zero for positives), not banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    return Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def multiplier_for(weight: object) -> int:
    """
    Map a question weight to its score multiplier.

    Malformed weights (non-numeric, NaN, zero or negative) fall back to the
    lowest multiplier instead of raising.
    """
    try:
        w = float(weight)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_MULTIPLIER
    if math.isnan(w) or w <= 0:
        return DEFAULT_MULTIPLIER
    for minimum, multiplier in WEIGHT_BANDS:
        if w >= minimum:
            return multiplier
    return DEFAULT_MULTIPLIER


def points_for(value: AnswerValue) -> int:
    """Points earned by an answer slot: None and 0 earn nothing, rung v earns v - 1."""
    checked = check_answer(value)
    if checked is None or checked == 0:
        return 0
    return checked - 1


def _domain_score_value(domain: Domain, answers: Sequence[AnswerValue]) -> float:
    weighted_sum = 0
    max_sum = 0
    for question, answer in zip(domain.questions, answers):
        multiplier = multiplier_for(question.weight)
        max_sum += MAX_POINTS * multiplier
        weighted_sum += points_for(answer) * multiplier
    if max_sum <= 0:
        return 0.0
    return weighted_sum / max_sum * DOMAIN_MAX_SCORE


def score_domain(
    domain: Domain, domain_answers: Sequence[AnswerValue] | Mapping[str, AnswerValue] | None
) -> DomainScore:
    """
    Score a single domain on the 0..25 scale, rounded to one decimal.

    ``domain_answers`` is either the positional list for this domain or a
    mapping of question id to answer. Missing slots count as unanswered.
    """
    answers = domain_answer_list(domain, domain_answers)
    score = _domain_score_value(domain, answers)
    return DomainScore(key=domain.key, title=domain.title, score=float(round_half_up(score, 1)))


def score_rubric(rubric: Rubric, answers: AnswerSheet | PositionalAnswers) -> ScoreReport:
    """
    Score every domain and aggregate.

    The raw score is the sum of the rounded domain scores; the percentage is
    that sum over ``25 * N`` rounded to a whole number.
    """
    sheet = as_answer_sheet(rubric, answers)
    per_domain = {domain.key: score_domain(domain, sheet) for domain in rubric}

    raw_score = float(round_half_up(sum(s.score for s in per_domain.values()), 1))
    max_score = rubric.max_score
    percentage = percentage_of(raw_score, max_score)

    return ScoreReport(
        per_domain=per_domain,
        raw_score=raw_score,
        max_score=max_score,
        percentage=percentage,
        classification=classify(percentage),
    )


def percentage_of(raw_score: float, max_score: float) -> int:
    if max_score <= 0:
        return 0
    pct = int(round_half_up(raw_score * 100 / max_score))
    return min(100, max(0, pct))


def band_for(
    value: float, max_value: float = 100, bands: Sequence[MaturityBand] = MATURITY_BANDS
) -> MaturityBand:
    """
    Find the band containing ``value`` on a 0..max_value scale.

    Upper bounds are inclusive: at ``max_value=100`` the cut points are
    20/40/60/80, at ``max_value=25`` they are 5/10/15/20.
    """
    if max_value <= 0:
        raise ValueError(f"max_value must be positive, got {max_value!r}")
    for band in bands:
        # scale the bound rather than the value so 10 of 25 lands exactly on 40%
        if value <= band.upper_pct * max_value / 100:
            return band
    return bands[-1]


def classify(
    value: float, max_value: float = 100, bands: Sequence[MaturityBand] = MATURITY_BANDS
) -> str:
    """Maturity label for a percentage (default) or a domain score with ``max_value=25``."""
    return band_for(value, max_value, bands).label


def classify_domain(score: DomainScore | float) -> MaturityBand:
    value = score.score if isinstance(score, DomainScore) else score
    return band_for(value, DOMAIN_MAX_SCORE)


@dataclass(frozen=True, slots=True)
class PlanItem:
    domain_key: str
    title: str
    score: float
    level_label: str
    tier: RecommendationTier
    recommendation: str


@dataclass(frozen=True, slots=True)
class ImprovementPlan:
    urgent: tuple[PlanItem, ...]  # weak and foundational domains
    priority: tuple[PlanItem, ...]  # stable and advanced domains
    strengths: tuple[PlanItem, ...]  # pioneer domains


def improvement_plan(rubric: Rubric, report: ScoreReport) -> ImprovementPlan:
    """Group domains by their per-domain band, in rubric order."""
    urgent: list[PlanItem] = []
    priority: list[PlanItem] = []
    strengths: list[PlanItem] = []

    for domain in rubric:
        domain_score = report.per_domain.get(domain.key)
        score = domain_score.score if domain_score is not None else 0.0
        band = classify_domain(score)
        item = PlanItem(
            domain_key=domain.key,
            title=domain.title,
            score=score,
            level_label=band.label,
            tier=band.tier,
            recommendation=domain.recommendations.get(band.tier, NO_RECOMMENDATION),
        )
        if band.level <= 2:
            urgent.append(item)
        elif band.level <= 4:
            priority.append(item)
        else:
            strengths.append(item)

    return ImprovementPlan(tuple(urgent), tuple(priority), tuple(strengths))
