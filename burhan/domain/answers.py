"""
Answers keyed by question id.

Sessions and stored records exchange answers as one positional list per
domain (``{"governance": [3, None, 0]}``). Positions drift when questions are
inserted, removed or reordered, so internally every answer is attached to the
question id it was given for and the positional form is produced only when
serialising against a specific rubric.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from types import MappingProxyType

from .errors import InvalidAnswerError, QuestionNotFoundError
from .models import LEVEL_COUNT, AnswerValue, Domain, Rubric

PositionalAnswers = Mapping[str, Sequence[AnswerValue]]


def check_answer(value: object, question_id: str | None = None) -> AnswerValue:
    """Return ``value`` if it is a legal answer slot, else raise InvalidAnswerError."""
    if value is None:
        return None
    # bool is an int subclass; True must not pass as rung 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAnswerError(value, question_id)
    if not (0 <= value <= LEVEL_COUNT):
        raise InvalidAnswerError(value, question_id)
    return value


def _domain_slots(domain: Domain, domain_answers: object) -> dict[str, AnswerValue]:
    slots: dict[str, AnswerValue] = {}
    if domain_answers is None:
        return slots
    if isinstance(domain_answers, Mapping):
        for question in domain.questions:
            if question.id in domain_answers:
                slots[question.id] = check_answer(domain_answers[question.id], question.id)
        return slots
    for question, value in zip(domain.questions, domain_answers):
        slots[question.id] = check_answer(value, question.id)
    return slots


class AnswerSheet(Mapping[str, AnswerValue]):
    """Immutable mapping of question id to answer slot."""

    __slots__ = ("_answers",)

    def __init__(self, answers: Mapping[str, AnswerValue] | None = None):
        checked = {qid: check_answer(v, qid) for qid, v in (answers or {}).items()}
        self._answers = MappingProxyType(checked)

    def __getitem__(self, question_id: str) -> AnswerValue:
        return self._answers[question_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._answers)

    def __len__(self) -> int:
        return len(self._answers)

    def __repr__(self) -> str:
        return f"AnswerSheet({dict(self._answers)!r})"

    @classmethod
    def empty(cls, rubric: Rubric) -> AnswerSheet:
        """A fresh session: every question unanswered."""
        return cls({qid: None for qid in rubric.question_ids()})

    @classmethod
    def from_positional(cls, rubric: Rubric, answers: PositionalAnswers) -> AnswerSheet:
        """
        Attach positional answers to question ids using ``rubric`` order.

        Missing domains and short arrays leave their questions unanswered;
        slots beyond a domain's question count are ignored.
        """
        slots: dict[str, AnswerValue] = {}
        for domain in rubric:
            slots.update(_domain_slots(domain, answers.get(domain.key)))
        return cls(slots)

    def answer_for(self, question_id: str) -> AnswerValue:
        return self._answers.get(question_id)

    def for_domain(self, domain: Domain) -> list[AnswerValue]:
        return [self._answers.get(q.id) for q in domain.questions]

    def with_answer(self, rubric: Rubric, question_id: str, value: AnswerValue) -> AnswerSheet:
        """Return a copy with one slot replaced; the question must exist in ``rubric``."""
        if question_id not in set(rubric.question_ids()):
            raise QuestionNotFoundError(question_id)
        updated = dict(self._answers)
        updated[question_id] = check_answer(value, question_id)
        return AnswerSheet(updated)

    def to_positional(self, rubric: Rubric) -> dict[str, list[AnswerValue]]:
        return {domain.key: self.for_domain(domain) for domain in rubric}


def as_answer_sheet(rubric: Rubric, answers: AnswerSheet | PositionalAnswers) -> AnswerSheet:
    if isinstance(answers, AnswerSheet):
        return answers
    return AnswerSheet.from_positional(rubric, answers)


def domain_answer_list(domain: Domain, domain_answers: object) -> list[AnswerValue]:
    """Answers of one domain in question order; accepts a sequence or an id mapping."""
    if isinstance(domain_answers, AnswerSheet):
        return domain_answers.for_domain(domain)
    slots = _domain_slots(domain, domain_answers)
    return [slots.get(q.id) for q in domain.questions]
