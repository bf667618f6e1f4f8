"""
Errors raised by the pure domain layer: rubric and answer validation,
incomplete assessments and rubric lookups.

``burhan.infrastructure.exceptions`` re-exports these alongside the
persistence, configuration and export errors.
"""

from __future__ import annotations

from typing import Any


class BurhanError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        """Provide a user-friendly version of the error message."""
        return "An unexpected error occurred. Please try again."

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ValidationError(BurhanError):
    """Raised when input or rubric validation fails."""

    def __init__(
        self, field: str, message: str, value: Any = None, details: dict[str, Any] | None = None
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=f"Validation failed for field '{field}': {message}",
            details=details or {"field": field, "value": value},
            user_message=f"Invalid {field.replace('_', ' ')}: {message}",
        )

    def _get_default_user_message(self) -> str:
        return f"Please check your input for {self.field.replace('_', ' ')} and try again."


class MultipleValidationError(BurhanError):
    """Raised when multiple validation errors occur."""

    def __init__(self, errors: list[ValidationError]):
        self.validation_errors = errors
        messages = [f"{e.field}: {e.message}" for e in errors]
        super().__init__(
            message=f"Multiple validation errors: {'; '.join(messages)}",
            details={
                "errors": [
                    {"field": e.field, "message": e.message, "value": e.value} for e in errors
                ]
            },
            user_message="Please correct the following errors and try again.",
        )

    def _get_default_user_message(self) -> str:
        return f"Please correct {len(self.validation_errors)} validation errors and try again."


class IncompleteAssessmentError(BurhanError):
    """Raised when a record is requested before every question is answered."""

    def __init__(self, answered: int, total: int):
        self.answered = answered
        self.total = total
        super().__init__(
            message=f"Assessment incomplete: {answered} of {total} questions answered",
            details={"answered": answered, "total": total, "missing": total - answered},
            user_message="Please answer every question before submitting the assessment.",
        )


class RatingError(BurhanError):
    """Raised when answer operations fail."""

    def __init__(
        self,
        message: str,
        answer: Any = None,
        details: dict[str, Any] | None = None,
    ):
        self.answer = answer
        super().__init__(
            message=message,
            details=details or {"answer": answer},
            user_message="Answer error occurred. Please check your selection and try again.",
        )


class InvalidAnswerError(RatingError):
    """Raised when an answer value is not None, 0 (N/A) or a rung between 1 and 5."""

    def __init__(self, answer: Any, question_id: str | None = None):
        self.question_id = question_id
        where = f" for question {question_id}" if question_id else ""
        super().__init__(
            message=f"Invalid answer {answer!r}{where}. Must be 1-5, 0 (N/A) or empty",
            answer=answer,
            details={"answer": answer, "question_id": question_id},
        )

    def _get_default_user_message(self) -> str:
        return "Please select a maturity level between 1-5 or mark as N/A."


class RubricError(BurhanError):
    """Raised when rubric lookups or structural operations fail."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            details=details,
            user_message="The assessment questions could not be loaded. Please refresh and try again.",
        )


class DomainNotFoundError(RubricError):
    """Raised when a domain key or index does not exist in the rubric."""

    def __init__(self, domain: str | int):
        self.domain = domain
        super().__init__(message=f"Domain {domain!r} not found", details={"domain": domain})


class QuestionNotFoundError(RubricError):
    """Raised when a question id or index does not exist in a domain."""

    def __init__(self, question: str | int, domain: str | int | None = None):
        self.question = question
        self.domain = domain
        super().__init__(
            message=f"Question {question!r} not found in domain {domain!r}",
            details={"question": question, "domain": domain},
        )
