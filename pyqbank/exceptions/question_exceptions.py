"""
Custom exception classes for the question store.
"""
from typing import Optional, Dict, Any


class PYQException(Exception):
    """Base exception class for question bank errors."""

    def __init__(self, message: str, error_code: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class QuestionValidationError(PYQException):
    """Exception raised when a write violates a field rule."""

    def __init__(self, errors: Dict[str, str], message: str = "Validation failed"):
        self.errors = dict(errors)

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"errors": self.errors}
        )


class QuestionNotFoundError(PYQException):
    """Exception raised when a question id does not resolve to a visible record."""

    def __init__(self, question_id: str):
        self.question_id = question_id

        super().__init__(
            message=f"Question not found: {question_id}",
            error_code="QUESTION_NOT_FOUND",
            details={"question_id": question_id}
        )


class QuestionConflictError(PYQException):
    """Exception raised when a write collides with a uniqueness constraint."""

    def __init__(
        self,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint_name: Optional[str] = None,
        additional_context: Optional[str] = None
    ):
        self.field = field
        self.value = value
        self.constraint_name = constraint_name

        details = {
            "field": field,
            "value": value,
            "constraint_name": constraint_name
        }

        message = additional_context or "Duplicate value. This record already exists."
        if field and value is not None:
            message = f"A question with {field} '{value}' already exists"

        super().__init__(
            message=message,
            error_code="CONFLICT",
            details=details
        )
