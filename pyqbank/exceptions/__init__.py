"""
Exception classes for the application.
"""
from .question_exceptions import (
    PYQException,
    QuestionValidationError,
    QuestionNotFoundError,
    QuestionConflictError
)
from .service_exceptions import (
    UpstreamServiceError,
    SearchBackendUnavailableError,
    ImportFileParseError,
    StagedImportNotFoundError
)

__all__ = [
    "PYQException",
    "QuestionValidationError",
    "QuestionNotFoundError",
    "QuestionConflictError",
    "UpstreamServiceError",
    "SearchBackendUnavailableError",
    "ImportFileParseError",
    "StagedImportNotFoundError"
]
