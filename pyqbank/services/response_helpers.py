"""
Response helper functions for building API response data.

Every endpoint answers with the same envelope, {success, message, data?} on
success and {success: false, message, errors?} on failure.
"""

from typing import Any, Dict, Optional

from pyqbank.models.question import Question
from pyqbank.schemas.questions import Pagination, QuestionPageResponse, QuestionResponse


def success_envelope(message: str, data: Any = None) -> Dict[str, Any]:
    response = {"success": True, "message": message or "Success"}
    if data is not None:
        response["data"] = data
    return response


def error_envelope(message: str, errors: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    response = {"success": False, "message": message or "An error occurred"}
    if errors:
        response["errors"] = errors
    return response


class QuestionResponseHelper:
    """Builds response models from Question rows. searchable_text is never exposed."""

    @staticmethod
    def build_response_data(question: Question) -> QuestionResponse:
        return QuestionResponse.model_validate(question)

    @staticmethod
    def build_page(page) -> QuestionPageResponse:
        """Build the {questions, pagination} payload from a SearchPage."""
        return QuestionPageResponse(
            questions=[QuestionResponseHelper.build_response_data(q) for q in page.questions],
            pagination=Pagination(page=page.page, limit=page.limit, total=page.total, pages=page.pages)
        )
