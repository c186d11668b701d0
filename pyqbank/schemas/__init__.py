"""
Pydantic schemas for the application.

This module exports the request/response schemas used by the API routes.
"""

from .common import ApiResponse, CamelModel
from .questions import (
    QuestionCreateRequest,
    QuestionUpdateRequest,
    QuestionResponse,
    QuestionPageResponse,
    FilterOptionsResponse,
    StatisticsResponse
)
from .upload import (
    ImportValidationResponse,
    ImportResultResponse,
    ImportConfirmRequest
)
from .subjects import SubjectResponse, TopicResponse, SeedResponse

__all__ = [
    "ApiResponse",
    "CamelModel",
    "QuestionCreateRequest",
    "QuestionUpdateRequest",
    "QuestionResponse",
    "QuestionPageResponse",
    "FilterOptionsResponse",
    "StatisticsResponse",
    "ImportValidationResponse",
    "ImportResultResponse",
    "ImportConfirmRequest",
    "SubjectResponse",
    "TopicResponse",
    "SeedResponse"
]
