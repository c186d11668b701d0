"""
Public question API routes: search, facets and per-question engagement.

None of these endpoints need a token. Every read is limited to active,
published questions.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pyqbank.database import get_db, get_session_factory
from pyqbank.schemas.common import ApiResponse
from pyqbank.schemas.questions import (
    AttemptRequest,
    AttemptResponse,
    BookmarkRequest,
    BookmarkResponse,
    FilterOptionsResponse,
    QuestionPageResponse,
    QuestionResponse,
    StatisticsResponse
)
from pyqbank.services import facet_service, question_service
from pyqbank.services.response_helpers import QuestionResponseHelper, success_envelope
from pyqbank.services.search_service import SearchEngine, get_search_engine
from pyqbank.services.search_strategies import SearchQuery

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/v1/questions/search", tags=["Questions"], response_model=ApiResponse[QuestionPageResponse])
async def search_questions(
    keyword: Optional[str] = Query(None, description="Free-text search, up to 200 characters"),
    year: Optional[List[int]] = Query(None, description="Exam year; repeat for several"),
    exam_type: Optional[str] = Query(None, alias="examType", description="prelims, mains or optional"),
    subject: Optional[List[str]] = Query(None, description="Subject name; repeat for several"),
    topic: Optional[List[str]] = Query(None, description="Topic name; repeat for several"),
    difficulty: Optional[str] = Query(None, description="easy, medium or hard"),
    has_answer: Optional[bool] = Query(None, alias="hasAnswer"),
    is_verified: Optional[bool] = Query(None, alias="isVerified"),
    page: int = Query(1, description="1-based page; values below 1 are treated as 1"),
    limit: int = Query(50, description="Page size, clamped to 1..100"),
    sort_by: str = Query("year", alias="sortBy", description="year, viewCount or createdAt"),
    sort_order: str = Query("desc", alias="sortOrder", description="asc or desc"),
    db: AsyncSession = Depends(get_db),
    engine: SearchEngine = Depends(get_search_engine)
):
    """
    Search public questions by keyword and filters.

    ### Query Parameters:
    - **keyword** (str, optional): Matched against question text, explanation,
      classification, tags and keywords. Ranked by relevance when the configured
      backend supports it.
    - **year**, **subject**, **topic** (repeatable): Match any of the given values.
    - **examType**, **difficulty**, **hasAnswer**, **isVerified** (optional): Exact filters.
    - **page**, **limit**: Pagination. Out-of-range values are clamped, never rejected.
    - **sortBy**, **sortOrder**: Used when there is no keyword.

    ### Response (application/json):
    - **200 OK**
    ```json
    {
        "success": true,
        "message": "Questions retrieved successfully",
        "data": {
            "questions": [{"questionId": "Q-1700000000000-1a2b3c4d", "year": 2023, "...": "..."}],
            "pagination": {"page": 1, "limit": 50, "total": 1, "pages": 1}
        }
    }
    ```

    ### Error Responses:
    - **503 Service Unavailable**: The search backend is down and no fallback is configured.
    """
    query = SearchQuery.build(
        keyword=keyword,
        years=year,
        exam_type=exam_type,
        subjects=subject,
        topics=topic,
        difficulty=difficulty,
        has_answer=has_answer,
        is_verified=is_verified,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = await engine.search(query, db)
    return success_envelope("Questions retrieved successfully", QuestionResponseHelper.build_page(result))


@router.get("/v1/questions/filters/options", tags=["Questions"], response_model=ApiResponse[FilterOptionsResponse])
async def get_filter_options(db: AsyncSession = Depends(get_db)):
    """
    Values for the search filter dropdowns, taken from the searchable questions.

    Returns distinct years (newest first), exam types, subjects with their
    question counts, and the topics of each subject.
    """
    options = await facet_service.get_filter_options(db)
    return success_envelope("Filter options retrieved successfully", options)


@router.get("/v1/questions/statistics", tags=["Questions"], response_model=ApiResponse[StatisticsResponse])
async def get_statistics(db: AsyncSession = Depends(get_db)):
    """Totals and breakdowns by year, exam type, subject and difficulty."""
    statistics = await facet_service.get_statistics(db)
    return success_envelope("Statistics retrieved successfully", statistics)


@router.get("/v1/questions/random", tags=["Questions"], response_model=ApiResponse[QuestionResponse])
async def get_random_question(
    exam_type: Optional[str] = Query(None, alias="examType"),
    subject: Optional[str] = Query(None),
    difficulty: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """
    One random question matching the optional filters.

    ### Error Responses:
    - **404 Not Found**: No question matches.
    """
    question = await question_service.get_random_question(
        db, exam_type=exam_type, subject=subject, difficulty=difficulty
    )
    return success_envelope(
        "Question retrieved successfully", QuestionResponseHelper.build_response_data(question)
    )


@router.get("/v1/questions/{question_id}", tags=["Questions"], response_model=ApiResponse[QuestionResponse])
async def get_question(
    question_id: str,
    db: AsyncSession = Depends(get_db),
    session_factory=Depends(get_session_factory)
):
    """
    Fetch a single question by its questionId.

    The view counter is incremented in the background after the question is
    loaded; the response does not wait for it and shows the count as read.

    ### Error Responses:
    - **404 Not Found**: Unknown, inactive or unpublished question.
    """
    question = await question_service.get_public_question(question_id, db)
    data = QuestionResponseHelper.build_response_data(question)
    question_service.schedule_view_increment(question_id, session_factory)
    return success_envelope("Question retrieved successfully", data)


@router.post("/v1/questions/{question_id}/attempt", tags=["Questions"], response_model=ApiResponse[AttemptResponse])
async def record_attempt(
    question_id: str,
    attempt: AttemptRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Record one answer attempt.

    ### Request Body (application/json):
    ```json
    {"isCorrect": true}
    ```

    The returned successRate is correct attempts over all attempts, as a
    percentage rounded to two places.
    """
    result = await question_service.record_attempt(question_id, attempt.is_correct, db)
    await db.commit()
    return success_envelope("Attempt recorded", result)


@router.post("/v1/questions/{question_id}/bookmark", tags=["Questions"], response_model=ApiResponse[BookmarkResponse])
async def update_bookmark(
    question_id: str,
    bookmark: BookmarkRequest,
    db: AsyncSession = Depends(get_db)
):
    """Add (`increment: true`) or remove a bookmark. The count never goes below zero."""
    result = await question_service.update_bookmark_count(question_id, bookmark.increment, db)
    await db.commit()
    message = "Bookmark added" if bookmark.increment else "Bookmark removed"
    return success_envelope(message, result)
