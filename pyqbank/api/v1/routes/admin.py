"""
Admin question API routes.

Every endpoint requires a bearer token with the admin role. Unlike the public
routes, admins see drafts, archived and soft-deleted questions.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pyqbank.database import get_db
from pyqbank.schemas.common import ApiResponse
from pyqbank.schemas.questions import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    QuestionCreateRequest,
    QuestionPageResponse,
    QuestionResponse,
    QuestionUpdateRequest
)
from pyqbank.services import question_service
from pyqbank.services.response_helpers import QuestionResponseHelper, success_envelope
from pyqbank.utils.auth import TokenData, require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/v1/admin/questions", tags=["Admin Questions"], response_model=ApiResponse[QuestionPageResponse])
async def list_questions(
    page: int = Query(1),
    limit: int = Query(50),
    status_filter: Optional[str] = Query(None, alias="status", description="draft, published or archived"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    is_verified: Optional[bool] = Query(None, alias="isVerified"),
    subject: Optional[str] = Query(None),
    year: Optional[int] = Query(None),
    exam_type: Optional[str] = Query(None, alias="examType"),
    keyword: Optional[str] = Query(None, description="Substring of the question text"),
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    List every question, newest first.

    ### Query Parameters:
    - **status**, **isActive**, **isVerified** (optional): Moderation filters.
    - **subject**, **year**, **examType** (optional): Classification filters.
    - **keyword** (optional): Case-insensitive substring of the question text.
    - **page**, **limit**: Pagination, clamped like the public search.
    """
    result = await question_service.list_questions_admin(
        db,
        page=page,
        limit=limit,
        status=status_filter,
        is_active=is_active,
        is_verified=is_verified,
        subject=subject,
        year=year,
        exam_type=exam_type,
        keyword=keyword,
    )
    return success_envelope("Questions retrieved successfully", QuestionResponseHelper.build_page(result))


@router.post(
    "/v1/admin/questions",
    tags=["Admin Questions"],
    response_model=ApiResponse[QuestionResponse],
    status_code=status.HTTP_201_CREATED
)
async def create_question(
    question_data: QuestionCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    Create a question.

    ### Request Body (application/json):
    ```json
    {
        "year": 2023,
        "examType": "prelims",
        "examName": "UPSC CSE",
        "subject": "Polity",
        "questionText": "Which Article of the Constitution deals with the Right to Equality?",
        "options": {"A": "Article 12", "B": "Article 14", "C": "Article 19", "D": "Article 21"},
        "correctAnswer": "B"
    }
    ```

    ### Error Responses:
    - **400 Bad Request**: `{"success": false, "message": "Validation failed", "errors": {"options": "..."}}`
    - **409 Conflict**: A question with the same questionId already exists.
    """
    question = await question_service.create_question(question_data.to_store_dict(), db, current_user.sub)
    await db.commit()
    logger.info(f"Question {question.question_id} created by {current_user.sub}")
    return success_envelope(
        "Question created successfully", QuestionResponseHelper.build_response_data(question)
    )


@router.get(
    "/v1/admin/questions/without-answers",
    tags=["Admin Questions"],
    response_model=ApiResponse[QuestionPageResponse]
)
async def list_questions_without_answers(
    page: int = Query(1),
    limit: int = Query(50),
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """Public questions that still have no explanation."""
    result = await question_service.get_questions_without_answers(db, page=page, limit=limit)
    return success_envelope("Questions retrieved successfully", QuestionResponseHelper.build_page(result))


@router.post(
    "/v1/admin/questions/bulk-delete",
    tags=["Admin Questions"],
    response_model=ApiResponse[BulkDeleteResponse]
)
async def bulk_delete_questions(
    request: BulkDeleteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """Soft delete several questions by questionId. Already inactive ones are not counted."""
    modified = await question_service.bulk_soft_delete(request.ids, db, current_user.sub)
    await db.commit()
    return success_envelope(f"{modified} questions deleted", {"modified_count": modified})


@router.get(
    "/v1/admin/questions/{question_id}",
    tags=["Admin Questions"],
    response_model=ApiResponse[QuestionResponse]
)
async def get_question(
    question_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    question = await question_service.get_admin_question(question_id, db)
    return success_envelope(
        "Question retrieved successfully", QuestionResponseHelper.build_response_data(question)
    )


@router.put(
    "/v1/admin/questions/{question_id}",
    tags=["Admin Questions"],
    response_model=ApiResponse[QuestionResponse]
)
async def update_question(
    question_id: str,
    question_data: QuestionUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    Partially update a question. Only the fields present in the body change.

    ### Error Responses:
    - **400 Bad Request**: Unknown field, or an attempt to set questionId,
      createdBy, searchableText, hasAnswer or any counter.
    - **404 Not Found**: Unknown questionId.
    """
    question = await question_service.update_question(
        question_id, question_data.to_store_dict(exclude_unset=True), db, current_user.sub
    )
    await db.commit()
    return success_envelope(
        "Question updated successfully", QuestionResponseHelper.build_response_data(question)
    )


@router.delete("/v1/admin/questions/{question_id}", tags=["Admin Questions"], response_model=ApiResponse[dict])
async def delete_question(
    question_id: str,
    permanent: bool = Query(False, description="Physically delete instead of deactivating"),
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    Delete a question.

    By default the question is only deactivated and disappears from public
    reads. With `?permanent=true` the row is removed.
    """
    if permanent:
        await question_service.hard_delete_question(question_id, db, current_user.sub)
        await db.commit()
        return success_envelope("Question permanently deleted")

    await question_service.soft_delete_question(question_id, db, current_user.sub)
    await db.commit()
    return success_envelope("Question deleted successfully")


@router.patch(
    "/v1/admin/questions/{question_id}/verify",
    tags=["Admin Questions"],
    response_model=ApiResponse[QuestionResponse]
)
async def toggle_verification(
    question_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """Flip the verified flag. Verifying records who verified it and when."""
    question = await question_service.toggle_verification(question_id, db, current_user.sub)
    await db.commit()
    message = "Question verified" if question.is_verified else "Question unverified"
    return success_envelope(message, QuestionResponseHelper.build_response_data(question))


@router.patch(
    "/v1/admin/questions/{question_id}/archive",
    tags=["Admin Questions"],
    response_model=ApiResponse[QuestionResponse]
)
async def archive_question(
    question_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    question = await question_service.archive_question(question_id, db, current_user.sub)
    await db.commit()
    return success_envelope("Question archived", QuestionResponseHelper.build_response_data(question))


@router.post(
    "/v1/admin/questions/{question_id}/duplicate",
    tags=["Admin Questions"],
    response_model=ApiResponse[QuestionResponse],
    status_code=status.HTTP_201_CREATED
)
async def duplicate_question(
    question_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """Copy a question's content under a new questionId, unverified and with zeroed counters."""
    copy = await question_service.duplicate_question(question_id, db, current_user.sub)
    await db.commit()
    return success_envelope("Question duplicated", QuestionResponseHelper.build_response_data(copy))
