"""
Subject taxonomy API routes.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pyqbank.database import get_db
from pyqbank.schemas.common import ApiResponse
from pyqbank.schemas.subjects import SeedResponse, SubjectResponse, TopicResponse
from pyqbank.services.subject_service import SubjectService
from pyqbank.services.response_helpers import success_envelope
from pyqbank.utils.auth import TokenData, require_admin

router = APIRouter()


@router.get("/v1/subjects", tags=["Subjects"], response_model=ApiResponse[List[SubjectResponse]])
async def list_subjects(db: AsyncSession = Depends(get_db)):
    """Active subjects with their topics, in display order."""
    subjects = await SubjectService.get_active_subjects(db)
    return success_envelope(
        "Subjects retrieved successfully",
        [SubjectResponse.model_validate(subject) for subject in subjects]
    )


@router.get("/v1/subjects/{subject_name}/topics", tags=["Subjects"], response_model=ApiResponse[List[TopicResponse]])
async def list_topics(subject_name: str, db: AsyncSession = Depends(get_db)):
    """
    Active topics of one subject.

    ### Error Responses:
    - **404 Not Found**: Unknown or inactive subject.
    """
    topics = await SubjectService.get_topics_for_subject(subject_name, db)
    return success_envelope(
        "Topics retrieved successfully",
        [TopicResponse.model_validate(topic) for topic in topics]
    )


@router.post("/v1/subjects/seed", tags=["Subjects"], response_model=ApiResponse[SeedResponse])
async def seed_subjects(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    Load the default subject taxonomy.

    Does nothing when subjects already exist, so it is safe to call again.
    """
    result = await SubjectService.seed_subjects(db, current_user.sub)
    return success_envelope(result["message"], result)
