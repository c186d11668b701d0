"""
Subject service layer for the controlled subject/topic vocabulary.

Subjects are bootstrapped once from a fixed taxonomy and then maintained
by admins. The importer validates rows against the active subject names.
"""

import logging
from typing import Any, Dict, List, Set

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pyqbank.constants.taxonomy import DEFAULT_SUBJECTS
from pyqbank.models.subject import Subject, SubjectTopic

logger = logging.getLogger(__name__)


class SubjectService:
    """Service class for subject operations."""

    @staticmethod
    async def get_active_subjects(db: AsyncSession) -> List[Subject]:
        """Active subjects ordered by display order, then name."""
        result = await db.execute(
            select(Subject)
            .where(Subject.is_active.is_(True))
            .order_by(Subject.display_order, Subject.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_topics_for_subject(subject_name: str, db: AsyncSession) -> List[SubjectTopic]:
        """
        Active topics of an active subject.

        Raises:
            HTTPException: 404 when the subject does not exist or is inactive
        """
        result = await db.execute(
            select(Subject).where(Subject.name == subject_name, Subject.is_active.is_(True))
        )
        subject = result.scalar_one_or_none()
        if not subject:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Subject not found: {subject_name}"
            )
        return [topic for topic in subject.topics if topic.is_active]

    @staticmethod
    async def get_valid_subject_names(db: AsyncSession) -> Set[str]:
        result = await db.execute(select(Subject.name).where(Subject.is_active.is_(True)))
        return set(result.scalars().all())

    @staticmethod
    async def seed_subjects(db: AsyncSession, user_id: str = None) -> Dict[str, Any]:
        """
        Insert the default taxonomy when the subjects table is empty.

        Idempotent: a populated table is left untouched.
        """
        existing_count = (await db.execute(select(func.count(Subject.id)))).scalar_one()
        if existing_count > 0:
            logger.info("Subjects already seeded.")
            return {"message": "Subjects already exist", "count": existing_count}

        subjects = []
        for entry in DEFAULT_SUBJECTS:
            subject = Subject(
                name=entry["name"],
                code=entry["code"],
                description=entry["description"],
                icon=entry["icon"],
                display_order=entry["display_order"],
                created_by=user_id,
                updated_by=user_id,
            )
            subject.topics = [
                SubjectTopic(name=name, code=code, sub_topics=list(sub_topics), display_order=order)
                for order, (name, code, sub_topics) in enumerate(entry["topics"], start=1)
            ]
            subjects.append(subject)

        db.add_all(subjects)
        await db.commit()
        logger.info(f"Seeded {len(subjects)} subjects successfully.")
        return {"message": "Subjects seeded successfully", "count": len(subjects)}
