import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from pydantic.alias_generators import to_camel
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pyqbank.exceptions.question_exceptions import QuestionNotFoundError, QuestionValidationError
from pyqbank.models.question import IMMUTABLE_FIELDS, Question, compute_success_rate
from pyqbank.services.search_strategies import SearchPage, SearchQuery, public_predicate
from pyqbank.utils.database_error_handler import DatabaseErrorHandler
from pyqbank.utils.text import escape_like

logger = logging.getLogger(__name__)

# Copied by duplicate_question; identity, provenance and counters start fresh
COPYABLE_FIELDS = (
    "year", "exam_type", "exam_name", "paper_number", "subject", "topic", "sub_topic",
    "question_text", "options", "correct_answer", "explanation",
    "question_images", "explanation_images", "explanation_videos",
    "difficulty", "marks", "negative_marks", "question_number",
    "tags", "keywords", "status", "is_active",
)

IMPORT_SOURCE_PREFIX = "import:"

# Fire-and-forget view updates still in flight
_pending_view_updates: Set[asyncio.Task] = set()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _reject_immutable_fields(data: Dict[str, Any]):
    forbidden = [field for field in data if field in IMMUTABLE_FIELDS]
    if forbidden:
        raise QuestionValidationError(
            {to_camel(field): f"{to_camel(field)} cannot be modified" for field in forbidden}
        )


async def _get_question(question_id: str, db: AsyncSession, public_only: bool = False) -> Question:
    stmt = select(Question).where(Question.question_id == question_id)
    if public_only:
        stmt = stmt.where(public_predicate())
    result = await db.execute(stmt)
    question = result.scalar_one_or_none()
    if not question:
        raise QuestionNotFoundError(question_id)
    return question


async def _flush(db: AsyncSession, operation: str):
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        DatabaseErrorHandler.handle_integrity_error(e, operation)


async def create_question(data: Dict[str, Any], db: AsyncSession, user_id: Optional[str]) -> Question:
    """
    Create a question.

    The model validates every field on construction, so a bad payload is
    rejected before the session is touched.
    """
    _reject_immutable_fields({k: v for k, v in data.items() if k != "question_id"})

    question = Question(**data, created_by=user_id, updated_by=user_id)
    db.add(question)
    await _flush(db, "create")
    await db.refresh(question)
    return question


async def update_question(
    question_id: str,
    data: Dict[str, Any],
    db: AsyncSession,
    user_id: Optional[str]
) -> Question:
    """Partial update. Writes to identity, audit or counter fields are rejected."""
    _reject_immutable_fields(data)

    question = await _get_question(question_id, db)
    for field, value in data.items():
        if not hasattr(Question, field):
            raise QuestionValidationError({to_camel(field): "Unknown field"})
        setattr(question, field, value)

    question.updated_by = user_id
    await _flush(db, "update")
    await db.refresh(question)
    return question


async def soft_delete_question(question_id: str, db: AsyncSession, user_id: Optional[str]) -> Question:
    question = await _get_question(question_id, db)
    question.is_active = False
    question.updated_by = user_id
    await db.flush()
    return question


async def hard_delete_question(question_id: str, db: AsyncSession, user_id: Optional[str]) -> bool:
    question = await _get_question(question_id, db)
    await db.delete(question)
    await db.flush()
    logger.info(f"Question {question_id} permanently deleted by {user_id}")
    return True


async def bulk_soft_delete(question_ids: List[str], db: AsyncSession, user_id: Optional[str]) -> int:
    """Soft delete several questions; returns how many were still active."""
    result = await db.execute(
        update(Question)
        .where(Question.question_id.in_(question_ids), Question.is_active.is_(True))
        .values(is_active=False, updated_by=user_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def archive_question(question_id: str, db: AsyncSession, user_id: Optional[str]) -> Question:
    question = await _get_question(question_id, db)
    question.status = "archived"
    question.updated_by = user_id
    await db.flush()
    await db.refresh(question)
    return question


async def toggle_verification(question_id: str, db: AsyncSession, user_id: Optional[str]) -> Question:
    question = await _get_question(question_id, db)
    question.is_verified = not question.is_verified
    question.verified_by = user_id if question.is_verified else None
    question.verified_at = _utcnow() if question.is_verified else None
    question.updated_by = user_id
    await db.flush()
    await db.refresh(question)
    return question


async def duplicate_question(question_id: str, db: AsyncSession, user_id: Optional[str]) -> Question:
    source = await _get_question(question_id, db)
    data = {field: getattr(source, field) for field in COPYABLE_FIELDS}
    copy = Question(**data, is_verified=False, created_by=user_id, updated_by=user_id)
    db.add(copy)
    await _flush(db, "duplicate")
    await db.refresh(copy)
    return copy


async def get_public_question(question_id: str, db: AsyncSession) -> Question:
    return await _get_question(question_id, db, public_only=True)


async def get_admin_question(question_id: str, db: AsyncSession) -> Question:
    return await _get_question(question_id, db)


async def _increment_view_count(question_id: str, session_factory):
    try:
        async with session_factory() as session:
            await session.execute(
                update(Question)
                .where(Question.question_id == question_id)
                .values(view_count=Question.view_count + 1, updated_at=Question.updated_at)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
    except Exception as e:
        # Best effort: a lost view is logged, never surfaced to the reader
        logger.warning(f"View count update lost for {question_id}: {e}")


def schedule_view_increment(question_id: str, session_factory) -> asyncio.Task:
    """
    Increment the view counter without delaying the response.

    The update runs on its own session after the caller returns. If it fails
    the view is dropped and a warning is logged.
    """
    task = asyncio.create_task(_increment_view_count(question_id, session_factory))
    _pending_view_updates.add(task)
    task.add_done_callback(_pending_view_updates.discard)
    return task


async def drain_view_updates():
    """Wait for in-flight view updates (shutdown hook and tests)."""
    if _pending_view_updates:
        await asyncio.gather(*list(_pending_view_updates), return_exceptions=True)


async def list_questions_admin(
    db: AsyncSession,
    page: int = 1,
    limit: int = 50,
    status: Optional[str] = None,
    is_active: Optional[bool] = None,
    is_verified: Optional[bool] = None,
    subject: Optional[str] = None,
    year: Optional[int] = None,
    exam_type: Optional[str] = None,
    keyword: Optional[str] = None,
) -> SearchPage:
    """Every question, including drafts, archived and soft-deleted ones."""
    query = SearchQuery.build(keyword=keyword, page=page, limit=limit)
    stmt = select(Question)
    count_stmt = select(func.count(Question.id))

    conditions = []
    if status:
        conditions.append(Question.status == status.lower())
    if is_active is not None:
        conditions.append(Question.is_active.is_(is_active))
    if is_verified is not None:
        conditions.append(Question.is_verified.is_(is_verified))
    if subject:
        conditions.append(Question.subject == subject)
    if year is not None:
        conditions.append(Question.year == year)
    if exam_type:
        conditions.append(Question.exam_type == exam_type.lower())
    if query.keyword:
        conditions.append(Question.question_text.ilike(f"%{escape_like(query.keyword)}%", escape="\\"))

    total = (await db.execute(count_stmt.where(*conditions))).scalar_one()
    result = await db.execute(
        stmt.where(*conditions)
        .order_by(Question.created_at.desc(), Question.id.desc())
        .offset(query.offset)
        .limit(query.limit)
    )
    return SearchPage(questions=list(result.scalars().all()), total=total, page=query.page, limit=query.limit)


async def get_questions_without_answers(db: AsyncSession, page: int = 1, limit: int = 50) -> SearchPage:
    query = SearchQuery.build(page=page, limit=limit)
    conditions = [public_predicate(), Question.has_answer.is_(False)]

    total = (await db.execute(select(func.count(Question.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(Question)
        .where(*conditions)
        .order_by(Question.year.desc(), Question.id.asc())
        .offset(query.offset)
        .limit(query.limit)
    )
    return SearchPage(questions=list(result.scalars().all()), total=total, page=query.page, limit=query.limit)


async def get_random_question(
    db: AsyncSession,
    exam_type: Optional[str] = None,
    subject: Optional[str] = None,
    difficulty: Optional[str] = None,
) -> Question:
    conditions = [public_predicate()]
    if exam_type:
        conditions.append(Question.exam_type == exam_type.lower())
    if subject:
        conditions.append(Question.subject == subject)
    if difficulty:
        conditions.append(Question.difficulty == difficulty.lower())

    result = await db.execute(
        select(Question).where(*conditions).order_by(func.random()).limit(1)
    )
    question = result.scalar_one_or_none()
    if not question:
        raise QuestionNotFoundError("random")
    return question


async def record_attempt(question_id: str, is_correct: bool, db: AsyncSession) -> Dict[str, Any]:
    """
    Count one attempt atomically.

    Success rate is correct attempts over all attempts, so wrong answers
    lower it.
    """
    result = await db.execute(
        update(Question)
        .where(Question.question_id == question_id, public_predicate())
        .values(
            attempt_count=Question.attempt_count + 1,
            correct_attempt_count=Question.correct_attempt_count + (1 if is_correct else 0),
            updated_at=Question.updated_at,
        )
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise QuestionNotFoundError(question_id)

    attempts, correct = (await db.execute(
        select(Question.attempt_count, Question.correct_attempt_count)
        .where(Question.question_id == question_id)
    )).one()
    return {
        "attempt_count": attempts,
        "correct_attempt_count": correct,
        "success_rate": compute_success_rate(correct, attempts),
    }


async def update_bookmark_count(question_id: str, increment: bool, db: AsyncSession) -> Dict[str, Any]:
    """Add or remove one bookmark. The count never drops below zero."""
    if increment:
        new_value = Question.bookmark_count + 1
    else:
        new_value = case((Question.bookmark_count > 0, Question.bookmark_count - 1), else_=0)

    result = await db.execute(
        update(Question)
        .where(Question.question_id == question_id, public_predicate())
        .values(bookmark_count=new_value, updated_at=Question.updated_at)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise QuestionNotFoundError(question_id)

    count = (await db.execute(
        select(Question.bookmark_count).where(Question.question_id == question_id)
    )).scalar_one()
    return {"bookmark_count": count}


async def get_upload_history(db: AsyncSession, limit: int = 50) -> List[Dict[str, Any]]:
    """Imported questions grouped by uploader and day, newest first."""
    day = func.date(Question.created_at)
    count_column = func.count(Question.id)
    result = await db.execute(
        select(Question.created_by, day, count_column)
        .where(Question.source_document.like(f"{IMPORT_SOURCE_PREFIX}%"))
        .group_by(Question.created_by, day)
        .order_by(day.desc(), count_column.desc())
        .limit(limit)
    )
    return [
        {"uploaded_by": uploaded_by, "date": str(date), "count": count}
        for uploaded_by, date, count in result.all()
    ]
