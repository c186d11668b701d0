"""
Filter options and statistics computed from the live question set.

Nothing is cached: each call re-aggregates the active, published rows so the
dropdowns always reflect what is actually searchable. Each facet is a single
GROUP BY query. An AsyncSession runs one statement at a time, so the queries
are issued sequentially on the request's session.
"""

from typing import Any, Dict, List

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pyqbank.config import STATISTICS_TOP_SUBJECTS
from pyqbank.models.question import Question
from pyqbank.services.search_strategies import public_predicate


def _buckets(rows) -> List[Dict[str, Any]]:
    return [{"_id": value, "count": count} for value, count in rows]


async def get_filter_options(db: AsyncSession) -> Dict[str, Any]:
    """Distinct years, exam types, subjects with counts, and topics per subject."""
    public = public_predicate()

    years_result = await db.execute(
        select(Question.year).where(public).distinct().order_by(Question.year.desc())
    )
    years = [year for year in years_result.scalars().all()]

    exam_types_result = await db.execute(
        select(Question.exam_type).where(public).distinct()
    )
    exam_types = sorted(value for value in exam_types_result.scalars().all() if value)

    subjects_result = await db.execute(
        select(Question.subject, func.count(Question.id))
        .where(public, Question.subject != "")
        .group_by(Question.subject)
    )
    subjects = sorted(
        ({"name": name, "count": count} for name, count in subjects_result.all()),
        key=lambda item: item["name"]
    )

    topics_result = await db.execute(
        select(Question.subject, Question.topic)
        .where(public, Question.topic.is_not(None), Question.topic != "")
        .distinct()
    )
    topics = {item["name"]: set() for item in subjects}
    for subject, topic in topics_result.all():
        topics.setdefault(subject, set()).add(topic)

    return {
        "years": years,
        "exam_types": exam_types,
        "subjects": subjects,
        "topics": {subject: sorted(values) for subject, values in topics.items()},
    }


async def get_statistics(db: AsyncSession) -> Dict[str, Any]:
    """Totals and grouped counts. Empty groups are [] and missing counts are 0."""
    public = public_predicate()

    totals = (await db.execute(
        select(
            func.count(Question.id),
            func.coalesce(func.sum(case((Question.has_answer.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(case((Question.is_verified.is_(True), 1), else_=0)), 0),
        ).where(public)
    )).one()
    total, with_answers, verified = (int(value or 0) for value in totals)

    by_year = await db.execute(
        select(Question.year, func.count(Question.id))
        .where(public)
        .group_by(Question.year)
        .order_by(Question.year.desc())
    )

    count_column = func.count(Question.id)
    by_exam_type = await db.execute(
        select(Question.exam_type, count_column)
        .where(public)
        .group_by(Question.exam_type)
        .order_by(count_column.desc(), Question.exam_type)
    )
    by_subject = await db.execute(
        select(Question.subject, count_column)
        .where(public)
        .group_by(Question.subject)
        .order_by(count_column.desc(), Question.subject)
        .limit(STATISTICS_TOP_SUBJECTS)
    )
    by_difficulty = await db.execute(
        select(Question.difficulty, count_column)
        .where(public)
        .group_by(Question.difficulty)
        .order_by(count_column.desc(), Question.difficulty)
    )

    return {
        "total": total,
        "by_year": _buckets(by_year.all()),
        "by_exam_type": _buckets(by_exam_type.all()),
        "by_subject": _buckets(by_subject.all()),
        "by_difficulty": _buckets(by_difficulty.all()),
        "with_answers": with_answers,
        "verified": verified,
    }
