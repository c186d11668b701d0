"""
Search strategies over the question store.

Every strategy answers the same (keyword, filters, pagination, sort) request
and returns a SearchPage. They differ only in how a keyword is matched and
ranked:

- IndexedTextSearch: PostgreSQL weighted full-text index, ranked by relevance.
- SubstringSearch: case-insensitive substring match with a suffix-stripping
  heuristic, ordered by recency. Works on any SQL backend.
- ExternalAutocompleteSearch: a hosted inverted index queried over HTTP.

Without a keyword all three run the same filter + sort query.
"""

import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy import and_, func, literal_column, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pyqbank.exceptions.service_exceptions import SearchBackendUnavailableError
from pyqbank.models.question import Question, weighted_search_vector
from pyqbank.utils.text import escape_like, sanitize_keyword, stem_keyword, tokenize

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 100
SORT_FIELDS = {
    "year": Question.year,
    "viewCount": Question.view_count,
    "createdAt": Question.created_at,
}
SORT_ORDERS = ("asc", "desc")

# ts_rank weight array is ordered {D, C, B, A}; 3:5:7:10 normalised
TS_RANK_WEIGHTS = "'{0.3,0.5,0.7,1.0}'::float4[]"


def _clean_list(values):
    if not values:
        return None
    cleaned = [v.strip() if isinstance(v, str) else v for v in values]
    cleaned = [v for v in cleaned if v not in (None, "")]
    return cleaned or None


def _clamp(value, low, high, default):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, value))


@dataclass
class SearchQuery:
    keyword: Optional[str] = None
    years: Optional[List[int]] = None
    exam_type: Optional[str] = None
    subjects: Optional[List[str]] = None
    topics: Optional[List[str]] = None
    difficulty: Optional[str] = None
    has_answer: Optional[bool] = None
    is_verified: Optional[bool] = None
    page: int = 1
    limit: int = DEFAULT_LIMIT
    sort_by: str = "year"
    sort_order: str = "desc"

    @classmethod
    def build(
        cls,
        keyword: Optional[str] = None,
        years: Optional[List[int]] = None,
        exam_type: Optional[str] = None,
        subjects: Optional[List[str]] = None,
        topics: Optional[List[str]] = None,
        difficulty: Optional[str] = None,
        has_answer: Optional[bool] = None,
        is_verified: Optional[bool] = None,
        page: Any = 1,
        limit: Any = DEFAULT_LIMIT,
        sort_by: Optional[str] = "year",
        sort_order: Optional[str] = "desc",
    ) -> "SearchQuery":
        """Normalise raw request values. Out-of-range paging is clamped, never rejected."""
        exam_type = (exam_type or "").strip().lower() or None
        difficulty = (difficulty or "").strip().lower() or None
        return cls(
            keyword=sanitize_keyword(keyword),
            years=_clean_list(years),
            exam_type=exam_type,
            subjects=_clean_list(subjects),
            topics=_clean_list(topics),
            difficulty=difficulty,
            has_answer=has_answer,
            is_verified=is_verified,
            page=_clamp(page, 1, 10 ** 9, 1),
            limit=_clamp(limit, 1, MAX_LIMIT, DEFAULT_LIMIT),
            sort_by=sort_by if sort_by in SORT_FIELDS else "year",
            sort_order=sort_order if sort_order in SORT_ORDERS else "desc",
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class SearchPage:
    questions: List[Question] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def public_predicate():
    """Active and published. Applied to every public read."""
    return and_(Question.is_active.is_(True), Question.status == "published")


def filter_predicates(query: SearchQuery) -> list:
    conditions = [public_predicate()]
    if query.years:
        conditions.append(Question.year.in_(query.years))
    if query.exam_type:
        conditions.append(Question.exam_type == query.exam_type)
    if query.subjects:
        conditions.append(Question.subject.in_(query.subjects))
    if query.topics:
        conditions.append(Question.topic.in_(query.topics))
    if query.difficulty:
        conditions.append(Question.difficulty == query.difficulty)
    if query.has_answer is not None:
        conditions.append(Question.has_answer.is_(query.has_answer))
    if query.is_verified is not None:
        conditions.append(Question.is_verified.is_(query.is_verified))
    return conditions


def sort_clauses(query: SearchQuery) -> list:
    column = SORT_FIELDS[query.sort_by]
    primary = column.asc() if query.sort_order == "asc" else column.desc()
    return [primary, Question.id.asc()]


async def paginate(db: AsyncSession, conditions: list, order_by: list, query: SearchQuery) -> SearchPage:
    """One count query plus one page query."""
    total = (await db.execute(
        select(func.count(Question.id)).where(*conditions)
    )).scalar_one()

    questions = []
    if total and query.offset < total:
        result = await db.execute(
            select(Question)
            .where(*conditions)
            .order_by(*order_by)
            .offset(query.offset)
            .limit(query.limit)
        )
        questions = list(result.scalars().all())

    return SearchPage(questions=questions, total=total, page=query.page, limit=query.limit)


class SearchStrategy(ABC):
    """Resolves a SearchQuery into a ranked page of public questions."""

    name = "base"

    async def search(self, query: SearchQuery, db: AsyncSession) -> SearchPage:
        conditions = filter_predicates(query)
        if query.keyword is None:
            # No relevance ranking without a keyword
            return await paginate(db, conditions, sort_clauses(query), query)
        return await self.search_keyword(query, conditions, db)

    @abstractmethod
    async def search_keyword(self, query: SearchQuery, conditions: list, db: AsyncSession) -> SearchPage:
        ...


class IndexedTextSearch(SearchStrategy):
    """Weighted full-text search backed by the GIN index on pyq_questions."""

    name = "indexed"

    @staticmethod
    def build_match(keyword: str):
        """Return (match condition, rank expression) for the keyword, or None if it has no terms."""
        tokens = tokenize(keyword)
        if not tokens:
            return None
        # OR semantics across terms, like a classic text index
        ts_query = func.websearch_to_tsquery(literal_column("'english'"), " or ".join(tokens))
        vector = weighted_search_vector()
        rank = func.ts_rank(literal_column(TS_RANK_WEIGHTS), vector, ts_query)
        return vector.op("@@")(ts_query), rank

    async def search_keyword(self, query: SearchQuery, conditions: list, db: AsyncSession) -> SearchPage:
        dialect = db.get_bind().dialect.name
        if dialect != "postgresql":
            raise SearchBackendUnavailableError(self.name, f"full-text index is not available on {dialect}")

        built = self.build_match(query.keyword)
        if built is None:
            return SearchPage(page=query.page, limit=query.limit)
        match, rank = built

        try:
            return await paginate(
                db,
                conditions + [match],
                [rank.desc(), Question.year.desc(), Question.id.asc()],
                query,
            )
        except SQLAlchemyError as e:
            await db.rollback()
            raise SearchBackendUnavailableError(self.name, e.__class__.__name__) from e


class SubstringSearch(SearchStrategy):
    """Case-insensitive substring match across text, classification and term fields."""

    name = "substring"

    @staticmethod
    def build_match(keyword: str):
        pattern = f"%{escape_like(stem_keyword(keyword))}%"
        columns = [
            Question.question_text,
            Question.explanation,
            Question.subject,
            Question.topic,
            Question.exam_name,
            Question.search_terms,
        ]
        return or_(*[column.ilike(pattern, escape="\\") for column in columns])

    async def search_keyword(self, query: SearchQuery, conditions: list, db: AsyncSession) -> SearchPage:
        # No relevance score; recency only
        return await paginate(
            db,
            conditions + [self.build_match(query.keyword)],
            [Question.year.desc(), Question.created_at.desc(), Question.id.desc()],
            query,
        )


class ExternalAutocompleteSearch(SearchStrategy):
    """
    Queries a hosted autocomplete index over HTTP.

    The service receives {index, compound, skip, limit} and answers
    {hits: [{questionId, score}], total}. Rows are then loaded from the store in
    hit order, dropping any that are no longer public.
    """

    name = "external"

    def __init__(
        self,
        base_url: str,
        index_name: str = "questions_search_index",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.index_name = index_name
        self.timeout = timeout
        self.transport = transport

    @staticmethod
    def build_compound_query(query: SearchQuery) -> Dict[str, Any]:
        keyword = query.keyword
        should = [
            {"autocomplete": {"query": keyword, "path": "questionText", "score": {"boost": {"value": 10}}}},
            {"autocomplete": {"query": keyword, "path": "subject", "score": {"boost": {"value": 7}}}},
            {"autocomplete": {"query": keyword, "path": "topic", "score": {"boost": {"value": 5}}}},
            {"text": {"query": keyword, "path": "explanation", "score": {"boost": {"value": 3}}}},
        ]

        must = [
            {"equals": {"path": "isActive", "value": True}},
            {"equals": {"path": "status", "value": "published"}},
        ]
        if query.years:
            must.append({"in": {"path": "year", "value": query.years}})
        if query.exam_type:
            must.append({"equals": {"path": "examType", "value": query.exam_type}})
        if query.subjects:
            must.append({
                "regex": {
                    "path": "subject",
                    "query": [f".*{re.escape(subject)}.*" for subject in query.subjects],
                    "allowAnalyzedField": True,
                }
            })
        if query.topics:
            must.append({"in": {"path": "topic", "value": query.topics}})
        if query.difficulty:
            must.append({"equals": {"path": "difficulty", "value": query.difficulty}})
        if query.has_answer is not None:
            must.append({"equals": {"path": "hasAnswer", "value": query.has_answer}})
        if query.is_verified is not None:
            must.append({"equals": {"path": "isVerified", "value": query.is_verified}})

        return {"should": should, "minimumShouldMatch": 1, "must": must}

    async def _fetch_hits(self, query: SearchQuery):
        if not self.base_url:
            raise SearchBackendUnavailableError(self.name, "EXTERNAL_SEARCH_URL is not configured")

        payload = {
            "index": self.index_name,
            "compound": self.build_compound_query(query),
            "skip": query.offset,
            "limit": query.limit,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.base_url, json=payload)
                response.raise_for_status()
                body = response.json()
            hits = [(str(hit["questionId"]), float(hit.get("score", 0))) for hit in body["hits"]]
            total = int(body["total"])
        except httpx.HTTPError as e:
            raise SearchBackendUnavailableError(self.name, str(e) or e.__class__.__name__) from e
        except (ValueError, KeyError, TypeError) as e:
            raise SearchBackendUnavailableError(self.name, f"malformed response: {e.__class__.__name__}") from e
        return hits, total

    async def search_keyword(self, query: SearchQuery, conditions: list, db: AsyncSession) -> SearchPage:
        hits, total = await self._fetch_hits(query)
        if not hits:
            return SearchPage(total=total, page=query.page, limit=query.limit)

        scores = dict(hits)
        result = await db.execute(
            select(Question).where(*conditions, Question.question_id.in_(list(scores)))
        )
        questions = list(result.scalars().all())
        questions.sort(key=lambda q: (-scores[q.question_id], -q.year))

        return SearchPage(questions=questions, total=total, page=query.page, limit=query.limit)
