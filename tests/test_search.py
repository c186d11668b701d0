import json

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from pyqbank.exceptions import SearchBackendUnavailableError
from pyqbank.models.question import Question
from pyqbank.services import question_service
from pyqbank.services.search_service import SearchEngine, build_search_engine
from pyqbank.services.search_strategies import (
    ExternalAutocompleteSearch,
    IndexedTextSearch,
    SearchPage,
    SearchQuery,
    SubstringSearch,
)


def _ids(page):
    return [q.question_id for q in page.questions]


def test_query_build_clamps_and_normalises():
    query = SearchQuery.build(
        keyword="   ", exam_type=" Prelims ", subjects=[], page=0, limit=1000,
        sort_by="rank", sort_order="sideways",
    )
    assert query.keyword is None
    assert query.exam_type == "prelims"
    assert query.subjects is None
    assert (query.page, query.limit) == (1, 100)
    assert (query.sort_by, query.sort_order) == ("year", "desc")

    assert SearchQuery.build(limit="abc").limit == 50
    assert SearchQuery.build(limit=0).limit == 1


@pytest.mark.parametrize("total, limit, pages", [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (101, 50, 3)])
def test_pages_is_ceiling(total, limit, pages):
    assert SearchPage(total=total, limit=limit).pages == pages


async def test_filters_and_default_sort(db, make_question):
    q1 = await make_question(year=2021, subject="Polity", difficulty="easy")
    q2 = await make_question(year=2022, subject="Economy", difficulty="hard")
    strategy = SubstringSearch()

    page = await strategy.search(SearchQuery.build(years=[2021]), db)
    assert _ids(page) == [q1.question_id]

    page = await strategy.search(SearchQuery.build(subjects=["Polity", "Economy"]), db)
    assert _ids(page) == [q2.question_id, q1.question_id]

    page = await strategy.search(SearchQuery.build(difficulty="HARD"), db)
    assert _ids(page) == [q2.question_id]

    page = await strategy.search(SearchQuery.build(sort_by="year", sort_order="asc"), db)
    assert _ids(page) == [q1.question_id, q2.question_id]


async def test_only_inactive_matches_gives_empty_page(db, make_question):
    question = await make_question(question_text="Tides are caused by the moon")
    await question_service.soft_delete_question(question.question_id, db, "admin")
    await make_question(question_text="Tides of history", status="draft")
    await db.commit()

    for query in (SearchQuery.build(keyword="tides"), SearchQuery.build()):
        page = await SubstringSearch().search(query, db)
        assert page.questions == []
        assert page.total == 0
        assert page.pages == 0


async def test_pagination_beyond_last_page_is_empty(db, make_question):
    for year in range(2010, 2015):
        await make_question(year=year)
    strategy = SubstringSearch()

    first = await strategy.search(SearchQuery.build(page=1, limit=2), db)
    last = await strategy.search(SearchQuery.build(page=3, limit=2), db)
    beyond = await strategy.search(SearchQuery.build(page=4, limit=2), db)

    assert (len(first.questions), first.total, first.pages) == (2, 5, 3)
    assert len(last.questions) == 1
    assert beyond.questions == []
    assert beyond.total == 5


async def test_substring_search_matches_stemmed_root(db, make_question):
    match = await make_question(question_text="Which agricult practices suit arid regions?")
    await make_question(question_text="Who wrote the Arthashastra?")

    page = await SubstringSearch().search(SearchQuery.build(keyword="agriculture"), db)
    assert _ids(page) == [match.question_id]


async def test_substring_search_covers_tags_and_is_case_insensitive(db, make_question):
    tagged = await make_question(question_text="Identify the river", tags=["Peninsular Rivers"])

    page = await SubstringSearch().search(SearchQuery.build(keyword="PENINSULAR"), db)
    assert _ids(page) == [tagged.question_id]


async def test_substring_search_matches_non_ascii_tags(db, make_question):
    tagged = await make_question(question_text="Identify the document", tags=["संविधान"])
    await make_question()

    page = await SubstringSearch().search(SearchQuery.build(keyword="संविधान"), db)
    assert _ids(page) == [tagged.question_id]


@pytest.mark.parametrize("keyword", ["[]", '"', '", "'])
async def test_substring_search_does_not_match_term_list_punctuation(db, make_question, keyword):
    await make_question()
    await make_question(tags=["rights", "equality"], keywords=["article 14"])

    page = await SubstringSearch().search(SearchQuery.build(keyword=keyword), db)
    assert page.total == 0


async def test_substring_search_treats_wildcards_literally(db, make_question):
    await make_question(question_text="GDP grew by five percent")
    percent = await make_question(question_text="GDP grew by 5% in the quarter")

    page = await SubstringSearch().search(SearchQuery.build(keyword="5%"), db)
    assert _ids(page) == [percent.question_id]


async def test_substring_keyword_results_ordered_by_recency(db, make_question):
    older = await make_question(year=2015, question_text="Monsoon winds")
    newer = await make_question(year=2020, question_text="Monsoon trough")

    page = await SubstringSearch().search(SearchQuery.build(keyword="monsoon", sort_by="year", sort_order="asc"), db)
    assert _ids(page) == [newer.question_id, older.question_id]


async def test_indexed_search_is_unavailable_off_postgres(db, make_question):
    await make_question()
    with pytest.raises(SearchBackendUnavailableError):
        await IndexedTextSearch().search(SearchQuery.build(keyword="equality"), db)


async def test_indexed_search_without_keyword_works_anywhere(db, make_question):
    question = await make_question()
    page = await IndexedTextSearch().search(SearchQuery.build(), db)
    assert _ids(page) == [question.question_id]


async def test_engine_falls_back_to_substring(db, make_question):
    question = await make_question(question_text="Right to Equality under Article 14")
    engine = SearchEngine(IndexedTextSearch(), SubstringSearch())

    page = await engine.search(SearchQuery.build(keyword="equality"), db)
    assert _ids(page) == [question.question_id]


async def test_engine_without_fallback_raises(db, make_question):
    await make_question()
    engine = SearchEngine(IndexedTextSearch())
    with pytest.raises(SearchBackendUnavailableError):
        await engine.search(SearchQuery.build(keyword="equality"), db)


def test_indexed_match_compiles_to_weighted_full_text_sql():
    match, rank = IndexedTextSearch.build_match("Fiscal deficit!")
    stmt = select(Question.question_id).where(match).order_by(rank.desc())
    sql = str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))

    assert "websearch_to_tsquery('english', 'fiscal or deficit')" in sql
    assert "setweight(to_tsvector('english'" in sql
    assert "'{0.3,0.5,0.7,1.0}'::float4[]" in sql
    assert "@@" in sql


def test_indexed_match_without_terms_is_none():
    assert IndexedTextSearch.build_match("!!!") is None


def test_build_search_engine_selects_strategy():
    engine = build_search_engine("substring", fallback_enabled=True)
    assert isinstance(engine.primary, SubstringSearch)
    assert engine.fallback is None

    engine = build_search_engine("indexed", fallback_enabled=True)
    assert isinstance(engine.fallback, SubstringSearch)

    assert build_search_engine("external", fallback_enabled=False).fallback is None

    with pytest.raises(ValueError):
        build_search_engine("elastic")


def test_external_compound_query_shape():
    query = SearchQuery.build(keyword="monsoon", years=[2020], subjects=["Geography"], has_answer=True)
    compound = ExternalAutocompleteSearch.build_compound_query(query)

    boosts = {clause[next(iter(clause))]["path"]: clause[next(iter(clause))]["score"]["boost"]["value"]
              for clause in compound["should"]}
    assert boosts == {"questionText": 10, "subject": 7, "topic": 5, "explanation": 3}
    assert compound["minimumShouldMatch"] == 1
    assert {"equals": {"path": "isActive", "value": True}} in compound["must"]
    assert {"equals": {"path": "status", "value": "published"}} in compound["must"]
    assert {"in": {"path": "year", "value": [2020]}} in compound["must"]
    assert {"equals": {"path": "hasAnswer", "value": True}} in compound["must"]

    subject_filter = next(clause["regex"] for clause in compound["must"] if "regex" in clause)
    assert subject_filter["path"] == "subject"
    assert subject_filter["query"] == [".*Geography.*"]


async def test_external_search_returns_public_hits_in_score_order(db, make_question):
    low = await make_question(question_text="Monsoon winds")
    high = await make_question(question_text="Monsoon trough")
    hidden = await make_question(question_text="Monsoon archive", status="archived")
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(200, json={
            "hits": [
                {"questionId": high.question_id, "score": 9.5},
                {"questionId": hidden.question_id, "score": 8.0},
                {"questionId": low.question_id, "score": 2.1},
            ],
            "total": 3,
        })

    strategy = ExternalAutocompleteSearch("http://search.test/query", transport=httpx.MockTransport(handler))
    page = await strategy.search(SearchQuery.build(keyword="monsoon", page=2, limit=10), db)

    assert _ids(page) == [high.question_id, low.question_id]
    assert page.total == 3
    assert requests[0]["skip"] == 10
    assert requests[0]["limit"] == 10
    assert requests[0]["index"] == "questions_search_index"


@pytest.mark.parametrize("response", [
    httpx.Response(500, json={"error": "boom"}),
    httpx.Response(200, json={"unexpected": True}),
])
async def test_external_search_failures_are_unavailable(db, response):
    strategy = ExternalAutocompleteSearch(
        "http://search.test/query", transport=httpx.MockTransport(lambda request: response)
    )
    with pytest.raises(SearchBackendUnavailableError):
        await strategy.search(SearchQuery.build(keyword="monsoon"), db)


async def test_external_search_without_url_is_unavailable(db):
    with pytest.raises(SearchBackendUnavailableError):
        await ExternalAutocompleteSearch("").search(SearchQuery.build(keyword="monsoon"), db)
