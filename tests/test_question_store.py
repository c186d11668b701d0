import pytest
from sqlalchemy import func, select

from pyqbank.exceptions import QuestionConflictError, QuestionNotFoundError, QuestionValidationError
from pyqbank.models.question import Question, compute_success_rate
from pyqbank.services import question_service

from .conftest import question_data


async def test_create_derives_searchable_text_and_answer_flag(make_question):
    question = await make_question(
        question_text="Monsoon: onset?",
        explanation="  ",
        tags=["Climate", "climate"],
        options={"b": "June", "a": "May"},
    )

    assert question.question_id.startswith("Q-")
    assert question.options == {"A": "May", "B": "June"}
    assert question.tags == ["climate"]
    assert question.search_terms == "climate"
    assert question.has_answer is False
    assert question.searchable_text.startswith("monsoon onset polity constitution upsc cse climate")
    assert question.created_by == "tester"


async def test_searchable_text_is_stable_across_saves(db, make_question):
    question = await make_question()
    before = question.searchable_text

    await question_service.update_question(question.question_id, {"difficulty": "hard"}, db, "editor")
    await db.commit()
    assert question.searchable_text == before

    await question_service.update_question(question.question_id, {"explanation": "Article 14."}, db, "editor")
    await db.commit()
    assert question.has_answer is True
    assert question.searchable_text == (
        "which article of the constitution deals with the right to equality article 14 "
        "polity constitution upsc cse article 12 article 14 article 19 article 21"
    )


async def test_fewer_than_two_options_is_rejected_without_writing(db):
    with pytest.raises(QuestionValidationError) as exc_info:
        await question_service.create_question(question_data(options={"A": "Only one"}), db, "tester")

    assert "options" in exc_info.value.errors
    await db.rollback()
    count = (await db.execute(select(func.count(Question.id)))).scalar_one()
    assert count == 0


@pytest.mark.parametrize("overrides, field", [
    ({"year": 1999}, "year"),
    ({"exam_type": "finals"}, "examType"),
    ({"difficulty": "extreme"}, "difficulty"),
    ({"options": {"G": "x", "A": "y"}}, "options"),
    ({"marks": 300}, "marks"),
    ({"question_text": "x" * 15001}, "question_text"),
])
async def test_model_rejects_out_of_range_values(db, overrides, field):
    with pytest.raises(QuestionValidationError) as exc_info:
        await question_service.create_question(question_data(**overrides), db, "tester")
    assert field in exc_info.value.errors


async def test_missing_required_field_is_rejected_at_flush(db):
    with pytest.raises(QuestionValidationError) as exc_info:
        await question_service.create_question(question_data(exam_name="  "), db, "tester")
    assert "exam_name" in exc_info.value.errors


async def test_update_rejects_immutable_fields(db, make_question):
    question = await make_question()

    for field in ("question_id", "created_by", "view_count", "searchable_text", "search_terms", "has_answer"):
        with pytest.raises(QuestionValidationError):
            await question_service.update_question(question.question_id, {field: "x"}, db, "editor")


async def test_duplicate_question_id_is_a_conflict(db, make_question):
    await make_question(question_id="Q-fixed")

    with pytest.raises(QuestionConflictError):
        await question_service.create_question(question_data(question_id="Q-fixed"), db, "tester")


async def test_soft_delete_hides_question_from_public_reads(db, make_question):
    question = await make_question()

    await question_service.soft_delete_question(question.question_id, db, "admin")
    await db.commit()

    with pytest.raises(QuestionNotFoundError):
        await question_service.get_public_question(question.question_id, db)
    assert (await question_service.get_admin_question(question.question_id, db)).is_active is False


async def test_bulk_soft_delete_counts_only_active_rows(db, make_question):
    first = await make_question()
    second = await make_question()
    await question_service.soft_delete_question(first.question_id, db, "admin")
    await db.commit()

    modified = await question_service.bulk_soft_delete(
        [first.question_id, second.question_id, "Q-missing"], db, "admin"
    )
    await db.commit()
    assert modified == 1


async def test_hard_delete_removes_row(db, make_question):
    question = await make_question()

    await question_service.hard_delete_question(question.question_id, db, "admin")
    await db.commit()

    with pytest.raises(QuestionNotFoundError):
        await question_service.get_admin_question(question.question_id, db)


async def test_toggle_verification_sets_and_clears_verifier(db, make_question):
    question = await make_question()

    verified = await question_service.toggle_verification(question.question_id, db, "reviewer")
    assert verified.is_verified is True
    assert verified.verified_by == "reviewer"
    assert verified.verified_at is not None

    unverified = await question_service.toggle_verification(question.question_id, db, "reviewer")
    assert unverified.is_verified is False
    assert unverified.verified_by is None
    assert unverified.verified_at is None


async def test_archived_question_is_not_public(db, make_question):
    question = await make_question()
    await question_service.archive_question(question.question_id, db, "admin")
    await db.commit()

    with pytest.raises(QuestionNotFoundError):
        await question_service.get_public_question(question.question_id, db)


async def test_duplicate_copies_content_with_fresh_identity(db, make_question):
    source = await make_question(explanation="Because.")
    await question_service.record_attempt(source.question_id, True, db)
    await question_service.toggle_verification(source.question_id, db, "reviewer")
    await db.commit()

    copy = await question_service.duplicate_question(source.question_id, db, "admin")
    await db.commit()

    assert copy.question_id != source.question_id
    assert copy.question_text == source.question_text
    assert copy.options == source.options
    assert copy.is_verified is False
    assert copy.attempt_count == 0
    assert copy.has_answer is True


async def test_record_attempt_counts_wrong_answers_in_success_rate(db, make_question):
    question = await make_question()

    await question_service.record_attempt(question.question_id, True, db)
    await question_service.record_attempt(question.question_id, True, db)
    result = await question_service.record_attempt(question.question_id, False, db)
    await db.commit()

    assert result == {"attempt_count": 3, "correct_attempt_count": 2, "success_rate": 66.67}


async def test_record_attempt_on_hidden_question_is_not_found(db, make_question):
    question = await make_question(status="draft")
    with pytest.raises(QuestionNotFoundError):
        await question_service.record_attempt(question.question_id, True, db)


async def test_bookmark_count_never_goes_negative(db, make_question):
    question = await make_question()

    result = await question_service.update_bookmark_count(question.question_id, False, db)
    assert result == {"bookmark_count": 0}

    await question_service.update_bookmark_count(question.question_id, True, db)
    result = await question_service.update_bookmark_count(question.question_id, True, db)
    assert result == {"bookmark_count": 2}


async def test_view_increment_runs_on_its_own_session(db, session_factory, make_question):
    question = await make_question()

    question_service.schedule_view_increment(question.question_id, session_factory)
    question_service.schedule_view_increment(question.question_id, session_factory)
    await question_service.drain_view_updates()

    async with session_factory() as session:
        views = (await session.execute(
            select(Question.view_count).where(Question.question_id == question.question_id)
        )).scalar_one()
    assert views == 2


async def test_random_question_respects_filters(db, make_question):
    await make_question(subject="Polity")
    economy = await make_question(subject="Economy")

    picked = await question_service.get_random_question(db, subject="Economy")
    assert picked.question_id == economy.question_id

    with pytest.raises(QuestionNotFoundError):
        await question_service.get_random_question(db, subject="Ethics")


async def test_questions_without_answers(db, make_question):
    unanswered = await make_question()
    await make_question(explanation="Explained.")

    page = await question_service.get_questions_without_answers(db)
    assert [q.question_id for q in page.questions] == [unanswered.question_id]


async def test_admin_listing_includes_hidden_rows(db, make_question):
    await make_question()
    await make_question(status="draft")
    hidden = await make_question()
    await question_service.soft_delete_question(hidden.question_id, db, "admin")
    await db.commit()

    assert (await question_service.list_questions_admin(db)).total == 3
    assert (await question_service.list_questions_admin(db, status="draft")).total == 1
    assert (await question_service.list_questions_admin(db, is_active=False)).total == 1


def test_success_rate_formula():
    assert compute_success_rate(0, 0) == 0.0
    assert compute_success_rate(1, 4) == 25.0
    assert compute_success_rate(2, 3) == 66.67
