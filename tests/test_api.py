import logging

import pandas as pd
from sqlalchemy import select

from pyqbank.database import get_session_factory
from pyqbank.main import app
from pyqbank.models.question import Question
from pyqbank.services import question_service


def create_payload(**overrides):
    payload = {
        "year": 2022,
        "examType": "Prelims",
        "examName": "UPSC CSE",
        "subject": "Geography",
        "topic": "Climatology",
        "questionText": "What causes the Indian monsoon?",
        "options": {"A": "Differential heating", "B": "Volcanoes"},
        "correctAnswer": "A",
        "explanation": "Land heats faster than sea.",
        "questionImages": [{"url": "https://cdn.test/q.png", "publicId": "q1"}],
        "tags": ["Monsoon"],
    }
    payload.update(overrides)
    return payload


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200


async def test_admin_create_then_public_read(client, admin_headers, session_factory):
    response = await client.post("/v1/admin/questions", json=create_payload(), headers=admin_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    created = body["data"]
    assert created["examType"] == "prelims"
    assert created["hasAnswer"] is True
    assert created["createdBy"] == "admin-1"
    assert created["questionImages"] == [{"url": "https://cdn.test/q.png", "publicId": "q1"}]
    assert "searchableText" not in created

    response = await client.get(f"/v1/questions/{created['questionId']}")
    assert response.status_code == 200
    assert response.json()["data"]["questionText"] == "What causes the Indian monsoon?"

    await question_service.drain_view_updates()
    async with session_factory() as session:
        question = (await session.execute(
            select(Question).where(Question.question_id == created["questionId"])
        )).scalar_one()
    assert question.view_count == 1


async def test_failed_view_update_is_dropped_and_logged(client, make_question, session_factory, caplog):
    question = await make_question()

    def unavailable_session_factory():
        raise ConnectionError("database is unreachable")

    app.dependency_overrides[get_session_factory] = lambda: unavailable_session_factory
    caplog.set_level(logging.WARNING, logger="pyqbank.services.question_service")

    response = await client.get(f"/v1/questions/{question.question_id}")
    await question_service.drain_view_updates()

    # The read succeeds; the view is lost
    assert response.status_code == 200
    assert any(
        record.levelno == logging.WARNING and question.question_id in record.getMessage()
        for record in caplog.records
    )
    async with session_factory() as session:
        views = (await session.execute(
            select(Question.view_count).where(Question.question_id == question.question_id)
        )).scalar_one()
    assert views == 0


async def test_admin_endpoints_require_admin_role(client, student_headers):
    assert (await client.get("/v1/admin/questions")).status_code == 401

    response = await client.get("/v1/admin/questions", headers=student_headers)
    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "Admin role required"}

    response = await client.get("/v1/admin/questions", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


async def test_validation_errors_use_envelope(client, admin_headers):
    response = await client.post(
        "/v1/admin/questions",
        json=create_payload(year=1999, options={"A": "Only"}),
        headers=admin_headers,
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert "year" in body["errors"]


async def test_model_validation_error_is_400(client, admin_headers):
    response = await client.post(
        "/v1/admin/questions",
        json=create_payload(options={"A": "Only one"}),
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert "options" in response.json()["errors"]


async def test_update_rejects_identity_fields(client, admin_headers, make_question):
    question = await make_question()

    response = await client.put(
        f"/v1/admin/questions/{question.question_id}",
        json={"questionId": "Q-hijack", "viewCount": 100},
        headers=admin_headers,
    )
    assert response.status_code == 400

    response = await client.put(
        f"/v1/admin/questions/{question.question_id}",
        json={"difficulty": "hard"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["difficulty"] == "hard"
    assert response.json()["data"]["updatedBy"] == "admin-1"


async def test_unknown_question_is_404(client):
    response = await client.get("/v1/questions/Q-missing")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Question not found"}


async def test_search_endpoint_falls_back_and_paginates(client, make_question):
    await make_question(year=2021, question_text="Monsoon retreat")
    await make_question(year=2022, question_text="Monsoon onset")
    await make_question(year=2023, question_text="Cyclone formation")

    response = await client.get("/v1/questions/search", params={"keyword": "monsoon", "limit": 1, "page": 2})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pagination"] == {"page": 2, "limit": 1, "total": 2, "pages": 2}
    assert data["questions"][0]["questionText"] == "Monsoon retreat"


async def test_search_with_repeated_filters(client, make_question):
    await make_question(year=2021, subject="Polity")
    await make_question(year=2022, subject="Economy")
    await make_question(year=2023, subject="History")

    response = await client.get(
        "/v1/questions/search",
        params=[("subject", "Polity"), ("subject", "Economy"), ("sortOrder", "asc")],
    )
    years = [q["year"] for q in response.json()["data"]["questions"]]
    assert years == [2021, 2022]


async def test_filters_and_statistics_endpoints(client, make_question):
    response = await client.get("/v1/questions/statistics")
    assert response.json()["data"] == {
        "total": 0, "byYear": [], "byExamType": [], "bySubject": [], "byDifficulty": [],
        "withAnswers": 0, "verified": 0,
    }

    await make_question(year=2020, subject="Polity", topic="Parliament")
    response = await client.get("/v1/questions/filters/options")
    data = response.json()["data"]
    assert data["years"] == [2020]
    assert data["examTypes"] == ["prelims"]
    assert data["subjects"] == [{"name": "Polity", "count": 1}]

    response = await client.get("/v1/questions/statistics")
    assert response.json()["data"]["byYear"] == [{"_id": 2020, "count": 1}]


async def test_attempt_and_bookmark(client, make_question):
    question = await make_question()

    await client.post(f"/v1/questions/{question.question_id}/attempt", json={"isCorrect": True})
    response = await client.post(f"/v1/questions/{question.question_id}/attempt", json={"isCorrect": False})
    assert response.json()["data"] == {"attemptCount": 2, "correctAttemptCount": 1, "successRate": 50.0}

    response = await client.post(f"/v1/questions/{question.question_id}/bookmark", json={"increment": False})
    assert response.json()["data"] == {"bookmarkCount": 0}


async def test_random_question_404_when_nothing_matches(client):
    response = await client.get("/v1/questions/random", params={"subject": "Ethics"})
    assert response.status_code == 404


async def test_delete_soft_then_permanent(client, admin_headers, make_question):
    question = await make_question()
    url = f"/v1/admin/questions/{question.question_id}"

    assert (await client.delete(url, headers=admin_headers)).status_code == 200
    assert (await client.get(f"/v1/questions/{question.question_id}")).status_code == 404
    assert (await client.get(url, headers=admin_headers)).json()["data"]["isActive"] is False

    assert (await client.delete(url, params={"permanent": "true"}, headers=admin_headers)).status_code == 200
    assert (await client.get(url, headers=admin_headers)).status_code == 404


async def test_verify_archive_duplicate(client, admin_headers, make_question):
    question = await make_question()
    base = f"/v1/admin/questions/{question.question_id}"

    response = await client.patch(f"{base}/verify", headers=admin_headers)
    assert response.json()["data"]["isVerified"] is True
    assert response.json()["data"]["verifiedBy"] == "admin-1"

    response = await client.post(f"{base}/duplicate", headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["data"]["questionId"] != question.question_id
    assert response.json()["data"]["isVerified"] is False

    response = await client.patch(f"{base}/archive", headers=admin_headers)
    assert response.json()["data"]["status"] == "archived"


async def test_bulk_delete_and_without_answers(client, admin_headers, make_question):
    first = await make_question()
    second = await make_question(explanation="Explained")

    response = await client.get("/v1/admin/questions/without-answers", headers=admin_headers)
    assert [q["questionId"] for q in response.json()["data"]["questions"]] == [first.question_id]

    response = await client.post(
        "/v1/admin/questions/bulk-delete",
        json={"ids": [first.question_id, second.question_id]},
        headers=admin_headers,
    )
    assert response.json()["data"] == {"modifiedCount": 2}


async def test_subjects_seed_and_list(client, admin_headers):
    response = await client.post("/v1/subjects/seed", headers=admin_headers)
    assert response.json()["data"]["count"] == 10

    response = await client.get("/v1/subjects")
    subjects = response.json()["data"]
    assert subjects[0]["name"] == "Polity"
    assert subjects[0]["topics"][0]["subTopics"]

    response = await client.get("/v1/subjects/Polity/topics")
    assert response.status_code == 200
    assert (await client.get("/v1/subjects/Astrology/topics")).status_code == 404


async def test_two_phase_import_over_http(client, admin_headers, seeded_subjects):
    rows = pd.DataFrame([
        {"year": "2023", "examType": "prelims", "examName": "UPSC CSE", "subject": "Polity",
         "questionText": "Which body conducts elections?", "optionA": "ECI", "optionB": "CAG",
         "correctAnswer": "A"},
        {"year": "1999", "examType": "prelims", "examName": "UPSC CSE", "subject": "Polity",
         "questionText": "Too old", "optionA": "x", "optionB": "y", "correctAnswer": "A"},
    ])
    files = {"file": ("questions.csv", rows.to_csv(index=False).encode("utf-8"), "text/csv")}

    response = await client.post("/v1/admin/import/validate", files=files, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert (data["validRows"], data["invalidRows"]) == (1, 1)
    assert data["errors"][0]["row"] == 3
    assert data["stats"]["bySubject"] == {"Polity": 1}

    response = await client.post(
        "/v1/admin/import/confirm", json={"tempFileName": data["tempFileName"]}, headers=admin_headers
    )
    assert response.json()["data"] == {
        "totalAttempted": 1, "successfullyImported": 1, "failed": 0, "errors": []
    }

    response = await client.post(
        "/v1/admin/import/confirm", json={"tempFileName": data["tempFileName"]}, headers=admin_headers
    )
    assert response.status_code == 404

    response = await client.get("/v1/admin/import/history", headers=admin_headers)
    assert response.json()["data"][0]["uploadedBy"] == "admin-1"


async def test_import_rejects_unsupported_file(client, admin_headers):
    files = {"file": ("questions.pdf", b"%PDF", "application/pdf")}
    response = await client.post("/v1/admin/import/validate", files=files, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["success"] is False


async def test_bulk_json_import(client, admin_headers, seeded_subjects):
    response = await client.post(
        "/v1/admin/import/bulk",
        json={"questions": [
            {"year": 2022, "examType": "mains", "examName": "UPSC CSE", "subject": "Ethics",
             "questionText": "Define integrity.", "optionA": "Honesty", "optionB": "Wealth",
             "correctAnswer": "A", "tags": ["values", "Values"]},
            {"year": 2022, "examType": "mains", "subject": "Ethics"},
        ]},
        headers=admin_headers,
    )
    data = response.json()["data"]
    assert data["totalAttempted"] == 2
    assert data["successfullyImported"] == 1
    assert data["failed"] == 1


async def test_template_download(client, admin_headers):
    response = await client.get("/v1/admin/import/template", params={"format": "csv"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.startswith("questionId,year,examType")

    response = await client.get("/v1/admin/import/template", params={"format": "pdf"}, headers=admin_headers)
    assert response.status_code == 400
