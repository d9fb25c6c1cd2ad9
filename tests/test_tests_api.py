"""End-to-end tests for test generation, retrieval and submission."""

import uuid

import httpx
from fastapi.testclient import TestClient

from edutest.config import Settings
from edutest.main import app
from edutest.services.ai_client import AIClient, get_ai_client

from conftest import make_questions, make_reply


def _generate(client: TestClient, headers: dict, biology: dict, **extra):
    body = {"subjectId": str(biology["subject_id"]), "bookId": str(biology["book_id"])}
    body.update(extra)
    return client.post("/api/tests/generate", json=body, headers=headers)


def _answers(test: dict, correct: int) -> list[dict]:
    # make_questions puts the correct option first
    return [
        {"questionText": q["questionText"], "selectedOption": q["options"][0 if i < correct else 1]}
        for i, q in enumerate(test["questions"])
    ]


def test_round_trip_six_of_ten(client: TestClient, learner_headers, biology: dict, fake_ai):
    generated = _generate(client, learner_headers, biology, chapterId=str(biology["chapter_id"]))
    assert generated.status_code == 201, generated.text
    test = generated.json()
    assert test["chapterId"] == str(biology["chapter_id"])
    assert len(test["questions"]) == 10
    assert set(test["questions"][0]) == {"questionText", "options"}
    assert "The cell membrane is a lipid bilayer." in fake_ai.prompts[0]

    response = client.post(
        "/api/tests/submit",
        json={"testId": test["id"], "answers": _answers(test, 6)},
        headers=learner_headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["result"] == {"totalQuestions": 10, "correctAnswers": 6, "scorePercent": 60}

    mistakes = body["aiFeedback"]["mistakes"]
    assert len(mistakes) == 4
    assert {m["whereToRead"]["bookTitle"] for m in mistakes} == {"Cells"}
    assert {m["whereToRead"]["chapterTitle"] for m in mistakes} == {"Membrane"}
    # sourceParagraph 1 resolves to the pages stored on that paragraph
    assert mistakes[0]["whereToRead"]["pages"] == [12, 13]

    detailed = body["detailedAnswers"]
    assert len(detailed) == 10
    assert sum(d["isCorrect"] for d in detailed) == 6
    assert detailed[0]["correctOption"] == "A1"


def test_issued_test_never_exposes_answers(client: TestClient, learner_headers, biology: dict):
    test = _generate(client, learner_headers, biology, fullBook=True).json()
    fetched = client.get(f"/api/tests/{test['id']}", headers=learner_headers)
    assert fetched.status_code == 200
    for q in fetched.json()["questions"]:
        assert "correctOption" not in q
        assert "explanation" not in q
        assert "relatedContent" not in q


def test_full_book_overrides_chapter(client: TestClient, learner_headers, biology: dict):
    test = _generate(
        client, learner_headers, biology, chapterId=str(biology["chapter_id"]), fullBook=True
    ).json()
    assert test["chapterId"] is None


def test_cache_hit_skips_generation(client: TestClient, learner_headers, biology: dict, fake_ai):
    first = _generate(client, learner_headers, biology, fullBook=True).json()
    second = _generate(client, learner_headers, biology, fullBook=True).json()
    assert second["id"] == first["id"]
    assert fake_ai.calls == 1


def test_cache_policy_never_regenerates(
    client: TestClient, learner_headers, biology: dict, fake_ai, pipeline_settings, monkeypatch
):
    monkeypatch.setattr(pipeline_settings, "TEST_CACHE_POLICY", "never")
    first = _generate(client, learner_headers, biology, fullBook=True).json()
    second = _generate(client, learner_headers, biology, fullBook=True).json()
    assert second["id"] != first["id"]
    assert fake_ai.calls == 2


def test_chapter_and_book_are_separate_cache_entries(client: TestClient, learner_headers, biology: dict, fake_ai):
    chapter = _generate(client, learner_headers, biology, chapterId=str(biology["chapter_id"])).json()
    book = _generate(client, learner_headers, biology, fullBook=True).json()
    assert chapter["id"] != book["id"]
    assert fake_ai.calls == 2


def test_previous_questions_are_excluded(
    client: TestClient, learner_headers, biology: dict, fake_ai, pipeline_settings, monkeypatch
):
    monkeypatch.setattr(pipeline_settings, "TEST_CACHE_POLICY", "never")
    test = _generate(client, learner_headers, biology, fullBook=True).json()
    client.post(
        "/api/tests/submit",
        json={"testId": test["id"], "answers": _answers(test, 10)},
        headers=learner_headers,
    )
    _generate(client, learner_headers, biology, fullBook=True)
    assert "Do NOT repeat" in fake_ai.prompts[1]
    assert test["questions"][0]["questionText"] in fake_ai.prompts[1]


def test_invalid_ai_reply_is_bad_gateway(client: TestClient, learner_headers, biology: dict, fake_ai):
    fake_ai.replies.append(make_reply(make_questions(count=3)))
    response = _generate(client, learner_headers, biology, fullBook=True)
    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "ai_generation_failed"
    assert "exactly 10 questions" in body["message"]


def test_upstream_failure_is_bad_gateway(client: TestClient, learner_headers, biology: dict, fake_ai):
    fake_ai.replies.append(httpx.ReadTimeout("too slow"))
    response = _generate(client, learner_headers, biology, fullBook=True)
    assert response.status_code == 502


def test_undecodable_ai_body_is_bad_gateway(client: TestClient, learner_headers, biology: dict):
    ai = AIClient(Settings(AI_API_KEY="sk-test", AI_BASE_URL="https://ai.example/v1"))
    ai._http = httpx.Client(
        base_url="https://ai.example/v1",
        transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>gateway</html>")),
    )
    app.dependency_overrides[get_ai_client] = lambda: ai
    response = _generate(client, learner_headers, biology, fullBook=True)
    assert response.status_code == 502
    body = response.json()
    assert body["error_code"] == "ai_generation_failed"
    assert "DecodingError" in body["message"]


def test_missing_ai_configuration(client: TestClient, learner_headers, biology: dict):
    app.dependency_overrides[get_ai_client] = lambda: AIClient(Settings(AI_API_KEY=""))
    response = _generate(client, learner_headers, biology, fullBook=True)
    assert response.status_code == 500
    assert response.json()["error_code"] == "configuration_missing"


def test_empty_chapter_is_invalid_state(client: TestClient, learner_headers, biology: dict, fake_ai):
    response = _generate(client, learner_headers, biology, chapterId=str(biology["empty_chapter_id"]))
    assert response.status_code == 400
    assert response.json()["error_code"] == "invalid_state"
    assert fake_ai.calls == 0


def test_unknown_book_is_404(client: TestClient, learner_headers, biology: dict):
    response = client.post(
        "/api/tests/generate",
        json={"subjectId": str(biology["subject_id"]), "bookId": str(uuid.uuid4())},
        headers=learner_headers,
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Book not found"


def test_unknown_test_is_404(client: TestClient, learner_headers):
    assert client.get(f"/api/tests/{uuid.uuid4()}", headers=learner_headers).status_code == 404


def test_wrong_answer_count(client: TestClient, learner_headers, biology: dict):
    test = _generate(client, learner_headers, biology, fullBook=True).json()
    response = client.post(
        "/api/tests/submit",
        json={"testId": test["id"], "answers": _answers(test, 10)[:9]},
        headers=learner_headers,
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "invalid_input"
    assert body["message"] == "Expected 10 answers, received 9"


def test_empty_submission_is_a_count_mismatch(client: TestClient, learner_headers, biology: dict):
    test = _generate(client, learner_headers, biology, fullBook=True).json()
    response = client.post(
        "/api/tests/submit", json={"testId": test["id"], "answers": []}, headers=learner_headers
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "invalid_input"
    assert body["message"] == "Expected 10 answers, received 0"


def test_blank_selected_option_is_graded_wrong(client: TestClient, learner_headers, biology: dict):
    test = _generate(client, learner_headers, biology, fullBook=True).json()
    answers = _answers(test, 10)
    answers[3]["selectedOption"] = ""
    response = client.post(
        "/api/tests/submit", json={"testId": test["id"], "answers": answers}, headers=learner_headers
    )
    assert response.status_code == 200, response.text
    assert response.json()["result"]["correctAnswers"] == 9


def test_resubmission_allowed_by_default(client: TestClient, learner_headers, biology: dict):
    test = _generate(client, learner_headers, biology, fullBook=True).json()
    payload = {"testId": test["id"], "answers": _answers(test, 5)}
    assert client.post("/api/tests/submit", json=payload, headers=learner_headers).status_code == 200
    assert client.post("/api/tests/submit", json=payload, headers=learner_headers).status_code == 200


def test_single_submission_guard(
    client: TestClient, learner_headers, biology: dict, pipeline_settings, monkeypatch
):
    monkeypatch.setattr(pipeline_settings, "SINGLE_SUBMISSION_PER_TEST", True)
    test = _generate(client, learner_headers, biology, fullBook=True).json()
    payload = {"testId": test["id"], "answers": _answers(test, 5)}
    assert client.post("/api/tests/submit", json=payload, headers=learner_headers).status_code == 200
    again = client.post("/api/tests/submit", json=payload, headers=learner_headers)
    assert again.status_code == 409
    assert again.json()["error_code"] == "conflict"


def test_generate_requires_auth(client: TestClient, biology: dict):
    response = client.post(
        "/api/tests/generate",
        json={"subjectId": str(biology["subject_id"]), "bookId": str(biology["book_id"])},
    )
    assert response.status_code == 401
