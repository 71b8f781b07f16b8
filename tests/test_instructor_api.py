from unittest.mock import patch

from app.models import Quiz

from conftest import SAMPLE_QUESTIONS, auth_headers


def create(client, headers, **overrides):
    body = {"title": "Science Quiz", "questions": SAMPLE_QUESTIONS, "passing_score": 60}
    body.update(overrides)
    return client.post("/api/instructor/quizzes", json=body, headers=headers)


def test_create_quiz_starts_as_draft(client, school, instructor_headers):
    response = create(client, instructor_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "DRAFT"
    assert body["total_points"] == 30
    assert body["total_questions"] == 3
    assert body["class_ids"] == [str(school["class_2a"].id)]
    assert body["questions"][0]["correct_answer"] == 1


def test_create_rejects_unassigned_class(client, school, instructor_headers):
    response = create(client, instructor_headers, class_ids=[str(school["class_2b"].id)])

    assert response.status_code == 403
    assert response.json()["error"] == "access_denied"


def test_create_validates_questions(client, school, instructor_headers):
    bad_index = dict(SAMPLE_QUESTIONS[0], correct_answer=9)
    duplicate = [SAMPLE_QUESTIONS[0], SAMPLE_QUESTIONS[0]]
    unknown = [{"id": "x", "type": "MATCHING", "prompt": "?", "points": 1}]

    for questions in ([bad_index], duplicate, unknown):
        assert create(client, instructor_headers, questions=questions).status_code == 422


def test_create_rejects_inverted_window(client, school, instructor_headers):
    response = create(
        client, instructor_headers,
        available_from="2025-03-10T10:00:00+00:00",
        available_until="2025-03-10T09:00:00+00:00",
    )

    assert response.status_code == 422


def test_students_cannot_author(client, school):
    response = create(client, auth_headers("student-a", "STUDENT"))

    assert response.status_code == 401


def test_publish_notifies_class_students(client, school, instructor_headers):
    quiz_id = create(client, instructor_headers).json()["id"]

    with patch("app.services.quiz_catalog.event_publisher.notify") as notify:
        response = client.post(
            f"/api/instructor/quizzes/{quiz_id}/status",
            json={"status": "PUBLISHED"},
            headers=instructor_headers,
        )

    assert response.status_code == 200
    assert response.json()["status"] == "PUBLISHED"
    recipients = list(notify.call_args.args[0])
    assert recipients == ["student-a"]
    assert notify.call_args.kwargs["type"] == "QUIZ_ASSIGNED"


def test_invalid_transitions(client, school, make_quiz, instructor_headers):
    draft_id = create(client, instructor_headers).json()["id"]
    empty_id = create(client, instructor_headers, questions=[]).json()["id"]
    archived = make_quiz(status="ARCHIVED")

    def change(quiz_id, status):
        return client.post(
            f"/api/instructor/quizzes/{quiz_id}/status",
            json={"status": status},
            headers=instructor_headers,
        )

    for response in (
        change(draft_id, "ARCHIVED"),
        change(empty_id, "PUBLISHED"),
        change(archived.id, "PUBLISHED"),
        change(archived.id, "DRAFT"),
    ):
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"


def test_update_recomputes_total_points(client, school, instructor_headers):
    quiz_id = create(client, instructor_headers).json()["id"]

    response = client.put(
        f"/api/instructor/quizzes/{quiz_id}",
        json={"questions": SAMPLE_QUESTIONS[:1], "time_limit": 15},
        headers=instructor_headers,
    )

    assert response.status_code == 200
    assert response.json()["total_points"] == 10
    assert response.json()["time_limit"] == 15
    assert response.json()["title"] == "Science Quiz"


def test_update_locked_after_submission(client, db, make_quiz, instructor_headers):
    quiz = make_quiz()
    client.post(
        f"/api/student/quizzes/{quiz.id}/submit",
        json={"answers": {"q1": 1}},
        headers=auth_headers("student-a", "STUDENT"),
    )

    response = client.put(
        f"/api/instructor/quizzes/{quiz.id}",
        json={"title": "Renamed"},
        headers=instructor_headers,
    )

    assert response.status_code == 409
    assert response.json()["error"] == "quiz_locked"
    db.expire_all()
    assert db.get(Quiz, quiz.id).title == "Mathematics - Chapter 1"


def test_only_creator_can_modify(client, make_quiz):
    quiz = make_quiz(status="DRAFT")

    response = client.put(
        f"/api/instructor/quizzes/{quiz.id}",
        json={"title": "Mine now"},
        headers=auth_headers("instructor-2", "INSTRUCTOR"),
    )

    assert response.status_code == 403


def test_delete_only_drafts(client, db, make_quiz, instructor_headers):
    draft = make_quiz(status="DRAFT")
    published = make_quiz()

    deleted = client.delete(f"/api/instructor/quizzes/{draft.id}", headers=instructor_headers)
    refused = client.delete(f"/api/instructor/quizzes/{published.id}", headers=instructor_headers)

    assert deleted.status_code == 204
    assert refused.status_code == 409
    db.expire_all()
    assert db.query(Quiz).count() == 1


def test_list_own_quizzes_by_status(client, school, make_quiz, instructor_headers):
    make_quiz(title="Published")
    make_quiz(title="Draft", status="DRAFT")

    everything = client.get("/api/instructor/quizzes", headers=instructor_headers).json()["quizzes"]
    drafts = client.get("/api/instructor/quizzes?status=DRAFT", headers=instructor_headers).json()["quizzes"]
    other = client.get("/api/instructor/quizzes", headers=auth_headers("instructor-2", "INSTRUCTOR")).json()

    assert len(everything) == 2
    assert [q["title"] for q in drafts] == ["Draft"]
    assert other["quizzes"] == []


def test_results_statistics(client, make_quiz, instructor_headers):
    quiz = make_quiz(passing_score=50)
    student = auth_headers("student-a", "STUDENT")
    for answers in ({"q1": 1, "q2": 1, "q3": "Paris"}, {"q1": 0}):
        client.post(f"/api/student/quizzes/{quiz.id}/submit", json={"answers": answers}, headers=student)

    body = client.get(f"/api/instructor/quizzes/{quiz.id}/results", headers=instructor_headers).json()

    assert [r["percentage"] for r in body["results"]] == [100.0, 0.0]
    assert body["results"][0]["student_name"] == "Ana Cruz"
    stats = body["stats"]
    assert stats["total_submissions"] == 2
    assert stats["unique_students"] == 1
    assert stats["average_score"] == 50.0
    assert stats["highest_score"] == 100.0
    assert stats["lowest_score"] == 0.0
    assert stats["pass_rate"] == 50.0
    q1 = body["question_stats"][0]
    assert q1["question_id"] == "q1"
    assert q1["attempts"] == 2
    assert q1["correct_rate"] == 50.0


def test_results_without_submissions(client, make_quiz, instructor_headers):
    quiz = make_quiz()

    body = client.get(f"/api/instructor/quizzes/{quiz.id}/results", headers=instructor_headers).json()

    assert body["results"] == []
    assert body["stats"]["total_submissions"] == 0
    assert body["stats"]["average_score"] == 0.0


def test_results_denied_to_unrelated_instructor(client, make_quiz):
    quiz = make_quiz()

    response = client.get(
        f"/api/instructor/quizzes/{quiz.id}/results",
        headers=auth_headers("instructor-2", "INSTRUCTOR"),
    )

    assert response.status_code == 403
