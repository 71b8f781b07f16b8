from datetime import timedelta
from unittest.mock import patch

from app.exceptions import PersistenceConflict
from app.models import QuizAttempt
from app.utils.clock import utcnow

from conftest import auth_headers


def submit(client, quiz, headers, answers, started_at=None):
    body = {"answers": answers}
    if started_at is not None:
        body["started_at"] = started_at.isoformat()
    return client.post(f"/api/student/quizzes/{quiz.id}/submit", json=body, headers=headers)


def test_listing_is_scoped_to_student_classes(client, make_quiz, school, student_headers):
    visible = make_quiz(title="Visible")
    make_quiz(title="Draft", status="DRAFT")
    make_quiz(title="Other class", classes=[school["class_2b"]])

    response = client.get("/api/student/quizzes", headers=student_headers)

    assert response.status_code == 200
    quizzes = response.json()["quizzes"]
    assert [q["id"] for q in quizzes] == [str(visible.id)]
    assert quizzes[0]["is_completed"] is False
    assert "correct_answer" not in quizzes[0]["questions"][0]


def test_quiz_in_several_classes_listed_once(client, make_quiz, school, student_headers):
    make_quiz(classes=[school["class_2a"], school["class_2b"]])

    quizzes = client.get("/api/student/quizzes", headers=student_headers).json()["quizzes"]

    assert len(quizzes) == 1


def test_listing_marks_completed_and_remaining(client, make_quiz, student_headers):
    quiz = make_quiz(allowed_attempts=3)
    submit(client, quiz, student_headers, {"q1": 1})

    entry = client.get("/api/student/quizzes", headers=student_headers).json()["quizzes"][0]

    assert entry["is_completed"] is True
    assert entry["attempts_used"] == 1
    assert entry["attempts_remaining"] == 2


def test_listing_status_filters(client, make_quiz, student_headers):
    now = utcnow()
    open_quiz = make_quiz(title="Open", available_from=now - timedelta(days=1))
    upcoming = make_quiz(title="Upcoming", available_from=now + timedelta(days=1))
    make_quiz(title="Closed", available_until=now - timedelta(days=1))

    available = client.get("/api/student/quizzes?status=available", headers=student_headers).json()["quizzes"]
    later = client.get("/api/student/quizzes?status=upcoming", headers=student_headers).json()["quizzes"]

    assert [q["id"] for q in available] == [str(open_quiz.id)]
    assert [q["id"] for q in later] == [str(upcoming.id)]


def test_listing_rejects_unknown_status_filter(client, school, student_headers):
    response = client.get("/api/student/quizzes?status=finished", headers=student_headers)

    assert response.status_code == 422


def test_submit_grades_and_records(client, db, make_quiz, student_headers):
    quiz = make_quiz(passing_score=70)

    response = submit(
        client, quiz, student_headers,
        {"q1": 1, "q2": 0, "q3": " paris "},
        started_at=utcnow() - timedelta(minutes=4),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["score"] == 20
    assert body["max_score"] == 30
    assert body["percentage"] == 66.7
    assert body["passed"] is False
    assert body["attempt_number"] == 1
    assert body["is_late"] is False
    assert 239 <= body["time_spent"] <= 241
    assert [item["is_correct"] for item in body["breakdown"]] == [True, False, True]
    assert body["breakdown"][0]["earned_points"] == 10


def test_submit_hides_breakdown_when_results_hidden(client, make_quiz, student_headers):
    quiz = make_quiz(show_results=False)

    body = submit(client, quiz, student_headers, {"q1": 1}).json()

    assert body["breakdown"] is None
    assert body["score"] == 10


def test_third_attempt_over_limit_is_rejected(client, db, make_quiz, student_headers):
    quiz = make_quiz(allowed_attempts=2)

    numbers = [submit(client, quiz, student_headers, {"q1": 1}).json()["attempt_number"] for _ in range(2)]
    third = submit(client, quiz, student_headers, {"q1": 1})

    assert numbers == [1, 2]
    assert third.status_code == 400
    assert third.json()["error"] == "attempt_limit_exceeded"
    assert db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz.id).count() == 2


def test_late_completion_is_graded_and_flagged(client, make_quiz, student_headers):
    closes = utcnow() - timedelta(minutes=1)
    quiz = make_quiz(available_until=closes)

    response = submit(client, quiz, student_headers, {"q1": 1, "q2": 1, "q3": "Paris"},
                      started_at=closes - timedelta(minutes=5))

    assert response.status_code == 201
    body = response.json()
    assert body["is_late"] is True
    assert body["score"] == 30
    assert body["percentage"] == 100.0


def test_starting_after_close_is_expired(client, make_quiz, student_headers):
    quiz = make_quiz(available_until=utcnow() - timedelta(minutes=10))

    response = submit(client, quiz, student_headers, {"q1": 1}, started_at=utcnow() - timedelta(minutes=2))

    assert response.status_code == 400
    assert response.json()["error"] == "expired"


def test_not_yet_open(client, make_quiz, student_headers):
    quiz = make_quiz(available_from=utcnow() + timedelta(hours=1))

    response = submit(client, quiz, student_headers, {"q1": 1})

    assert response.status_code == 400
    assert response.json()["error"] == "not_yet_available"


def test_draft_quiz_not_available(client, make_quiz, student_headers):
    quiz = make_quiz(status="DRAFT")

    response = submit(client, quiz, student_headers, {"q1": 1})

    assert response.status_code == 400
    assert response.json()["error"] == "quiz_not_available"


def test_other_class_cannot_submit(client, db, make_quiz, school):
    quiz = make_quiz()

    response = submit(client, quiz, auth_headers("student-b", "STUDENT"), {"q1": 1})

    assert response.status_code == 403
    assert response.json()["error"] == "access_denied"
    assert db.query(QuizAttempt).count() == 0


def test_unknown_quiz(client, school, student_headers):
    response = client.post(
        "/api/student/quizzes/00000000-0000-0000-0000-000000000000/submit",
        json={"answers": {}},
        headers=student_headers,
    )

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_requires_student_identity(client, make_quiz, school):
    quiz = make_quiz()

    anonymous = submit(client, quiz, {}, {"q1": 1})
    instructor = submit(client, quiz, auth_headers("instructor-1", "INSTRUCTOR"), {"q1": 1})
    no_profile = submit(client, quiz, auth_headers("ghost", "STUDENT"), {"q1": 1})
    garbage = submit(client, quiz, {"Authorization": "Bearer not-a-token"}, {"q1": 1})

    for response in (anonymous, instructor, no_profile, garbage):
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"


def test_conflict_is_reported_as_retryable(client, make_quiz, student_headers):
    quiz = make_quiz()

    with patch("app.services.assessment_service.attempt_recorder.record", side_effect=PersistenceConflict()):
        response = submit(client, quiz, student_headers, {"q1": 1})

    assert response.status_code == 409
    assert response.json()["error"] == "persistence_conflict"
    assert response.json()["retryable"] is True


def test_event_failure_does_not_fail_submission(client, db, make_quiz, student_headers):
    quiz = make_quiz()

    with patch("app.services.assessment_service.event_publisher.audit", side_effect=RuntimeError("redis down")):
        response = submit(client, quiz, student_headers, {"q1": 1})

    assert response.status_code == 201
    assert db.query(QuizAttempt).count() == 1


def test_history_is_ordered_and_respects_show_results(client, make_quiz, student_headers):
    shown = make_quiz(title="Shown")
    hidden = make_quiz(title="Hidden", show_results=False)
    for answer in (0, 1):
        submit(client, shown, student_headers, {"q1": answer})
        submit(client, hidden, student_headers, {"q1": answer})

    shown_history = client.get(f"/api/student/quizzes/{shown.id}/results", headers=student_headers).json()
    hidden_history = client.get(f"/api/student/quizzes/{hidden.id}/results", headers=student_headers).json()

    assert [a["attempt_number"] for a in shown_history["attempts"]] == [1, 2]
    assert [a["score"] for a in shown_history["attempts"]] == [0, 10]
    assert shown_history["attempts"][0]["graded_answers"][0]["correct_answer"] == 1
    assert all(a["graded_answers"] is None for a in hidden_history["attempts"])


def test_history_without_attempts_is_not_found(client, make_quiz, student_headers):
    quiz = make_quiz()

    response = client.get(f"/api/student/quizzes/{quiz.id}/results", headers=student_headers)

    assert response.status_code == 404


def test_history_of_other_class_denied(client, make_quiz, school):
    quiz = make_quiz()

    response = client.get(f"/api/student/quizzes/{quiz.id}/results", headers=auth_headers("student-b", "STUDENT"))

    assert response.status_code == 403


def test_get_quiz_for_taking(client, make_quiz, student_headers):
    quiz = make_quiz(time_limit=30, fullscreen_mode=True)

    body = client.get(f"/api/student/quizzes/{quiz.id}", headers=student_headers).json()

    assert body["total_points"] == 30
    assert body["time_limit"] == 30
    assert body["fullscreen_mode"] is True
    assert all("correct_answer" not in q for q in body["questions"])


def test_claimed_start_cannot_outrun_time_limit(client, make_quiz, student_headers):
    closes = utcnow() - timedelta(days=1)
    quiz = make_quiz(time_limit=30, available_until=closes)

    response = submit(client, quiz, student_headers, {"q1": 1}, started_at=closes - timedelta(minutes=5))

    assert response.status_code == 400
    assert response.json()["error"] == "expired"


def test_time_spent_capped_by_time_limit_and_grace(client, make_quiz, student_headers):
    quiz = make_quiz(time_limit=10)

    body = submit(client, quiz, student_headers, {"q1": 1}, started_at=utcnow() - timedelta(hours=2)).json()

    assert body["time_spent"] == 10 * 60 + 60


def test_start_within_time_limit_is_kept(client, make_quiz, student_headers):
    quiz = make_quiz(time_limit=30)

    body = submit(client, quiz, student_headers, {"q1": 1}, started_at=utcnow() - timedelta(minutes=10)).json()

    assert 599 <= body["time_spent"] <= 601
