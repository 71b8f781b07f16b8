import os

# Set required environment variables before any app imports
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("RATE_LIMIT_PER_HOUR", "100000")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base, get_db
from app.main import app as fastapi_app
from app.models import Instructor, Quiz, SchoolClass, Student
from app.services.quiz_catalog import quiz_catalog
from app.utils.rate_limiter import rate_limiter
from app.utils.security import create_access_token

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

SAMPLE_QUESTIONS = [
    {
        "id": "q1",
        "type": "MULTIPLE_CHOICE",
        "prompt": "What is 2 + 2?",
        "options": ["3", "4", "5", "6"],
        "correct_answer": 1,
        "points": 10,
        "explanation": "2 + 2 equals 4",
    },
    {
        "id": "q2",
        "type": "TRUE_FALSE",
        "prompt": "The Earth is flat.",
        "options": ["True", "False"],
        "correct_answer": 1,
        "points": 10,
    },
    {
        "id": "q3",
        "type": "SHORT_ANSWER",
        "prompt": "What is the capital of France?",
        "correct_answer": "Paris",
        "points": 10,
    },
]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    rate_limiter.reset()
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def school(db):
    """Two classes, one instructor teaching 2A, students in 2A and 2B"""
    class_2a = SchoolClass(name="Grade 2 - A")
    class_2b = SchoolClass(name="Grade 2 - B")
    instructor = Instructor(user_id="instructor-1", full_name="Ms. Rivera")
    instructor.classes = [class_2a]
    other_instructor = Instructor(user_id="instructor-2", full_name="Mr. Okafor")
    other_instructor.classes = [class_2b]
    student_a = Student(user_id="student-a", student_number="S001", full_name="Ana Cruz")
    student_a.classes = [class_2a]
    student_b = Student(user_id="student-b", student_number="S002", full_name="Ben Ito")
    student_b.classes = [class_2b]

    db.add_all([class_2a, class_2b, instructor, other_instructor, student_a, student_b])
    db.commit()

    return {
        "class_2a": class_2a,
        "class_2b": class_2b,
        "instructor": instructor,
        "other_instructor": other_instructor,
        "student_a": student_a,
        "student_b": student_b,
    }


@pytest.fixture
def make_quiz(db, school):
    def _make_quiz(questions=None, status="PUBLISHED", classes=None, **fields):
        quiz = Quiz(
            title=fields.pop("title", "Mathematics - Chapter 1"),
            status=status,
            questions=SAMPLE_QUESTIONS if questions is None else questions,
            created_by_id=school["instructor"].id,
            attempt_count=0,
            **fields,
        )
        quiz.classes = [school["class_2a"]] if classes is None else classes
        quiz_catalog.recompute_total_points(quiz)
        db.add(quiz)
        db.commit()
        db.refresh(quiz)
        return quiz

    return _make_quiz


def auth_headers(user_id, role):
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def student_headers():
    return auth_headers("student-a", "STUDENT")


@pytest.fixture
def instructor_headers():
    return auth_headers("instructor-1", "INSTRUCTOR")


def hours(n):
    return timedelta(hours=n)
