"""
QuizAttempt model - stores graded, write-once quiz submissions
"""
from sqlalchemy import (
    Column, Integer, Float, Boolean, TIMESTAMP, ForeignKey, Uuid, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from app.database import Base, JSONType
import uuid


class QuizAttempt(Base):
    """
    Quiz attempts table - one row per submission, numbered per (quiz, student)

    The unique constraint is what rejects a second concurrent insert of the
    same attempt number.
    """
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint("quiz_id", "student_id", "attempt_number", name="uq_attempt_number"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)

    raw_answers = Column(JSONType)  # {question_id: submitted value}
    graded_answers = Column(JSONType)  # ordered per-question breakdown
    score = Column(Integer, nullable=False)
    max_score = Column(Integer, nullable=False)
    percentage = Column(Float, nullable=False)  # rounded to one decimal
    passed = Column(Boolean, nullable=False)
    is_late = Column(Boolean, nullable=False, default=False)

    started_at = Column(TIMESTAMP(timezone=True), nullable=False)
    completed_at = Column(TIMESTAMP(timezone=True), nullable=False)
    time_spent = Column(Integer, nullable=False)  # seconds
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    quiz = relationship("Quiz")
    student = relationship("Student")

    def __repr__(self):
        return (
            f"<QuizAttempt(quiz_id={self.quiz_id}, student_id={self.student_id}, "
            f"attempt={self.attempt_number}, score={self.score}/{self.max_score})>"
        )
