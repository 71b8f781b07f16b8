"""
Eligibility checks for starting a quiz attempt
"""
import logging
from datetime import datetime
from typing import AbstractSet
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.exceptions import (
    AccessDenied,
    AssessmentError,
    AttemptLimitExceeded,
    Expired,
    NotYetAvailable,
    QuizNotAvailable,
)
from app.models import Quiz, QuizAttempt
from app.schemas.quiz import QuizStatus
from app.utils.clock import ensure_utc

logger = logging.getLogger(__name__)


def count_attempts(db: Session, quiz_id: UUID, student_id: UUID) -> int:
    return db.query(func.count(QuizAttempt.id)).filter(
        QuizAttempt.quiz_id == quiz_id,
        QuizAttempt.student_id == student_id
    ).scalar() or 0


def has_class_access(student_class_ids: AbstractSet[UUID], quiz: Quiz) -> bool:
    return not student_class_ids.isdisjoint(quiz.class_ids)


class AttemptAuthorizer:
    """
    Gate run before any grading

    Checks run in a fixed order and the first failure wins:
    status, class access, opening time, closing time, attempt limit.
    """

    def check(
        self,
        quiz: Quiz,
        student_class_ids: AbstractSet[UUID],
        prior_attempts: int,
        now: datetime
    ) -> int:
        """
        Pure eligibility decision

        Returns:
            prior_attempts, for attempt numbering

        Raises:
            QuizNotAvailable, AccessDenied, NotYetAvailable, Expired, AttemptLimitExceeded
        """
        if quiz.status != QuizStatus.PUBLISHED.value:
            raise QuizNotAvailable()

        if not has_class_access(student_class_ids, quiz):
            raise AccessDenied()

        now = ensure_utc(now)
        available_from = ensure_utc(quiz.available_from)
        available_until = ensure_utc(quiz.available_until)

        if available_from is not None and now < available_from:
            raise NotYetAvailable()

        # Gates the start of an attempt; late completion is flagged, not rejected
        if available_until is not None and now > available_until:
            raise Expired()

        if quiz.allowed_attempts is not None and prior_attempts >= quiz.allowed_attempts:
            raise AttemptLimitExceeded(
                f"You have reached the maximum number of attempts ({quiz.allowed_attempts})"
            )

        return prior_attempts

    def authorize(
        self,
        db: Session,
        quiz: Quiz,
        student_id: UUID,
        student_class_ids: AbstractSet[UUID],
        now: datetime
    ) -> int:
        """Count the student's prior attempts and run check()"""
        prior_attempts = count_attempts(db, quiz.id, student_id)
        try:
            return self.check(quiz, student_class_ids, prior_attempts, now)
        except AssessmentError as e:
            logger.info(f"Attempt rejected for student {student_id} on quiz {quiz.id}: {type(e).__name__}")
            raise


# Global instance
attempt_authorizer = AttemptAuthorizer()
