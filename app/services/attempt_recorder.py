"""
Attempt numbering and persistence
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import AttemptLimitExceeded, NotFound, PersistenceConflict, PersistenceUnavailable
from app.models import Quiz, QuizAttempt
from app.schemas.attempt import GradedAnswer
from app.services.attempt_authorizer import count_attempts
from app.services.scoring_policy import ScoreCard
from app.utils.clock import ensure_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordedAttempt:
    """Identity of a committed attempt, known without reading it back"""
    id: UUID
    attempt_number: int


class AttemptRecorder:
    """
    Writes one graded attempt as a single unit of work

    RACE: several submissions by the same student for the same quiz can all
    authorize against the same prior count. The quiz row lock (SELECT ... FOR
    UPDATE; a no-op on SQLite) serializes them, so the count re-read under the
    lock numbers them 1..N and the limit check against that count admits
    exactly ``allowed_attempts``. The unique constraint on
    (quiz_id, student_id, attempt_number) rejects any insert that slips past
    the lock, surfaced as PersistenceConflict.

    The same lock serializes instructor edits: if the questions changed
    between grading and recording, the grade is stale and the submission is
    rejected as a conflict.
    """

    def record(
        self,
        db: Session,
        quiz_id: UUID,
        student_id: UUID,
        prior_attempts: int,
        raw_answers: Dict[str, Any],
        breakdown: List[GradedAnswer],
        card: ScoreCard,
        started_at: Optional[datetime],
        completed_at: datetime,
        graded_questions: Optional[List[Dict[str, Any]]] = None,
        graded_total_points: Optional[int] = None
    ) -> RecordedAttempt:
        """
        Persist the attempt and bump the quiz's attempt counter

        Args:
            prior_attempts: Count returned by the authorizer
            graded_questions: Question records the breakdown was graded against
            graded_total_points: Quiz total_points read alongside them

        Raises:
            AttemptLimitExceeded: limit reached under the lock
            PersistenceConflict: number collision, or the quiz changed after grading
            PersistenceUnavailable: any other store failure
        """
        completed_at = ensure_utc(completed_at)
        started_at = ensure_utc(started_at) or completed_at
        attempt_id = uuid.uuid4()

        try:
            quiz = (
                db.query(Quiz)
                .filter(Quiz.id == quiz_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if quiz is None:
                raise NotFound("Quiz not found")

            if graded_questions is not None and quiz.questions != graded_questions:
                logger.warning(f"Quiz {quiz_id} questions changed while student {student_id} was being graded")
                raise PersistenceConflict("The quiz changed while your submission was being graded. Please retry.")
            if graded_total_points is not None and quiz.total_points != graded_total_points:
                logger.warning(f"Quiz {quiz_id} total_points changed while student {student_id} was being graded")
                raise PersistenceConflict("The quiz changed while your submission was being graded. Please retry.")

            current = count_attempts(db, quiz_id, student_id)
            if current != prior_attempts:
                logger.info(
                    f"Attempt count moved for student {student_id} on quiz {quiz_id}: "
                    f"authorized at {prior_attempts}, numbering from {current}"
                )

            if quiz.allowed_attempts is not None and current >= quiz.allowed_attempts:
                raise AttemptLimitExceeded(
                    f"You have reached the maximum number of attempts ({quiz.allowed_attempts})"
                )

            attempt_number = current + 1
            db.add(QuizAttempt(
                id=attempt_id,
                quiz_id=quiz_id,
                student_id=student_id,
                attempt_number=attempt_number,
                raw_answers=raw_answers,
                graded_answers=[item.model_dump(mode="json") for item in breakdown],
                score=card.score,
                max_score=card.max_score,
                percentage=card.percentage,
                passed=card.passed,
                is_late=card.is_late,
                started_at=started_at,
                completed_at=completed_at,
                time_spent=card.time_spent,
            ))

            db.execute(
                update(Quiz)
                .where(Quiz.id == quiz_id)
                .values(attempt_count=Quiz.attempt_count + 1)
            )
            db.commit()

        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Attempt number collision for student {student_id} on quiz {quiz_id}: {str(e.orig)}")
            raise PersistenceConflict()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to persist attempt for student {student_id} on quiz {quiz_id}: {str(e)}")
            raise PersistenceUnavailable("Your submission was graded but could not be saved. Please retry.")
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Attempt recorded: {attempt_id} (#{attempt_number}), "
            f"score: {card.score}/{card.max_score}"
        )
        return RecordedAttempt(id=attempt_id, attempt_number=attempt_number)


# Global instance
attempt_recorder = AttemptRecorder()
