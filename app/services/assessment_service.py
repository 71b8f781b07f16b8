"""
Student-facing assessment operations
Listing, submission (authorize -> grade -> score -> record) and attempt history
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import AccessDenied, NotFound, QuizNotAvailable
from app.models import Quiz, QuizAttempt, Student, quiz_classes
from app.schemas.quiz import QuizStatus
from app.services.attempt_authorizer import attempt_authorizer, has_class_access
from app.services.attempt_recorder import attempt_recorder
from app.services.grading_service import grading_service
from app.services.membership_service import membership_service
from app.services.question_bank import QuestionBank
from app.services.quiz_catalog import quiz_catalog
from app.services.scoring_policy import scoring_policy
from app.utils.clock import ensure_utc, utcnow
from app.utils.events import event_publisher

logger = logging.getLogger(__name__)


class AssessmentService:
    """Runs the submission pipeline and the student read paths"""

    def list_available_quizzes(
        self,
        db: Session,
        student: Student,
        now: Optional[datetime] = None,
        status_filter: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Published quizzes assigned to any of the student's classes

        Args:
            status_filter: None for all, "available" for open now,
                "upcoming" for not yet open

        Returns:
            Student-view dictionaries annotated with completion state
        """
        now = ensure_utc(now or utcnow())
        class_ids = membership_service.get_student_class_ids(db, student.id)
        if not class_ids:
            return []

        quizzes = (
            db.query(Quiz)
            .join(quiz_classes, quiz_classes.c.quiz_id == Quiz.id)
            .filter(
                Quiz.status == QuizStatus.PUBLISHED.value,
                quiz_classes.c.class_id.in_(class_ids)
            )
            .distinct()
            .all()
        )

        attempts_by_quiz = dict(
            db.query(QuizAttempt.quiz_id, func.count(QuizAttempt.id))
            .filter(QuizAttempt.student_id == student.id)
            .group_by(QuizAttempt.quiz_id)
            .all()
        )

        entries = []
        for quiz in quizzes:
            is_open = self._is_open(quiz, now)
            if status_filter == "available" and not is_open:
                continue
            if status_filter == "upcoming":
                opens = ensure_utc(quiz.available_from)
                if opens is None or opens <= now:
                    continue
            entries.append(self._student_view(quiz, attempts_by_quiz.get(quiz.id, 0), is_open))

        # Earliest opening first, quizzes without an opening time last
        entries.sort(key=lambda e: (e["available_from"] is None, e["available_from"] or now, e["title"]))
        return entries

    def get_quiz_for_student(
        self,
        db: Session,
        student: Student,
        quiz_id: UUID,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        now = ensure_utc(now or utcnow())
        quiz = quiz_catalog.get_quiz(db, quiz_id)
        self._check_access(db, student, quiz)
        if quiz.status != QuizStatus.PUBLISHED.value:
            raise QuizNotAvailable()

        used = db.query(func.count(QuizAttempt.id)).filter(
            QuizAttempt.quiz_id == quiz.id,
            QuizAttempt.student_id == student.id
        ).scalar() or 0
        return self._student_view(quiz, used, self._is_open(quiz, now))

    def submit_attempt(
        self,
        db: Session,
        student: Student,
        quiz_id: UUID,
        raw_answers: Dict[str, Any],
        started_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
        client: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Authorize, grade, score and record one submission

        Each stage short-circuits with its own error; nothing is persisted
        unless every earlier stage passed. Audit and notification events are
        published only after the attempt is committed.

        Returns:
            AttemptSummary dictionary; "breakdown" only when the quiz shows results
        """
        completed_at = ensure_utc(now or utcnow())
        started_at = ensure_utc(started_at) or completed_at

        quiz = quiz_catalog.get_quiz(db, quiz_id)
        graded_questions = quiz.questions
        graded_total_points = quiz.total_points
        show_results = quiz.show_results

        # A claimed start may not predate the time limit plus grace
        if quiz.time_limit:
            earliest = completed_at - timedelta(minutes=quiz.time_limit, seconds=settings.TIME_LIMIT_GRACE_SECONDS)
            if started_at < earliest:
                logger.warning(
                    f"Quiz {quiz.id}: student {student.id} claimed start {started_at.isoformat()}, "
                    f"clamped to {earliest.isoformat()}"
                )
                started_at = earliest

        # The availability window gates the start of the attempt
        window_check_at = min(started_at, completed_at)
        class_ids = membership_service.get_student_class_ids(db, student.id)

        prior_attempts = attempt_authorizer.authorize(db, quiz, student.id, class_ids, window_check_at)

        bank = QuestionBank.from_records(quiz.questions)
        if bank.total_points != quiz.total_points:
            logger.warning(
                f"Quiz {quiz.id} total_points out of sync ({quiz.total_points} stored, "
                f"{bank.total_points} computed)"
            )

        breakdown = grading_service.grade(bank, raw_answers)
        card = scoring_policy.score(
            breakdown,
            passing_score=quiz.passing_score,
            available_until=quiz.available_until,
            started_at=started_at,
            completed_at=completed_at,
        )

        logger.info(
            f"Quiz {quiz.id} graded for student {student.id}: "
            f"{card.score}/{card.max_score} ({card.percentage}%), late={card.is_late}"
        )

        attempt = attempt_recorder.record(
            db,
            quiz_id=quiz.id,
            student_id=student.id,
            prior_attempts=prior_attempts,
            raw_answers=raw_answers,
            breakdown=breakdown,
            card=card,
            started_at=started_at,
            completed_at=completed_at,
            graded_questions=graded_questions,
            graded_total_points=graded_total_points,
        )

        summary = {
            "attempt_id": attempt.id,
            "quiz_id": quiz_id,
            "attempt_number": attempt.attempt_number,
            "score": card.score,
            "max_score": card.max_score,
            "percentage": card.percentage,
            "passed": card.passed,
            "is_late": card.is_late,
            "time_spent": card.time_spent,
            "breakdown": breakdown if show_results else None,
        }

        self._publish_submission(student, quiz, summary, client)
        return summary

    def get_attempt_history(
        self,
        db: Session,
        student: Student,
        quiz_id: UUID
    ) -> Dict[str, Any]:
        """Attempts ordered by attempt_number ascending"""
        quiz = quiz_catalog.get_quiz(db, quiz_id)
        self._check_access(db, student, quiz)

        attempts = (
            db.query(QuizAttempt)
            .filter(QuizAttempt.quiz_id == quiz.id, QuizAttempt.student_id == student.id)
            .order_by(QuizAttempt.attempt_number.asc())
            .all()
        )
        if not attempts:
            raise NotFound("No results found for this quiz")

        return {
            "quiz": {
                "id": quiz.id,
                "title": quiz.title,
                "description": quiz.description,
                "show_results": quiz.show_results,
                "passing_score": quiz.passing_score,
            },
            "attempts": [
                {
                    "id": a.id,
                    "attempt_number": a.attempt_number,
                    "score": a.score,
                    "max_score": a.max_score,
                    "percentage": a.percentage,
                    "passed": a.passed,
                    "is_late": a.is_late,
                    "time_spent": a.time_spent,
                    "started_at": ensure_utc(a.started_at),
                    "completed_at": ensure_utc(a.completed_at),
                    "graded_answers": a.graded_answers if quiz.show_results else None,
                }
                for a in attempts
            ],
        }

    def _check_access(self, db: Session, student: Student, quiz: Quiz) -> None:
        class_ids = membership_service.get_student_class_ids(db, student.id)
        if not has_class_access(class_ids, quiz):
            raise AccessDenied()

    def _is_open(self, quiz: Quiz, now: datetime) -> bool:
        opens = ensure_utc(quiz.available_from)
        closes = ensure_utc(quiz.available_until)
        return (opens is None or now >= opens) and (closes is None or now <= closes)

    def _student_view(self, quiz: Quiz, attempts_used: int, is_open: bool) -> Dict[str, Any]:
        bank = QuestionBank.from_records(quiz.questions)
        remaining = None
        if quiz.allowed_attempts is not None:
            remaining = max(0, quiz.allowed_attempts - attempts_used)

        return {
            "id": quiz.id,
            "title": quiz.title,
            "description": quiz.description,
            "instructions": quiz.instructions,
            "questions": bank.student_view(),
            "total_questions": len(bank),
            "total_points": quiz.total_points,
            "time_limit": quiz.time_limit,
            "allowed_attempts": quiz.allowed_attempts,
            "passing_score": quiz.passing_score,
            "shuffle_questions": quiz.shuffle_questions,
            "randomize_options": quiz.randomize_options,
            "fullscreen_mode": quiz.fullscreen_mode,
            "disable_copy_paste": quiz.disable_copy_paste,
            "require_proctoring": quiz.require_proctoring,
            "available_from": ensure_utc(quiz.available_from),
            "available_until": ensure_utc(quiz.available_until),
            "is_open": is_open,
            "is_completed": attempts_used > 0,
            "attempts_used": attempts_used,
            "attempts_remaining": remaining,
        }

    def _publish_submission(
        self,
        student: Student,
        quiz: Quiz,
        summary: Dict[str, Any],
        client: Optional[Dict[str, str]]
    ) -> None:
        """Fire-and-forget side effects; never affects the recorded result"""
        try:
            event_publisher.audit(
                "QUIZ_SUBMITTED", student.user_id, "Quiz", quiz.id,
                {
                    "score": summary["score"],
                    "percentage": summary["percentage"],
                    "passed": summary["passed"],
                    "time_spent": summary["time_spent"],
                    "attempt_number": summary["attempt_number"],
                    "is_late": summary["is_late"],
                },
                **(client or {})
            )
            if quiz.created_by is not None:
                student_name = student.full_name or student.student_number or "A student"
                event_publisher.notify(
                    [quiz.created_by.user_id],
                    type="QUIZ_RESULT",
                    title="Quiz Submission Completed",
                    message=f"{student_name} has submitted {quiz.title}",
                    link="/quiz-results",
                )
        except Exception as e:
            logger.error(f"Post-submission events failed for quiz {quiz.id}: {str(e)}")


# Global instance
assessment_service = AssessmentService()
