"""
Quiz catalog: lifecycle state, derived totals and instructor-side CRUD
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import (
    AccessDenied,
    InvalidQuiz,
    InvalidTransition,
    NotFound,
    PersistenceUnavailable,
    QuizLocked,
    ReloadFailed,
)
from app.models import Instructor, Quiz, SchoolClass
from app.schemas.quiz import QuestionBase, QuizCreateRequest, QuizStatus, QuizUpdateRequest
from app.services.membership_service import membership_service
from app.services.question_bank import QuestionBank
from app.utils.clock import ensure_utc
from app.utils.events import event_publisher

logger = logging.getLogger(__name__)

# Forward-only lifecycle
ALLOWED_TRANSITIONS = {
    (QuizStatus.DRAFT, QuizStatus.PUBLISHED),
    (QuizStatus.PUBLISHED, QuizStatus.ARCHIVED),
}

SCALAR_FIELDS = (
    "title",
    "description",
    "instructions",
    "time_limit",
    "allowed_attempts",
    "passing_score",
    "show_results",
    "shuffle_questions",
    "randomize_options",
    "fullscreen_mode",
    "disable_copy_paste",
    "require_proctoring",
)


class QuizCatalog:
    """Owns quiz status and keeps total_points equal to the question sum"""

    # Lifecycle rules

    def transition(self, quiz: Quiz, target: QuizStatus) -> Quiz:
        current = QuizStatus(quiz.status)
        target = QuizStatus(target)

        if (current, target) not in ALLOWED_TRANSITIONS:
            raise InvalidTransition(f"Cannot change quiz status from {current.value} to {target.value}")

        if target == QuizStatus.PUBLISHED:
            if not quiz.questions:
                raise InvalidTransition("Cannot publish a quiz without questions")
            self.recompute_total_points(quiz)

        quiz.status = target.value
        return quiz

    def recompute_total_points(self, quiz: Quiz) -> int:
        quiz.total_points = QuestionBank.from_records(quiz.questions).total_points
        return quiz.total_points

    def set_questions(self, quiz: Quiz, questions: Sequence[QuestionBase]) -> None:
        if len(questions) > settings.MAX_QUIZ_QUESTIONS:
            raise InvalidQuiz(f"A quiz may have at most {settings.MAX_QUIZ_QUESTIONS} questions")
        quiz.questions = QuestionBank(questions).to_records()
        self.recompute_total_points(quiz)

    def can_modify(self, quiz: Quiz) -> bool:
        return (quiz.attempt_count or 0) == 0

    def can_delete(self, quiz: Quiz) -> bool:
        return self.can_modify(quiz) and quiz.status == QuizStatus.DRAFT.value

    # Lookups

    def get_quiz(self, db: Session, quiz_id: UUID, for_update: bool = False) -> Quiz:
        """
        Load one quiz

        With for_update the row is locked until the transaction ends and
        re-read from the database, so guards see concurrent commits.
        """
        query = db.query(Quiz).filter(Quiz.id == quiz_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        quiz = query.first()
        if quiz is None:
            raise NotFound("Quiz not found")
        return quiz

    def get_owned_quiz(
        self,
        db: Session,
        instructor: Instructor,
        quiz_id: UUID,
        for_update: bool = False
    ) -> Quiz:
        quiz = self.get_quiz(db, quiz_id, for_update=for_update)
        if quiz.created_by_id != instructor.id:
            raise AccessDenied("You do not have permission to modify this quiz")
        return quiz

    def list_instructor_quizzes(
        self,
        db: Session,
        instructor: Instructor,
        status: Optional[QuizStatus] = None
    ) -> List[Quiz]:
        query = db.query(Quiz).filter(Quiz.created_by_id == instructor.id)
        if status is not None:
            query = query.filter(Quiz.status == QuizStatus(status).value)
        return query.order_by(Quiz.created_at.desc()).all()

    # Mutations
    #
    # Updates, transitions and deletes hold the quiz row lock from the guard
    # check to the commit; the attempt recorder takes the same lock.

    def create_quiz(
        self,
        db: Session,
        instructor: Instructor,
        request: QuizCreateRequest,
        client: Optional[Dict[str, str]] = None
    ) -> Quiz:
        classes = self._resolve_classes(db, instructor, request.class_ids)

        quiz = Quiz(
            id=uuid.uuid4(),
            status=QuizStatus.DRAFT.value,
            created_by_id=instructor.id,
            attempt_count=0,
            available_from=ensure_utc(request.available_from),
            available_until=ensure_utc(request.available_until),
            **{field: getattr(request, field) for field in SCALAR_FIELDS},
        )
        quiz.classes = classes
        self.set_questions(quiz, request.questions)
        quiz_id, total_points = quiz.id, quiz.total_points

        db.add(quiz)
        self._commit(db, "create quiz")

        logger.info(f"Quiz created: {quiz_id} ({len(request.questions)} questions, {total_points} points)")
        event_publisher.audit(
            "QUIZ_CREATED", instructor.user_id, "Quiz", quiz_id,
            {"title": request.title, "total_points": total_points},
            **(client or {})
        )
        return self._reload(db, quiz, quiz_id)

    def update_quiz(
        self,
        db: Session,
        instructor: Instructor,
        quiz_id: UUID,
        request: QuizUpdateRequest,
        client: Optional[Dict[str, str]] = None
    ) -> Quiz:
        quiz = self.get_owned_quiz(db, instructor, quiz_id, for_update=True)
        if not self.can_modify(quiz):
            db.rollback()
            raise QuizLocked()

        changes = request.model_dump(exclude_unset=True)

        for field in SCALAR_FIELDS:
            if field in changes:
                if field in ("title", "show_results") and changes[field] is None:
                    continue
                setattr(quiz, field, changes[field])

        for field in ("available_from", "available_until"):
            if field in changes:
                setattr(quiz, field, ensure_utc(changes[field]))

        available_from = ensure_utc(quiz.available_from)
        available_until = ensure_utc(quiz.available_until)
        if available_from and available_until and available_from > available_until:
            db.rollback()
            raise InvalidQuiz("available_from must not be after available_until")

        if changes.get("class_ids") is not None:
            quiz.classes = self._resolve_classes(db, instructor, request.class_ids)

        if request.questions is not None:
            self.set_questions(quiz, request.questions)

        title = quiz.title
        self._commit(db, "update quiz")

        logger.info(f"Quiz updated: {quiz_id} (fields: {sorted(changes)})")
        event_publisher.audit(
            "QUIZ_UPDATED", instructor.user_id, "Quiz", quiz_id,
            {"title": title, "fields": sorted(changes)},
            **(client or {})
        )
        return self._reload(db, quiz, quiz_id)

    def change_status(
        self,
        db: Session,
        instructor: Instructor,
        quiz_id: UUID,
        target: QuizStatus,
        client: Optional[Dict[str, str]] = None
    ) -> Quiz:
        quiz = self.get_owned_quiz(db, instructor, quiz_id, for_update=True)
        previous = quiz.status

        try:
            self.transition(quiz, target)
        except InvalidTransition:
            db.rollback()
            raise

        current, title, class_ids = quiz.status, quiz.title, quiz.class_ids
        self._commit(db, "change quiz status")

        logger.info(f"Quiz {quiz_id} status: {previous} -> {current}")
        event_publisher.audit(
            "QUIZ_STATUS_CHANGED", instructor.user_id, "Quiz", quiz_id,
            {"from": previous, "to": current},
            **(client or {})
        )

        if current == QuizStatus.PUBLISHED.value:
            self._announce(db, instructor, title, class_ids)
        return self._reload(db, quiz, quiz_id)

    def delete_quiz(
        self,
        db: Session,
        instructor: Instructor,
        quiz_id: UUID,
        client: Optional[Dict[str, str]] = None
    ) -> None:
        quiz = self.get_owned_quiz(db, instructor, quiz_id, for_update=True)
        if not self.can_delete(quiz):
            db.rollback()
            raise QuizLocked("Only draft quizzes without submissions can be deleted")

        title = quiz.title
        db.delete(quiz)
        self._commit(db, "delete quiz")

        logger.info(f"Quiz deleted: {quiz_id}")
        event_publisher.audit(
            "QUIZ_DELETED", instructor.user_id, "Quiz", quiz_id,
            {"title": title},
            **(client or {})
        )

    # Presentation

    def to_response(self, quiz: Quiz) -> Dict[str, Any]:
        """Instructor view, including answers"""
        return {
            "id": quiz.id,
            "title": quiz.title,
            "description": quiz.description,
            "instructions": quiz.instructions,
            "status": quiz.status,
            "questions": quiz.questions or [],
            "total_questions": len(quiz.questions or []),
            "total_points": quiz.total_points,
            "time_limit": quiz.time_limit,
            "allowed_attempts": quiz.allowed_attempts,
            "passing_score": quiz.passing_score,
            "show_results": quiz.show_results,
            "shuffle_questions": quiz.shuffle_questions,
            "randomize_options": quiz.randomize_options,
            "fullscreen_mode": quiz.fullscreen_mode,
            "disable_copy_paste": quiz.disable_copy_paste,
            "require_proctoring": quiz.require_proctoring,
            "available_from": ensure_utc(quiz.available_from),
            "available_until": ensure_utc(quiz.available_until),
            "class_ids": sorted(quiz.class_ids, key=str),
            "attempt_count": quiz.attempt_count,
            "created_at": quiz.created_at,
            "updated_at": quiz.updated_at,
        }

    # Internals

    def _resolve_classes(
        self,
        db: Session,
        instructor: Instructor,
        class_ids: Optional[List[UUID]]
    ) -> List[SchoolClass]:
        """Requested classes must be a subset of the instructor's; default is all of them"""
        allowed = membership_service.get_instructor_class_ids(db, instructor.id)
        requested = set(class_ids) if class_ids is not None else allowed

        if not requested <= allowed:
            raise AccessDenied("Cannot assign quiz to unassigned classes")
        if not requested:
            return []
        return db.query(SchoolClass).filter(SchoolClass.id.in_(requested)).all()

    def _commit(self, db: Session, action: str) -> None:
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to {action}: {str(e)}")
            raise PersistenceUnavailable()

    def _reload(self, db: Session, quiz: Quiz, quiz_id: UUID) -> Quiz:
        """Read back a committed quiz; the change itself is already durable"""
        try:
            db.refresh(quiz)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Quiz {quiz_id} saved but could not be reloaded: {str(e)}")
            raise ReloadFailed()
        return quiz

    def _announce(self, db: Session, instructor: Instructor, title: str, class_ids) -> None:
        """Notify students of the quiz's classes; never fails the publish"""
        try:
            recipients = membership_service.get_class_student_user_ids(db, class_ids)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not resolve recipients for '{title}': {str(e)}")
            return

        posted_by = f" by {instructor.full_name}" if instructor.full_name else ""
        event_publisher.notify(
            recipients,
            type="QUIZ_ASSIGNED",
            title="New Quiz Posted",
            message=f"{title} has been posted{posted_by}",
            link="/quizzes",
        )


# Global instance
quiz_catalog = QuizCatalog()
