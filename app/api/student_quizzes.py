"""
Student quiz API endpoints: listing, submission and attempt history
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Dict, Optional
from uuid import UUID
import logging

from app.api.deps import get_client_context, get_current_student
from app.database import get_db
from app.models import Student
from app.schemas.attempt import AttemptHistoryResponse, AttemptSummary, QuizSubmission
from app.schemas.quiz import StudentQuizListResponse, StudentQuizResponse
from app.services.assessment_service import assessment_service


router = APIRouter(prefix="/api/student", tags=["student"])
logger = logging.getLogger(__name__)


@router.get("/quizzes", response_model=StudentQuizListResponse)
async def list_quizzes(
    status: Optional[str] = Query(None, pattern="^(available|upcoming)$"),
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    """
    List published quizzes assigned to the student's classes

    - `status=available`: open right now
    - `status=upcoming`: opens later
    - Each quiz carries completion state and remaining attempts
    """
    quizzes = assessment_service.list_available_quizzes(db, student, status_filter=status)
    return StudentQuizListResponse(quizzes=quizzes)


@router.get("/quizzes/{quiz_id}", response_model=StudentQuizResponse)
async def get_quiz(
    quiz_id: UUID,
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    """Quiz questions for taking, without answers"""
    return StudentQuizResponse(**assessment_service.get_quiz_for_student(db, student, quiz_id))


@router.post("/quizzes/{quiz_id}/submit", response_model=AttemptSummary, status_code=201)
async def submit_quiz(
    quiz_id: UUID,
    submission: QuizSubmission,
    student: Student = Depends(get_current_student),
    client: Dict[str, str] = Depends(get_client_context),
    db: Session = Depends(get_db),
):
    """
    Submit and grade a quiz attempt

    Grading strategy:
    - Multiple choice / true-false: exact option index
    - Short answer / fill in the blank: trimmed, case-insensitive match
    - Essay: recorded for manual review, no automatic credit

    Returns score, percentage, pass/late flags and the attempt number.
    The per-question breakdown is included only when the quiz shows results.
    """
    logger.info(f"Submission for quiz {quiz_id} from student {student.id}")

    summary = assessment_service.submit_attempt(
        db,
        student,
        quiz_id,
        raw_answers=submission.answers,
        started_at=submission.started_at,
        client=client,
    )
    return AttemptSummary(**summary)


@router.get("/quizzes/{quiz_id}/results", response_model=AttemptHistoryResponse)
async def get_results(
    quiz_id: UUID,
    student: Student = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    """All of the student's attempts for a quiz, oldest first"""
    return AttemptHistoryResponse(**assessment_service.get_attempt_history(db, student, quiz_id))
