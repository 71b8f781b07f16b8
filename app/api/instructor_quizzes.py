"""
Instructor quiz API endpoints: authoring, lifecycle and results
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import Dict, Optional
from uuid import UUID
import logging

from app.api.deps import get_client_context, get_current_instructor
from app.database import get_db
from app.models import Instructor
from app.schemas.analytics import QuizResultsResponse
from app.schemas.quiz import (
    QuizCreateRequest,
    QuizListResponse,
    QuizResponse,
    QuizStatus,
    QuizStatusRequest,
    QuizUpdateRequest,
)
from app.services.analytics_service import analytics_service
from app.services.quiz_catalog import quiz_catalog


router = APIRouter(prefix="/api/instructor", tags=["instructor"])
logger = logging.getLogger(__name__)


@router.get("/quizzes", response_model=QuizListResponse)
async def list_quizzes(
    status: Optional[QuizStatus] = None,
    instructor: Instructor = Depends(get_current_instructor),
    db: Session = Depends(get_db),
):
    """Quizzes created by the instructor, newest first"""
    quizzes = quiz_catalog.list_instructor_quizzes(db, instructor, status)
    return QuizListResponse(quizzes=[quiz_catalog.to_response(q) for q in quizzes])


@router.post("/quizzes", response_model=QuizResponse, status_code=201)
async def create_quiz(
    request: QuizCreateRequest,
    instructor: Instructor = Depends(get_current_instructor),
    client: Dict[str, str] = Depends(get_client_context),
    db: Session = Depends(get_db),
):
    """
    Create a quiz in DRAFT

    - Classes default to every class the instructor teaches
    - total_points is derived from the questions
    """
    quiz = quiz_catalog.create_quiz(db, instructor, request, client)
    return QuizResponse(**quiz_catalog.to_response(quiz))


@router.get("/quizzes/{quiz_id}", response_model=QuizResponse)
async def get_quiz(
    quiz_id: UUID,
    instructor: Instructor = Depends(get_current_instructor),
    db: Session = Depends(get_db),
):
    quiz = quiz_catalog.get_owned_quiz(db, instructor, quiz_id)
    return QuizResponse(**quiz_catalog.to_response(quiz))


@router.put("/quizzes/{quiz_id}", response_model=QuizResponse)
async def update_quiz(
    quiz_id: UUID,
    request: QuizUpdateRequest,
    instructor: Instructor = Depends(get_current_instructor),
    client: Dict[str, str] = Depends(get_client_context),
    db: Session = Depends(get_db),
):
    """Update a quiz; rejected once any student has submitted"""
    quiz = quiz_catalog.update_quiz(db, instructor, quiz_id, request, client)
    return QuizResponse(**quiz_catalog.to_response(quiz))


@router.post("/quizzes/{quiz_id}/status", response_model=QuizResponse)
async def change_quiz_status(
    quiz_id: UUID,
    request: QuizStatusRequest,
    instructor: Instructor = Depends(get_current_instructor),
    client: Dict[str, str] = Depends(get_client_context),
    db: Session = Depends(get_db),
):
    """Publish a draft or archive a published quiz"""
    quiz = quiz_catalog.change_status(db, instructor, quiz_id, request.status, client)
    return QuizResponse(**quiz_catalog.to_response(quiz))


@router.delete("/quizzes/{quiz_id}", status_code=204)
async def delete_quiz(
    quiz_id: UUID,
    instructor: Instructor = Depends(get_current_instructor),
    client: Dict[str, str] = Depends(get_client_context),
    db: Session = Depends(get_db),
):
    """Delete a draft quiz that has no submissions"""
    quiz_catalog.delete_quiz(db, instructor, quiz_id, client)
    return Response(status_code=204)


@router.get("/quizzes/{quiz_id}/results", response_model=QuizResultsResponse)
async def get_quiz_results(
    quiz_id: UUID,
    instructor: Instructor = Depends(get_current_instructor),
    db: Session = Depends(get_db),
):
    """
    Results for one quiz

    Returns:
    - Every attempt, best percentage first
    - Average / highest / lowest percentage and pass rate
    - Per-question correct rate and essays awaiting review
    """
    return QuizResultsResponse(**analytics_service.get_quiz_results(db, instructor, quiz_id))
