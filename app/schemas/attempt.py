"""
Pydantic schemas for quiz submission, grading and attempt history
"""
from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from uuid import UUID


class QuizSubmission(BaseModel):
    """Schema for quiz submission"""
    answers: Dict[str, Any] = Field(..., description="{question_id: answer}")
    started_at: Optional[datetime] = Field(None, description="When the student opened the quiz")


class GradedAnswer(BaseModel):
    """Grading details for a single question"""
    question_id: str
    type: str
    submitted_value: Any = None
    correct_answer: Any = None
    is_correct: bool
    points: int
    earned_points: int
    requires_review: bool = False
    explanation: Optional[str] = None


class AttemptSummary(BaseModel):
    """Response after quiz grading"""
    attempt_id: UUID
    quiz_id: UUID
    attempt_number: int
    score: int
    max_score: int
    percentage: float
    passed: bool
    is_late: bool
    time_spent: int
    breakdown: Optional[List[GradedAnswer]] = None  # only when the quiz shows results


class AttemptRecord(BaseModel):
    """One stored attempt as shown in a student's history"""
    id: UUID
    attempt_number: int
    score: int
    max_score: int
    percentage: float
    passed: bool
    is_late: bool
    time_spent: int
    started_at: datetime
    completed_at: datetime
    graded_answers: Optional[List[GradedAnswer]] = None


class AttemptQuizInfo(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    show_results: bool
    passing_score: Optional[float] = None


class AttemptHistoryResponse(BaseModel):
    quiz: AttemptQuizInfo
    attempts: List[AttemptRecord]
