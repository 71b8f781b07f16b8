"""
Pydantic schemas for instructor result analytics
"""
from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID


class QuizResultEntry(BaseModel):
    """One student's attempt as seen by the instructor"""
    attempt_id: UUID
    student_id: UUID
    student_name: str
    student_number: Optional[str] = None
    attempt_number: int
    score: int
    max_score: int
    percentage: float
    passed: bool
    is_late: bool
    time_spent: int
    completed_at: datetime
    needs_review: bool


class QuizResultStats(BaseModel):
    total_submissions: int
    unique_students: int
    average_score: float
    highest_score: float
    lowest_score: float
    pass_rate: float
    late_submissions: int


class QuestionStat(BaseModel):
    """How a single question fared across all attempts"""
    question_id: str
    type: str
    prompt: str
    attempts: int
    correct_rate: float
    pending_review: int


class QuizResultsQuizInfo(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    passing_score: Optional[float] = None
    total_points: int


class QuizResultsResponse(BaseModel):
    """Per-quiz results and summary statistics"""
    quiz: QuizResultsQuizInfo
    results: List[QuizResultEntry]
    stats: QuizResultStats
    question_stats: List[QuestionStat]
