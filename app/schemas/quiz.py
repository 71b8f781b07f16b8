"""
Pydantic schemas for quizzes and their questions
"""
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field, StrictInt, field_validator, model_validator
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID
import uuid


class QuizStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class QuestionBase(BaseModel):
    """Fields shared by every question variant"""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, min_length=1, max_length=64)
    prompt: str = Field(..., min_length=1)
    points: int = Field(1, gt=0, description="Points awarded for a correct answer")
    explanation: Optional[str] = None


class MultipleChoiceQuestion(QuestionBase):
    type: Literal["MULTIPLE_CHOICE"] = "MULTIPLE_CHOICE"
    options: List[str] = Field(..., min_length=2)
    correct_answer: StrictInt  # index into options

    @model_validator(mode="after")
    def check_answer_index(self):
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError("correct_answer must be an index into options")
        return self


class TrueFalseQuestion(QuestionBase):
    type: Literal["TRUE_FALSE"] = "TRUE_FALSE"
    options: List[str] = Field(default_factory=lambda: ["True", "False"], min_length=2, max_length=2)
    correct_answer: StrictInt

    @field_validator("correct_answer")
    @classmethod
    def check_answer_index(cls, v):
        if v not in (0, 1):
            raise ValueError("correct_answer must be 0 or 1")
        return v


class ShortAnswerQuestion(QuestionBase):
    type: Literal["SHORT_ANSWER"] = "SHORT_ANSWER"
    correct_answer: str


class FillInBlankQuestion(QuestionBase):
    type: Literal["FILL_IN_BLANK"] = "FILL_IN_BLANK"
    correct_answer: str


class EssayQuestion(QuestionBase):
    """Never auto-graded; answers are left for manual review"""
    type: Literal["ESSAY"] = "ESSAY"


Question = Annotated[
    Union[
        MultipleChoiceQuestion,
        TrueFalseQuestion,
        ShortAnswerQuestion,
        FillInBlankQuestion,
        EssayQuestion,
    ],
    Field(discriminator="type"),
]

QUESTION_MODELS = {
    "MULTIPLE_CHOICE": MultipleChoiceQuestion,
    "TRUE_FALSE": TrueFalseQuestion,
    "SHORT_ANSWER": ShortAnswerQuestion,
    "FILL_IN_BLANK": FillInBlankQuestion,
    "ESSAY": EssayQuestion,
}


def _check_unique_ids(questions):
    if questions is None:
        return questions
    seen = set()
    for q in questions:
        if q.id in seen:
            raise ValueError(f"Duplicate question id: {q.id}")
        seen.add(q.id)
    return questions


def _check_window(available_from, available_until):
    if available_from and available_until and available_from > available_until:
        raise ValueError("available_from must not be after available_until")


class QuizCreateRequest(BaseModel):
    """Request schema for quiz creation; quizzes always start as DRAFT"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)
    time_limit: Optional[int] = Field(None, gt=0, description="Minutes")
    allowed_attempts: Optional[int] = Field(None, ge=1)
    passing_score: Optional[float] = Field(None, ge=0, le=100)
    show_results: bool = True
    shuffle_questions: bool = False
    randomize_options: bool = False
    fullscreen_mode: bool = False
    disable_copy_paste: bool = False
    require_proctoring: bool = False
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    class_ids: Optional[List[UUID]] = None

    @field_validator("questions")
    @classmethod
    def check_unique_ids(cls, v):
        return _check_unique_ids(v)

    @model_validator(mode="after")
    def check_window(self):
        _check_window(self.available_from, self.available_until)
        return self


class QuizUpdateRequest(BaseModel):
    """Partial update; only fields present in the request body are applied"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    questions: Optional[List[Question]] = None
    time_limit: Optional[int] = Field(None, gt=0)
    allowed_attempts: Optional[int] = Field(None, ge=1)
    passing_score: Optional[float] = Field(None, ge=0, le=100)
    show_results: Optional[bool] = None
    shuffle_questions: Optional[bool] = None
    randomize_options: Optional[bool] = None
    fullscreen_mode: Optional[bool] = None
    disable_copy_paste: Optional[bool] = None
    require_proctoring: Optional[bool] = None
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    class_ids: Optional[List[UUID]] = None

    @field_validator("questions")
    @classmethod
    def check_unique_ids(cls, v):
        return _check_unique_ids(v)

    @model_validator(mode="after")
    def check_window(self):
        _check_window(self.available_from, self.available_until)
        return self


class QuizStatusRequest(BaseModel):
    status: QuizStatus


class QuizResponse(BaseModel):
    """Instructor view of a quiz, answers included"""
    id: UUID
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    status: QuizStatus
    questions: List[Dict[str, Any]]
    total_questions: int
    total_points: int
    time_limit: Optional[int] = None
    allowed_attempts: Optional[int] = None
    passing_score: Optional[float] = None
    show_results: bool
    shuffle_questions: bool
    randomize_options: bool
    fullscreen_mode: bool
    disable_copy_paste: bool
    require_proctoring: bool
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    class_ids: List[UUID]
    attempt_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuizListResponse(BaseModel):
    quizzes: List[QuizResponse]


class StudentQuizResponse(BaseModel):
    """Student view of a quiz: no correct answers or explanations"""
    id: UUID
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    questions: List[Dict[str, Any]]
    total_questions: int
    total_points: int
    time_limit: Optional[int] = None
    allowed_attempts: Optional[int] = None
    passing_score: Optional[float] = None
    shuffle_questions: bool
    randomize_options: bool
    fullscreen_mode: bool
    disable_copy_paste: bool
    require_proctoring: bool
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    is_open: bool
    is_completed: bool
    attempts_used: int
    attempts_remaining: Optional[int] = None


class StudentQuizListResponse(BaseModel):
    quizzes: List[StudentQuizResponse]
