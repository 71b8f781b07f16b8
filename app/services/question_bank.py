"""
In-memory question bank for one quiz
"""
import logging
from typing import Any, Dict, Iterator, List, Sequence

from app.exceptions import UnsupportedQuestionType
from app.schemas.quiz import QUESTION_MODELS, QuestionBase

logger = logging.getLogger(__name__)

ANSWER_FIELDS = {"correct_answer", "explanation"}


class QuestionBank:
    """
    Ordered, typed questions of one quiz

    Built from stored JSON records; unknown question types are a
    configuration defect and fail loudly instead of being skipped.
    """

    def __init__(self, questions: Sequence[QuestionBase]):
        self._questions = list(questions)

    @classmethod
    def from_records(cls, records: List[Dict[str, Any]]) -> "QuestionBank":
        questions = []
        for record in records or []:
            q_type = record.get("type")
            model = QUESTION_MODELS.get(q_type)
            if model is None:
                logger.error(f"Unsupported question type in stored quiz: {q_type!r}")
                raise UnsupportedQuestionType(f"Unsupported question type: {q_type}")
            questions.append(model.model_validate(record))
        return cls(questions)

    def __iter__(self) -> Iterator[QuestionBase]:
        return iter(self._questions)

    def __len__(self) -> int:
        return len(self._questions)

    @property
    def question_ids(self) -> List[str]:
        return [q.id for q in self._questions]

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self._questions)

    def to_records(self) -> List[Dict[str, Any]]:
        return [q.model_dump(mode="json") for q in self._questions]

    def student_view(self) -> List[Dict[str, Any]]:
        """Questions without correct answers or explanations"""
        return [q.model_dump(mode="json", exclude=ANSWER_FIELDS) for q in self._questions]
