"""
Quiz grading service
MULTIPLE_CHOICE / TRUE_FALSE: exact index match
SHORT_ANSWER / FILL_IN_BLANK: normalized text match
ESSAY: never auto-graded
"""
import logging
from typing import Any, Dict, List, Tuple

from app.exceptions import UnsupportedQuestionType
from app.schemas.attempt import GradedAnswer
from app.schemas.quiz import QuestionBase
from app.services.question_bank import QuestionBank

logger = logging.getLogger(__name__)


def normalize_text(value: Any) -> str:
    """Trim and case-fold; a missing answer becomes the empty string"""
    if value is None:
        return ""
    return str(value).strip().casefold()


class GradingService:
    """
    Deterministic grader for one submission

    Pure: no I/O, no clock, same inputs always give the same breakdown.
    Essay answers never earn points here, even when they match text exactly.
    """

    def grade(self, bank: QuestionBank, answers: Dict[str, Any]) -> List[GradedAnswer]:
        """
        Grade a complete submission

        Args:
            bank: Questions in quiz order
            answers: Raw answers {question_id: value}; unknown keys are ignored

        Returns:
            One GradedAnswer per bank question, in bank order
        """
        breakdown = []
        for question in bank:
            submitted = answers.get(question.id)
            is_correct, requires_review = self._grade_question(question, submitted)

            breakdown.append(GradedAnswer(
                question_id=question.id,
                type=question.type,
                submitted_value=submitted,
                correct_answer=getattr(question, "correct_answer", None),
                is_correct=is_correct,
                points=question.points,
                earned_points=question.points if is_correct else 0,
                requires_review=requires_review,
                explanation=question.explanation,
            ))

        correct = sum(1 for item in breakdown if item.is_correct)
        logger.debug(f"Graded {len(breakdown)} questions, {correct} correct")
        return breakdown

    def _grade_question(self, question: QuestionBase, submitted: Any) -> Tuple[bool, bool]:
        """Returns (is_correct, requires_review)"""
        q_type = question.type

        if q_type in ("MULTIPLE_CHOICE", "TRUE_FALSE"):
            return self._grade_choice(question, submitted), False
        if q_type in ("SHORT_ANSWER", "FILL_IN_BLANK"):
            return normalize_text(submitted) == normalize_text(question.correct_answer), False
        if q_type == "ESSAY":
            return False, True

        raise UnsupportedQuestionType(f"Unsupported question type: {q_type}")

    def _grade_choice(self, question: QuestionBase, submitted: Any) -> bool:
        # No coercion: "1" and True never match index 1
        if isinstance(submitted, bool) or not isinstance(submitted, int):
            return False
        return submitted == question.correct_answer


# Global instance
grading_service = GradingService()
