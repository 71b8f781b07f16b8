"""
Analytics service for instructor-facing quiz results
"""
import logging
from typing import Dict, List, Any
from sqlalchemy.orm import Session
from uuid import UUID
from collections import defaultdict
from app.exceptions import AccessDenied
from app.models import Instructor, Quiz, QuizAttempt
from app.services.membership_service import membership_service
from app.services.question_bank import QuestionBank
from app.services.quiz_catalog import quiz_catalog
from app.services.scoring_policy import round1
from app.utils.clock import ensure_utc

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Service for generating per-quiz result analytics"""

    def get_quiz_results(self, db: Session, instructor: Instructor, quiz_id: UUID) -> Dict[str, Any]:
        """
        Get every attempt for a quiz plus summary statistics

        Args:
            db: Database session
            instructor: Requesting instructor
            quiz_id: Quiz UUID

        Returns:
            Dictionary with quiz info, results, stats and per-question stats
        """
        quiz = quiz_catalog.get_quiz(db, quiz_id)

        # Creator, or an instructor teaching one of the quiz's classes
        instructor_classes = membership_service.get_instructor_class_ids(db, instructor.id)
        if quiz.created_by_id != instructor.id and instructor_classes.isdisjoint(quiz.class_ids):
            raise AccessDenied()

        attempts = (
            db.query(QuizAttempt)
            .filter(QuizAttempt.quiz_id == quiz.id)
            .order_by(QuizAttempt.percentage.desc(), QuizAttempt.completed_at.desc())
            .all()
        )

        results = [self._result_entry(a) for a in attempts]

        logger.info(f"Results for quiz {quiz.id}: {len(attempts)} attempts")

        return {
            "quiz": {
                "id": quiz.id,
                "title": quiz.title,
                "description": quiz.description,
                "passing_score": quiz.passing_score,
                "total_points": quiz.total_points,
            },
            "results": results,
            "stats": self._calculate_stats(attempts),
            "question_stats": self._calculate_question_stats(quiz, attempts),
        }

    def _result_entry(self, attempt: QuizAttempt) -> Dict[str, Any]:
        student = attempt.student
        return {
            "attempt_id": attempt.id,
            "student_id": attempt.student_id,
            "student_name": (student.full_name or student.student_number or "Unknown") if student else "Unknown",
            "student_number": student.student_number if student else None,
            "attempt_number": attempt.attempt_number,
            "score": attempt.score,
            "max_score": attempt.max_score,
            "percentage": attempt.percentage,
            "passed": attempt.passed,
            "is_late": attempt.is_late,
            "time_spent": attempt.time_spent,
            "completed_at": ensure_utc(attempt.completed_at),
            "needs_review": any(item.get("requires_review") for item in attempt.graded_answers or []),
        }

    def _calculate_stats(self, attempts: List[QuizAttempt]) -> Dict[str, Any]:
        """Summary statistics over percentages, rounded like stored percentages"""
        total = len(attempts)
        if total == 0:
            return {
                "total_submissions": 0,
                "unique_students": 0,
                "average_score": 0.0,
                "highest_score": 0.0,
                "lowest_score": 0.0,
                "pass_rate": 0.0,
                "late_submissions": 0,
            }

        percentages = [a.percentage for a in attempts]
        return {
            "total_submissions": total,
            "unique_students": len({a.student_id for a in attempts}),
            "average_score": round1(sum(percentages) / total),
            "highest_score": round1(max(percentages)),
            "lowest_score": round1(min(percentages)),
            "pass_rate": round1(sum(1 for a in attempts if a.passed) / total * 100),
            "late_submissions": sum(1 for a in attempts if a.is_late),
        }

    def _calculate_question_stats(self, quiz: Quiz, attempts: List[QuizAttempt]) -> List[Dict[str, Any]]:
        """Correct rate per question, in quiz order"""
        tally = defaultdict(lambda: {"attempts": 0, "correct": 0, "review": 0})

        for attempt in attempts:
            for item in attempt.graded_answers or []:
                entry = tally[item.get("question_id")]
                entry["attempts"] += 1
                if item.get("is_correct"):
                    entry["correct"] += 1
                if item.get("requires_review"):
                    entry["review"] += 1

        stats = []
        for question in QuestionBank.from_records(quiz.questions):
            entry = tally[question.id]
            rate = entry["correct"] / entry["attempts"] * 100 if entry["attempts"] else 0.0
            stats.append({
                "question_id": question.id,
                "type": question.type,
                "prompt": question.prompt[:100] + "..." if len(question.prompt) > 100 else question.prompt,
                "attempts": entry["attempts"],
                "correct_rate": round1(rate),
                "pending_review": entry["review"],
            })
        return stats


# Global instance
analytics_service = AnalyticsService()
