"""
Score, pass and lateness computation for one graded submission
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from app.schemas.attempt import GradedAnswer
from app.utils.clock import ensure_utc

logger = logging.getLogger(__name__)


def round1(value: float) -> float:
    """Half-up rounding to one decimal; used for every stored or compared percentage"""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class ScoreCard:
    score: int
    max_score: int
    percentage: float
    passed: bool
    is_late: bool
    time_spent: int


class ScoringPolicy:
    """Aggregates a graded breakdown plus timing into the attempt summary"""

    def score(
        self,
        breakdown: List[GradedAnswer],
        passing_score: Optional[float],
        available_until: Optional[datetime],
        started_at: Optional[datetime],
        completed_at: datetime
    ) -> ScoreCard:
        """
        Args:
            breakdown: Grader output covering each bank question once
            passing_score: Quiz pass threshold in percent, None for no gate
            available_until: Quiz closing time, None for open-ended
            started_at: When the attempt began; defaults to completed_at
            completed_at: Submission time

        Returns:
            ScoreCard with the stored values
        """
        score = sum(item.earned_points for item in breakdown)
        max_score = sum(item.points for item in breakdown)
        percentage = round1(score / max_score * 100) if max_score > 0 else 0.0

        passed = True if passing_score is None else percentage >= passing_score

        completed_at = ensure_utc(completed_at)
        available_until = ensure_utc(available_until)
        started_at = ensure_utc(started_at) or completed_at

        is_late = available_until is not None and completed_at > available_until
        # Clock skew between client and server can put started_at in the future
        time_spent = max(0, int((completed_at - started_at).total_seconds()))

        return ScoreCard(
            score=score,
            max_score=max_score,
            percentage=percentage,
            passed=passed,
            is_late=is_late,
            time_spent=time_spent,
        )


# Global instance
scoring_policy = ScoringPolicy()
