"""
Class membership and profile lookups for resolved identities
"""
import logging
from typing import Iterable, List, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.exceptions import Unauthorized
from app.models import Instructor, Student, student_classes, instructor_classes

logger = logging.getLogger(__name__)


class MembershipService:
    """Resolves identities to profiles and profiles to class ids"""

    def get_student(self, db: Session, user_id: str) -> Student:
        student = db.query(Student).filter(Student.user_id == user_id).first()
        if student is None:
            logger.info(f"No student profile for user {user_id}")
            raise Unauthorized()
        return student

    def get_instructor(self, db: Session, user_id: str) -> Instructor:
        instructor = db.query(Instructor).filter(Instructor.user_id == user_id).first()
        if instructor is None:
            logger.info(f"No instructor profile for user {user_id}")
            raise Unauthorized()
        return instructor

    def get_student_class_ids(self, db: Session, student_id: UUID) -> Set[UUID]:
        rows = db.execute(
            select(student_classes.c.class_id).where(student_classes.c.student_id == student_id)
        )
        return {row[0] for row in rows}

    def get_instructor_class_ids(self, db: Session, instructor_id: UUID) -> Set[UUID]:
        rows = db.execute(
            select(instructor_classes.c.class_id).where(instructor_classes.c.instructor_id == instructor_id)
        )
        return {row[0] for row in rows}

    def get_class_student_user_ids(self, db: Session, class_ids: Iterable[UUID]) -> List[str]:
        """User ids of every student in any of the classes, for notifications"""
        class_ids = list(class_ids)
        if not class_ids:
            return []
        rows = db.execute(
            select(Student.user_id)
            .join(student_classes, student_classes.c.student_id == Student.id)
            .where(student_classes.c.class_id.in_(class_ids))
            .distinct()
        )
        return [row[0] for row in rows]


# Global instance
membership_service = MembershipService()
