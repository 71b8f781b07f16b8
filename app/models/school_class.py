"""
SchoolClass model and the class membership association tables
"""
from sqlalchemy import Column, String, Table, TIMESTAMP, ForeignKey, Uuid, func
from app.database import Base
import uuid


# Explicit many-to-many relations; class ids are never stored as delimited strings
student_classes = Table(
    "student_classes",
    Base.metadata,
    Column("student_id", Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
    Column("class_id", Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
)

instructor_classes = Table(
    "instructor_classes",
    Base.metadata,
    Column("instructor_id", Uuid(as_uuid=True), ForeignKey("instructors.id", ondelete="CASCADE"), primary_key=True),
    Column("class_id", Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
)

quiz_classes = Table(
    "quiz_classes",
    Base.metadata,
    Column("quiz_id", Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), primary_key=True),
    Column("class_id", Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
)


class SchoolClass(Base):
    """
    Classes table - a teaching group students and instructors belong to
    """
    __tablename__ = "classes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<SchoolClass(id={self.id}, name={self.name})>"
