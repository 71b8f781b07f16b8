"""
Student and Instructor models - profile records bound to an identity subject
"""
from sqlalchemy import Column, String, TIMESTAMP, Uuid, func
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.school_class import student_classes, instructor_classes
import uuid


class Student(Base):
    """
    Students table - one row per student account
    """
    __tablename__ = "students"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), unique=True, nullable=False, index=True)
    student_number = Column(String(32), unique=True)
    full_name = Column(String(255))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    classes = relationship("SchoolClass", secondary=student_classes, lazy="selectin")

    def __repr__(self):
        return f"<Student(id={self.id}, student_number={self.student_number})>"


class Instructor(Base):
    """
    Instructors table - quiz authors, scoped to the classes they teach
    """
    __tablename__ = "instructors"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), unique=True, nullable=False, index=True)
    full_name = Column(String(255))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    classes = relationship("SchoolClass", secondary=instructor_classes, lazy="selectin")

    def __repr__(self):
        return f"<Instructor(id={self.id}, full_name={self.full_name})>"
