"""
Quiz model - stores authored quizzes, their question bank and lifecycle state
"""
from sqlalchemy import Column, String, Text, Integer, Float, Boolean, TIMESTAMP, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from app.database import Base, JSONType
from app.models.school_class import quiz_classes
import uuid


class Quiz(Base):
    """
    Quizzes table - question list is stored as JSON in quiz order
    """
    __tablename__ = "quizzes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    instructions = Column(Text)
    status = Column(String(20), nullable=False, default="DRAFT", index=True)
    questions = Column(JSONType, nullable=False, default=list)  # [{id, type, prompt, ...}]
    total_points = Column(Integer, nullable=False, default=0)

    time_limit = Column(Integer)  # minutes
    allowed_attempts = Column(Integer)  # NULL = unlimited
    passing_score = Column(Float)  # percentage, NULL = no gate
    show_results = Column(Boolean, nullable=False, default=True)
    available_from = Column(TIMESTAMP(timezone=True))
    available_until = Column(TIMESTAMP(timezone=True))

    shuffle_questions = Column(Boolean, nullable=False, default=False)
    randomize_options = Column(Boolean, nullable=False, default=False)
    fullscreen_mode = Column(Boolean, nullable=False, default=False)
    disable_copy_paste = Column(Boolean, nullable=False, default=False)
    require_proctoring = Column(Boolean, nullable=False, default=False)

    # Incremented in the same transaction as each attempt insert
    attempt_count = Column(Integer, nullable=False, default=0)

    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("instructors.id"), nullable=False, index=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    classes = relationship("SchoolClass", secondary=quiz_classes, lazy="selectin")
    created_by = relationship("Instructor")

    @property
    def class_ids(self):
        return {c.id for c in self.classes}

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, status={self.status})>"
