"""
Database models package
"""
from app.models.school_class import SchoolClass, student_classes, instructor_classes, quiz_classes
from app.models.people import Student, Instructor
from app.models.quiz import Quiz
from app.models.quiz_attempt import QuizAttempt

__all__ = [
    "SchoolClass",
    "Student",
    "Instructor",
    "Quiz",
    "QuizAttempt",
    "student_classes",
    "instructor_classes",
    "quiz_classes",
]
