"""
Assessment error taxonomy

Services raise these; app.main renders them as JSON with the attached
status code. ``retryable`` tells a client it may resend the same submission.
"""


class AssessmentError(Exception):
    """Base class for every failure the assessment core reports"""

    error = "assessment_error"
    status_code = 400
    retryable = False
    default_message = "Request could not be completed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(AssessmentError):
    error = "unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class AccessDenied(AssessmentError):
    error = "access_denied"
    status_code = 403
    default_message = "You do not have access to this quiz"


class NotFound(AssessmentError):
    error = "not_found"
    status_code = 404
    default_message = "Resource not found"


class QuizNotAvailable(AssessmentError):
    error = "quiz_not_available"
    default_message = "Quiz is not available"


class NotYetAvailable(AssessmentError):
    error = "not_yet_available"
    default_message = "Quiz is not yet available"


class Expired(AssessmentError):
    error = "expired"
    default_message = "Quiz has expired"


class AttemptLimitExceeded(AssessmentError):
    error = "attempt_limit_exceeded"
    default_message = "You have reached the maximum number of attempts"


class InvalidTransition(AssessmentError):
    error = "invalid_transition"
    status_code = 409
    default_message = "Quiz status change is not allowed"


class QuizLocked(AssessmentError):
    error = "quiz_locked"
    status_code = 409
    default_message = "Cannot change quiz after students have submitted. Create a new quiz instead."


class UnsupportedQuestionType(AssessmentError):
    """Stored question data names a type the grader does not know"""

    error = "unsupported_question_type"
    status_code = 500
    default_message = "Unsupported question type"


class PersistenceConflict(AssessmentError):
    """A concurrent submission claimed the same attempt number, or the quiz changed after grading"""

    error = "persistence_conflict"
    status_code = 409
    retryable = True
    default_message = "Another submission was recorded at the same time. Please retry."


class PersistenceUnavailable(AssessmentError):
    error = "persistence_unavailable"
    status_code = 503
    retryable = True
    default_message = "The change could not be saved. Please retry."


class InvalidQuiz(AssessmentError):
    """Authoring input that passes schema validation but breaks a quiz rule"""

    error = "invalid_quiz"
    default_message = "Invalid quiz definition"


class ReloadFailed(AssessmentError):
    """The change was committed but reading it back failed; resending would duplicate it"""

    error = "reload_failed"
    status_code = 503
    default_message = "The change was saved but could not be loaded. Refresh to see it."
