"""
Error taxonomy for the scheduling engine.

Every error is recoverable at the caller: the engine validates before it
writes, so a raised error means nothing was persisted.
"""


class StudyPlannerError(Exception):
    """Base class for all engine failures"""

    code = "error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.code, "message": self.message}


class NoTopicsConfigured(StudyPlannerError):
    code = "no_topics_configured"
    status_code = 409
    default_message = "Please add subjects and topics first"


class AlreadyCompleted(StudyPlannerError):
    code = "already_completed"
    status_code = 409
    default_message = "Session is already completed"


class InvalidScore(StudyPlannerError):
    code = "invalid_score"
    status_code = 400
    default_message = "Score and confidence must be whole numbers between 0 and 100"


class InvalidSetup(StudyPlannerError):
    code = "invalid_setup"
    status_code = 400
    default_message = "Invalid setup data"


class NotAuthenticated(StudyPlannerError):
    code = "not_authenticated"
    status_code = 401
    default_message = "Not authenticated"


class NotFound(StudyPlannerError):
    code = "not_found"
    status_code = 404
    default_message = "Record not found"


class ConstraintViolation(StudyPlannerError):
    code = "constraint_violation"
    status_code = 409
    default_message = "Write rejected by a storage constraint"


class PersistenceFailure(StudyPlannerError):
    code = "persistence_failure"
    status_code = 500
    default_message = "Storage error, please retry"


class TopicRequired(StudyPlannerError):
    code = "topic_required"
    status_code = 400
    default_message = "Please select a topic"
