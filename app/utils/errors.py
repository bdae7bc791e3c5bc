from typing import Optional


class WorkflowError(Exception):
    """Base class for failures the API reports to the caller with a short message."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(WorkflowError):
    status_code = 404
    default_message = "Not found"


class Forbidden(WorkflowError):
    status_code = 403
    default_message = "Not authorized"


class InvalidState(WorkflowError):
    status_code = 400
    default_message = "Operation not allowed in the current state"


class InvalidInput(WorkflowError):
    status_code = 400
    default_message = "Invalid input"


class AlreadyDone(WorkflowError):
    status_code = 400
    default_message = "Already done"


class Conflict(WorkflowError):
    status_code = 409
    default_message = "The resource was modified concurrently, please retry"


class Internal(WorkflowError):
    status_code = 500
    default_message = "Server error"
