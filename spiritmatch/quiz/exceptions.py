"""Errors raised inside the quiz services."""


class QuizError(RuntimeError):
    """Base exception for quiz service errors."""
    pass


class GenerationFailure(QuizError):
    """
    Raised when a generation call cannot produce a usable payload.

    Covers network errors, timeouts, non-2xx responses, missing text,
    unparseable JSON and payloads missing required fields.

    Attributes:
        status_code: HTTP status of the upstream response, if one was received.
    """
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class PersistenceFailure(QuizError):
    """Raised when a finished assessment cannot be written to the store."""
    pass
