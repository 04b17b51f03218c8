"""Error taxonomy raised by the quiz engine services."""

from __future__ import annotations


class QuizEngineError(Exception):
    """Base class for every error the engine raises on purpose."""


class ValidationError(QuizEngineError):
    """Raised when caller input is malformed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_detail(self) -> dict[str, str | None]:
        return {"field": self.field, "message": self.message}


class NotFoundError(QuizEngineError):
    """Raised when a quiz set, question, match or participant does not exist."""


class ConflictError(QuizEngineError):
    """Raised when an operation is not allowed in the current state."""


class StorageUnavailableError(QuizEngineError):
    """Transient storage failure. The only error eligible for automatic retry."""
