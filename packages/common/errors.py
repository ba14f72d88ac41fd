"""Error taxonomy shared by the grading and streak services.

- `ConfigurationError`: malformed question/assignment definitions; aborts the computation.
- `InvalidInputError`: submitted answer does not fit the question shape, or a request lacks what it needs.
- `StateConflictError`: optimistic version check failed on a streak update.
- `AttemptLimitError`: no quiz attempts remaining.
- `SubmissionRejectedError`: closed assignment, duplicate review or similar workflow refusal.
"""

from __future__ import annotations


class GradingError(Exception):
    """Base class for engine errors."""


class ConfigurationError(GradingError):
    """Raised when a question, assignment or policy definition is malformed."""


class InvalidInputError(GradingError):
    """Raised when untrusted input (an answer, a purchase request) cannot be accepted."""

    def __init__(self, subject: str, message: str) -> None:
        self.subject = subject
        super().__init__(f"[{subject}] {message}")


class StateConflictError(GradingError):
    """Raised when a concurrent update changed the stored state first."""

    def __init__(self, key: str, expected: int, actual: int) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(f"version conflict for {key}: expected v{expected}, found v{actual}")


class AttemptLimitError(GradingError):
    """Raised when a learner has used every allowed quiz attempt."""


class SubmissionRejectedError(GradingError):
    """Raised when a workflow step is not allowed in the record's current state."""
