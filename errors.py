"""Exception types shared by the grading core, the API client and the dashboard."""


class AcademicError(Exception):
    """Base class for errors raised by this package."""


class GradeValidationError(AcademicError, ValueError):
    """A score is missing, not a number, or outside 0-100."""

    def __init__(self, score):
        self.score = score
        super().__init__(f"Score must be a number between 0 and 100, got {score!r}")


class ApiError(AcademicError):
    """The record store answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message or "Request failed"
        super().__init__(f"{status_code}: {self.message}")


class PartialBulkFailure(AcademicError):
    """Some calls of a bulk operation failed while others succeeded."""

    def __init__(self, outcome):
        self.outcome = outcome
        super().__init__(
            f"{len(outcome.failed)} of {outcome.total} operations failed"
        )
