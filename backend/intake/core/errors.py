class IntakeError(Exception):
    """Base class for workflow errors surfaced to the caller."""

class RateLimited(IntakeError):
    def __init__(self, remaining_seconds: int):
        super().__init__(f"Too many uploads, retry in {remaining_seconds}s")
        self.remaining_seconds = remaining_seconds

class AnalysisFailed(IntakeError):
    pass

class SubmissionBlocked(IntakeError):
    """A refused transition. Not a failure: carries the reasons it was refused."""

    def __init__(self, reasons: list[str], message: str | None = None):
        super().__init__(message or "Submission not allowed: " + ", ".join(reasons))
        self.reasons = list(reasons)

class SubmissionFailed(IntakeError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

class FetchFailed(IntakeError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

class AlreadySubmitted(IntakeError):
    def __init__(self, exam_code: str):
        super().__init__(f"Student {exam_code} has already submitted")
        self.exam_code = exam_code

class InvalidBirthYear(IntakeError, ValueError):
    pass

class SessionNotFound(IntakeError, LookupError):
    pass
