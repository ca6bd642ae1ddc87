"""Domain exceptions for the submission draft lifecycle.

Every error here is scoped to the current user action and is retryable by the
user; none of them should take the process down.
"""


class SubmissionError(Exception):
    """Base exception for submission lifecycle errors."""
    pass


class RepositoryError(SubmissionError):
    """Transient persistence failure (connection lost, constraint race, ...)."""
    pass


class StorageError(SubmissionError):
    """Transient object storage failure."""
    pass


class DraftNotFoundError(SubmissionError):
    """Raised when a submission id does not resolve to a live record."""

    def __init__(self, draft_id):
        self.draft_id = draft_id
        super().__init__(f"Submission {draft_id} not found")


class DraftNotBoundError(SubmissionError):
    """Raised when a bound-only operation runs before a draft exists."""
    pass


class DraftNotEditableError(SubmissionError):
    """Raised when autosave targets a record that is no longer in progress."""

    def __init__(self, draft_id, status: str):
        self.draft_id = draft_id
        self.status = status
        super().__init__(f"Submission {draft_id} is {status} and can no longer be edited")


class DraftConflictError(SubmissionError):
    """Raised when a conditional write lost a race (status changed underneath)."""

    def __init__(self, draft_id, expected_status: str, actual_status: str):
        self.draft_id = draft_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        super().__init__(
            f"Submission {draft_id} expected status {expected_status}, found {actual_status}"
        )


class CodeCollisionError(SubmissionError):
    """Raised by a repository when a code is already taken by another record."""
    pass


class CodeGenerationError(SubmissionError):
    """Raised when no unique code was found within the retry budget."""
    pass


class LabelRequestError(SubmissionError):
    """Raised when the downstream shipping label request could not be issued."""
    pass


class LabelRequestNotFoundError(LabelRequestError):
    """Raised when a label request id does not resolve."""

    def __init__(self, request_id):
        self.request_id = request_id
        super().__init__(f"Label request {request_id} not found")
