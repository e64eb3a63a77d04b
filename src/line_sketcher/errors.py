"""Error taxonomy shared by the orchestration and history layers.

Every class carries a ``category`` so callers can pick user-facing messaging
per failure kind, and a ``retryable`` flag telling them whether resubmitting
the same inputs can help.
"""


class LineSketcherError(Exception):
    """Base class for all line sketcher failures."""

    category = "internal"
    retryable = False

    @property
    def user_message(self) -> str:
        """Human-readable message for this failure."""
        return str(self) or self.category


class InputValidationError(LineSketcherError):
    """Malformed or missing input detected before any network call."""

    category = "validation"


class TransportError(LineSketcherError):
    """An HTTP call to the compute service failed or returned non-2xx."""

    category = "transport"
    retryable = True

    def __init__(self, status: int | None, body: str) -> None:
        super().__init__(f"Compute service request failed (status={status})")
        self.status = status
        self.body = body

    @property
    def user_message(self) -> str:
        if self.status is None:
            return "Could not reach the compute service."
        return f"The compute service rejected the request ({self.status})."


class RemoteFailure(LineSketcherError):
    """The remote job itself reported failure."""

    category = "remote_failure"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    @property
    def user_message(self) -> str:
        return f"Image processing failed: {self.detail}"


class EmptyOutputError(RemoteFailure):
    """The remote job succeeded but returned no output."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job {job_id} succeeded without any output")
        self.job_id = job_id


class TimedOut(LineSketcherError):
    """The attempt ceiling was reached without a terminal remote state."""

    category = "timeout"
    retryable = True

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Job did not finish after {attempts} status checks")
        self.attempts = attempts

    @property
    def user_message(self) -> str:
        return "Processing timeout. Please try again."


class Cancelled(LineSketcherError):
    """The job was cancelled by the caller before it finished."""

    category = "cancelled"
    retryable = True

    def __init__(self, attempts: int = 0) -> None:
        super().__init__(f"Job cancelled after {attempts} status checks")
        self.attempts = attempts


class StorageError(LineSketcherError):
    """The history storage layer is unavailable, corrupt or over quota."""

    category = "storage"


class DuplicateKeyError(StorageError):
    """A history record with the same id already exists."""

    category = "duplicate_key"

    def __init__(self, key: str) -> None:
        super().__init__(f"History record {key!r} already exists")
        self.key = key
