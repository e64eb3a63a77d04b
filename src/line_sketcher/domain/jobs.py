"""Job lifecycle models for remote inference."""

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel

from line_sketcher.errors import LineSketcherError


class JobState(StrEnum):
    """Lifecycle of one remote job as observed by the orchestrator."""

    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    TRANSPORT_ERROR = "transport_error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in {JobState.SUBMITTED, JobState.POLLING}


# Remote statuses other than these two keep the job in the polling state.
_REMOTE_TERMINAL = {
    "succeeded": JobState.SUCCEEDED,
    "failed": JobState.FAILED,
}


class Prediction(BaseModel):
    """Prediction payload returned by the compute service."""

    id: str
    status: str
    output: list[str] | str | None = None
    error: str | None = None

    @property
    def state(self) -> JobState:
        """Map the remote status onto the local job state."""
        return _REMOTE_TERMINAL.get(self.status, JobState.POLLING)

    def first_output(self) -> str | None:
        """Return the first output reference, if any."""
        if isinstance(self.output, str):
            return self.output or None
        if self.output:
            return self.output[0]
        return None


@dataclass
class JobHandle:
    """Remote job id plus the latest observed state."""

    job_id: str
    state: JobState = JobState.SUBMITTED
    status_queries: int = 0


@dataclass(frozen=True)
class JobOutcome:
    """Terminal result of one orchestrated job."""

    state: JobState
    job_id: str | None = None
    output_url: str | None = None
    error: LineSketcherError | None = None
    status_queries: int = 0

    @property
    def ok(self) -> bool:
        return self.state is JobState.SUCCEEDED and self.error is None
