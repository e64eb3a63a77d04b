"""Submission and polling of remote line-art jobs."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from line_sketcher.config import resolve_api_token
from line_sketcher.domain.jobs import JobHandle, JobOutcome, JobState, Prediction
from line_sketcher.domain.requests import GenerationRequestTemplate
from line_sketcher.errors import (
    Cancelled,
    EmptyOutputError,
    InputValidationError,
    LineSketcherError,
    RemoteFailure,
    TimedOut,
    TransportError,
)
from line_sketcher.services.polling import (
    PollPolicy,
    PollResult,
    PollStop,
    Sleep,
    poll_until,
)

_logger = logging.getLogger(__name__)


class ComputeClient(Protocol):
    """Interface for the remote inference service."""

    async def create_prediction(
        self, payload: dict[str, object], api_token: str
    ) -> Prediction:
        """Create a job and return its initial state."""

    async def get_prediction(self, prediction_id: str, api_token: str) -> Prediction:
        """Return the current state of a job."""


@dataclass
class JobOrchestrator:
    """Submit one job, poll it to a terminal state, and report the outcome.

    Holds no per-job state; every ``run`` call owns its own ``JobHandle``.
    """

    client: ComputeClient
    default_api_token: str | None = None
    policy: PollPolicy = field(default_factory=PollPolicy)
    sleep: Sleep = asyncio.sleep

    async def run(
        self,
        image_payload: str,
        request: GenerationRequestTemplate,
        api_token: str | None = None,
        policy: PollPolicy | None = None,
        cancel: asyncio.Event | None = None,
    ) -> JobOutcome:
        """Run one job to completion.

        Raises ``InputValidationError`` before any network call when the image
        or credential is missing. Every other failure is returned on the
        outcome.
        """
        token = resolve_api_token(api_token, self.default_api_token)
        if token is None:
            raise InputValidationError(
                "Replicate API key is required. Add one in the settings."
            )
        if not image_payload or not image_payload.strip():
            raise InputValidationError("Image data is required")

        generation = request.with_image(image_payload)
        try:
            prediction = await self.client.create_prediction(
                generation.to_payload(), token
            )
        except TransportError as exc:
            _logger.warning(
                "Job submission failed: status=%s body=%s", exc.status, exc.body
            )
            return JobOutcome(state=JobState.TRANSPORT_ERROR, error=exc)

        handle = JobHandle(job_id=prediction.id)
        _logger.info(
            "Job submitted: id=%s style=%s status=%s",
            handle.job_id,
            generation.style,
            prediction.status,
        )
        if prediction.state.is_terminal:
            return self._finish(handle, prediction)

        handle.state = JobState.POLLING
        result = await poll_until(
            lambda: self._check(handle, token),
            lambda current: current.state.is_terminal,
            policy or self.policy,
            sleep=self.sleep,
            cancel=cancel,
            on_check_error=lambda exc, attempt: _logger.warning(
                "Status check %s for job %s failed: %s", attempt, handle.job_id, exc
            ),
        )
        return self._conclude(handle, result)

    async def _check(self, handle: JobHandle, token: str) -> Prediction:
        handle.status_queries += 1
        prediction = await self.client.get_prediction(handle.job_id, token)
        handle.state = prediction.state
        return prediction

    def _conclude(
        self, handle: JobHandle, result: PollResult[Prediction]
    ) -> JobOutcome:
        if result.stop is PollStop.DONE and result.value is not None:
            return self._finish(handle, result.value)
        if result.stop is PollStop.CANCELLED:
            _logger.info(
                "Job %s cancelled after %s checks", handle.job_id, result.attempts
            )
            return self._outcome(
                handle, JobState.CANCELLED, Cancelled(result.attempts)
            )
        if result.stop is PollStop.CHECK_FAILED:
            error = result.error
            if not isinstance(error, TransportError):
                error = TransportError(None, str(error))
            return self._outcome(handle, JobState.TRANSPORT_ERROR, error)
        _logger.warning(
            "Job %s timed out after %s checks", handle.job_id, result.attempts
        )
        return self._outcome(handle, JobState.TIMED_OUT, TimedOut(result.attempts))

    def _finish(self, handle: JobHandle, prediction: Prediction) -> JobOutcome:
        if prediction.state is JobState.FAILED:
            detail = prediction.error or "Prediction failed without error detail"
            _logger.warning("Job %s failed remotely: %s", handle.job_id, detail)
            return self._outcome(handle, JobState.FAILED, RemoteFailure(detail))

        output_url = prediction.first_output()
        if output_url is None:
            return self._outcome(
                handle, JobState.SUCCEEDED, EmptyOutputError(handle.job_id)
            )
        _logger.info(
            "Job %s succeeded after %s checks", handle.job_id, handle.status_queries
        )
        handle.state = JobState.SUCCEEDED
        return JobOutcome(
            state=JobState.SUCCEEDED,
            job_id=handle.job_id,
            output_url=output_url,
            status_queries=handle.status_queries,
        )

    @staticmethod
    def _outcome(
        handle: JobHandle, state: JobState, error: LineSketcherError
    ) -> JobOutcome:
        handle.state = state
        return JobOutcome(
            state=state,
            job_id=handle.job_id,
            error=error,
            status_queries=handle.status_queries,
        )
