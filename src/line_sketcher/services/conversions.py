"""Batch conversion of uploaded images into line art."""

import asyncio
import base64
import binascii
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from line_sketcher.domain.conversions import ConversionInput, ConversionResult
from line_sketcher.domain.history import HistoryRecord
from line_sketcher.domain.jobs import JobOutcome
from line_sketcher.domain.requests import ProcessingParams
from line_sketcher.errors import InputValidationError, LineSketcherError, StorageError
from line_sketcher.services.history import HistoryService
from line_sketcher.services.orchestrator import JobOrchestrator
from line_sketcher.services.prompts import PromptComposer

_logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ConversionService:
    """Drive one job per image and record successes in the history.

    Each image runs as its own task returning a ``ConversionResult``. With
    ``max_concurrency`` of 1 images are processed strictly one after another.
    """

    orchestrator: JobOrchestrator
    history_service: HistoryService
    composer: PromptComposer = field(default_factory=PromptComposer)
    max_concurrency: int = 1
    clock: Callable[[], datetime] = _utc_now

    async def generate(
        self,
        image_data_url: str,
        params: ProcessingParams,
        api_token: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> JobOutcome:
        """Compose the request for ``params`` and run a single job."""
        template = self.composer.compose(params)
        return await self.orchestrator.run(
            normalize_image_payload(image_data_url),
            template,
            api_token=api_token,
            cancel=cancel,
        )

    async def convert(
        self,
        item: ConversionInput,
        params: ProcessingParams,
        api_token: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> ConversionResult:
        """Convert one image and save it to history on success."""
        created_at = self.clock()
        try:
            outcome = await self.generate(
                item.image_data_url, params, api_token=api_token, cancel=cancel
            )
        except InputValidationError as exc:
            return _failed(item, created_at, exc)
        if not outcome.ok or outcome.output_url is None:
            error = outcome.error or LineSketcherError("Job did not produce a result")
            _logger.warning(
                "Conversion of %s failed (%s): %s", item.filename, error.category, error
            )
            return _failed(item, created_at, error)

        # SQLite writes block; keep them off the event loop so other jobs keep
        # polling.
        history_error = await asyncio.to_thread(
            self._save_history, item, outcome.output_url, params, created_at
        )
        return ConversionResult(
            id=item.id,
            filename=item.filename,
            status="completed",
            created_at=created_at,
            output_url=outcome.output_url,
            history_error=history_error,
        )

    async def convert_batch(
        self,
        items: Sequence[ConversionInput],
        params: ProcessingParams,
        api_token: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> list[ConversionResult]:
        """Convert every image; results come back in input order."""
        if self.max_concurrency <= 1:
            results: list[ConversionResult] = []
            for item in items:
                results.append(await self.convert(item, params, api_token, cancel))
            return results

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def convert_one(item: ConversionInput) -> ConversionResult:
            async with semaphore:
                return await self.convert(item, params, api_token, cancel)

        return list(await asyncio.gather(*(convert_one(item) for item in items)))

    def _save_history(
        self,
        item: ConversionInput,
        output_url: str,
        params: ProcessingParams,
        created_at: datetime,
    ) -> str | None:
        """Best-effort history write; failures are reported, never raised."""
        record = HistoryRecord(
            id=item.id,
            original_image_ref=item.image_data_url,
            result_image_ref=output_url,
            filename=item.filename,
            created_at=created_at,
            params_snapshot=params,
        )
        try:
            self.history_service.add(record)
        except StorageError as exc:
            _logger.warning("Failed to save %s to history: %s", item.id, exc)
            return str(exc)
        return None


def _failed(
    item: ConversionInput, created_at: datetime, error: LineSketcherError
) -> ConversionResult:
    return ConversionResult(
        id=item.id,
        filename=item.filename,
        status="error",
        created_at=created_at,
        error_category=error.category,
        error_message=error.user_message,
        retryable=error.retryable,
    )


def normalize_image_payload(payload: str) -> str:
    """Return a data URL, wrapping bare base64 with a sniffed MIME type."""
    cleaned = payload.strip()
    if not cleaned or cleaned.startswith("data:"):
        return cleaned
    try:
        image_bytes = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InputValidationError("Image data is not valid base64") from exc
    return to_data_url(image_bytes)


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
