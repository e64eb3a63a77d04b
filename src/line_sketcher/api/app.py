"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, Request

from line_sketcher.api.errors import error_response, handle_line_sketcher_error
from line_sketcher.api.history import router as history_router
from line_sketcher.api.models import ConversionBatchRequest, GenerateRequest
from line_sketcher.app_logging import configure_logging
from line_sketcher.containers import AppContainer
from line_sketcher.domain.conversions import ConversionInput
from line_sketcher.errors import LineSketcherError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if not container.settings.replicate_api_token:
            logger.info("No default Replicate token; requests must supply one")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.add_exception_handler(LineSketcherError, handle_line_sketcher_error)

    app.include_router(history_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/generate", response_model=None)
    async def generate(
        payload: GenerateRequest,
        request: Request,
        x_replicate_api_key: str | None = Header(default=None),
    ) -> object:
        """Convert one image and return the result URL."""
        state_container: AppContainer = request.app.state.container
        outcome = await state_container.conversion_service.generate(
            payload.image_data_url,
            payload.params(),
            api_token=x_replicate_api_key,
        )
        if outcome.ok:
            return {"success": True, "output": outcome.output_url}
        if outcome.error is None:
            raise LineSketcherError("Job did not produce a result")
        return error_response(outcome.error)

    @app.post("/api/conversions")
    async def convert_batch(
        payload: ConversionBatchRequest,
        request: Request,
        x_replicate_api_key: str | None = Header(default=None),
    ) -> dict[str, object]:
        """Convert a batch of images and save successes to history."""
        state_container: AppContainer = request.app.state.container
        items = [
            ConversionInput(
                id=image.id,
                filename=image.filename,
                image_data_url=image.image_data_url,
            )
            for image in payload.images
        ]
        results = await state_container.conversion_service.convert_batch(
            items, payload.params, api_token=x_replicate_api_key
        )
        failed = sum(1 for result in results if result.status != "completed")
        if failed:
            logger.info("Batch finished with %s of %s failures", failed, len(results))
        return {"results": results}

    @app.post("/api/credentials/verify")
    async def verify_credentials(
        request: Request,
        x_replicate_api_key: str | None = Header(default=None),
    ) -> dict[str, bool]:
        """Check a Replicate token against the models endpoint."""
        state_container: AppContainer = request.app.state.container
        valid = await state_container.credential_service.verify(x_replicate_api_key)
        return {"valid": valid}

    return app
