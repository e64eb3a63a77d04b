"""Replicate predictions API client."""

from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from line_sketcher.domain.jobs import Prediction
from line_sketcher.errors import TransportError
from line_sketcher.services.orchestrator import ComputeClient

DEFAULT_BASE_URL = "https://api.replicate.com/v1"


@dataclass
class HttpxReplicateClient(ComputeClient):
    """HTTPX-backed Replicate client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 30.0

    @classmethod
    def create(
        cls, base_url: str = DEFAULT_BASE_URL, timeout_seconds: float = 30.0
    ) -> "HttpxReplicateClient":
        """Create a Replicate client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def create_prediction(
        self, payload: dict[str, object], api_token: str
    ) -> Prediction:
        """Submit a prediction and return its initial state."""
        response = await self._send(
            "POST",
            f"{self.base_url}/predictions",
            api_token,
            json=payload,
        )
        return _parse_prediction(response)

    async def get_prediction(self, prediction_id: str, api_token: str) -> Prediction:
        """Fetch the current state of a prediction."""
        response = await self._send(
            "GET", f"{self.base_url}/predictions/{prediction_id}", api_token
        )
        return _parse_prediction(response)

    async def verify_token(self, api_token: str) -> bool:
        """Return True if the token is accepted by the models endpoint."""
        try:
            await self._send("GET", f"{self.base_url}/models", api_token)
        except TransportError as exc:
            if exc.status is None:
                raise
            return False
        return True

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _send(
        self,
        method: str,
        url: str,
        api_token: str,
        json: dict[str, object] | None = None,
    ) -> httpx.Response:
        try:
            response = await self.http_client.request(
                method,
                url,
                headers={"Authorization": f"Token {api_token}"},
                json=json,
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise TransportError(None, str(exc)) from exc
        if response.is_error:
            raise TransportError(response.status_code, response.text)
        return response


def _parse_prediction(response: httpx.Response) -> Prediction:
    """Validate a prediction body, treating garbage as a transport failure."""
    try:
        return Prediction.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise TransportError(response.status_code, response.text) from exc
