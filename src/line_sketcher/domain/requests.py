"""Request models sent to the compute service."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProcessingParams(BaseModel):
    """User-chosen rendering options."""

    model_config = ConfigDict(frozen=True)

    style: str = "pencil"
    line_thickness: str = "normal"
    preserve_shading: bool = False


class GenerationRequestTemplate(BaseModel):
    """Composed model invocation, waiting for an image payload."""

    model_config = ConfigDict(frozen=True)

    style: str
    version: str
    prompt: str
    negative_prompt: str | None = None
    parameters: dict[str, str | int | float | bool] = Field(default_factory=dict)

    def with_image(self, image: str) -> "GenerationRequest":
        """Materialize the request for one image payload."""
        return GenerationRequest(
            style=self.style,
            version=self.version,
            prompt=self.prompt,
            negative_prompt=self.negative_prompt,
            parameters=dict(self.parameters),
            image=image,
        )


class GenerationRequest(GenerationRequestTemplate):
    """Fully materialized request including the image payload."""

    image: str

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body for the predictions endpoint."""
        model_input: dict[str, Any] = {"image": self.image, "prompt": self.prompt}
        if self.negative_prompt:
            model_input["negative_prompt"] = self.negative_prompt
        model_input.update(self.parameters)
        return {"version": self.version, "input": model_input}
