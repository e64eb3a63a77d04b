"""Pydantic models for the HTTP API."""

from pydantic import BaseModel, Field

from line_sketcher.domain.requests import ProcessingParams


class GenerateRequest(BaseModel):
    """Single-image generation payload."""

    image_data_url: str = ""
    style: str = "pencil"
    line_thickness: str = "normal"
    preserve_shading: bool = False

    def params(self) -> ProcessingParams:
        """Return the processing params carried by this request."""
        return ProcessingParams(
            style=self.style,
            line_thickness=self.line_thickness,
            preserve_shading=self.preserve_shading,
        )


class ConversionImage(BaseModel):
    """One uploaded image in a batch."""

    id: str = Field(min_length=1)
    filename: str
    image_data_url: str


class ConversionBatchRequest(BaseModel):
    """Batch conversion payload."""

    images: list[ConversionImage]
    params: ProcessingParams = Field(default_factory=ProcessingParams)
