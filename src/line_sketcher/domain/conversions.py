"""Models for batch conversions."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ConversionInput:
    """One uploaded image handed over by the intake collaborator."""

    id: str
    filename: str
    image_data_url: str


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of converting one image."""

    id: str
    filename: str
    status: str
    created_at: datetime
    output_url: str | None = None
    error_category: str | None = None
    error_message: str | None = None
    retryable: bool = False
    history_error: str | None = None
