"""Domain models for the generation history."""

from dataclasses import dataclass
from datetime import datetime

from line_sketcher.domain.requests import ProcessingParams

HISTORY_CAPACITY = 20


@dataclass(frozen=True)
class HistoryRecord:
    """A completed generation kept in the local history."""

    id: str
    original_image_ref: str
    result_image_ref: str
    filename: str
    created_at: datetime
    params_snapshot: ProcessingParams
