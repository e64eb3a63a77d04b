"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from line_sketcher.config import Settings
from line_sketcher.containers import AppContainer
from line_sketcher.domain.history import HistoryRecord
from line_sketcher.domain.jobs import Prediction
from line_sketcher.domain.requests import ProcessingParams
from line_sketcher.errors import DuplicateKeyError, StorageError
from line_sketcher.services.conversions import ConversionService
from line_sketcher.services.credentials import CredentialService, TokenVerifier
from line_sketcher.services.history import HistoryRepository, HistoryService
from line_sketcher.services.orchestrator import ComputeClient, JobOrchestrator
from line_sketcher.services.polling import PollPolicy

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
RESULT_URL = "https://x/y.webp"
IMAGE_DATA_URL = "data:image/png;base64,aW1hZ2U="


def processing(job_id: str = "job-1") -> Prediction:
    return Prediction(id=job_id, status="processing")


def succeeded(url: str = RESULT_URL, job_id: str = "job-1") -> Prediction:
    return Prediction(id=job_id, status="succeeded", output=[url])


def failed(error: str, job_id: str = "job-1") -> Prediction:
    return Prediction(id=job_id, status="failed", error=error)


def make_record(index: int, record_id: str | None = None) -> HistoryRecord:
    return HistoryRecord(
        id=record_id or f"item-{index}",
        original_image_ref=f"data:image/png;base64,{index}",
        result_image_ref=f"https://results/{index}.webp",
        filename=f"photo-{index}.png",
        created_at=BASE_TIME + timedelta(minutes=index),
        params_snapshot=ProcessingParams(style="pencil", line_thickness="thin"),
    )


@dataclass
class FakeComputeClient(ComputeClient):
    """Scripted compute client.

    Status queries walk through ``statuses``; once exhausted the last entry
    repeats. Exceptions in the script are raised instead of returned.
    """

    created: Prediction = field(
        default_factory=lambda: Prediction(id="job-1", status="starting")
    )
    statuses: list[Prediction | Exception] = field(
        default_factory=lambda: [succeeded()]
    )
    create_error: Exception | None = None
    submitted: list[dict[str, object]] = field(default_factory=list)
    tokens: list[str] = field(default_factory=list)
    status_calls: int = 0

    async def create_prediction(
        self, payload: dict[str, object], api_token: str
    ) -> Prediction:
        self.submitted.append(payload)
        self.tokens.append(api_token)
        if self.create_error is not None:
            raise self.create_error
        return self.created

    async def get_prediction(self, prediction_id: str, api_token: str) -> Prediction:
        self.status_calls += 1
        index = min(self.status_calls, len(self.statuses)) - 1
        item = self.statuses[index]
        if isinstance(item, Exception):
            raise item
        return item


@dataclass
class RecordingSleep:
    """Instant replacement for asyncio.sleep that records delays."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@dataclass
class InMemoryHistoryRepository(HistoryRepository):
    """In-memory history repository for tests."""

    records: dict[str, tuple[int, HistoryRecord]] = field(default_factory=dict)
    sequence: int = 0

    def insert_and_trim(self, record: HistoryRecord, capacity: int) -> list[str]:
        if record.id in self.records:
            raise DuplicateKeyError(record.id)
        self.sequence += 1
        staged = dict(self.records)
        staged[record.id] = (self.sequence, record)
        ordered = sorted(
            staged.values(), key=lambda entry: (entry[1].created_at, entry[0])
        )
        evicted = [entry[1].id for entry in ordered[: max(len(ordered) - capacity, 0)]]
        for record_id in evicted:
            staged.pop(record_id)
        self.records = staged
        return evicted

    def list_records(self) -> list[HistoryRecord]:
        ordered = sorted(
            self.records.values(),
            key=lambda entry: (entry[1].created_at, entry[0]),
            reverse=True,
        )
        return [entry[1] for entry in ordered]

    def get_record(self, record_id: str) -> HistoryRecord | None:
        entry = self.records.get(record_id)
        return entry[1] if entry else None

    def delete_record(self, record_id: str) -> None:
        self.records.pop(record_id, None)

    def clear(self) -> None:
        self.records.clear()

    def count(self) -> int:
        return len(self.records)


@dataclass
class UnavailableHistoryRepository(InMemoryHistoryRepository):
    """Repository whose writes always fail."""

    def insert_and_trim(self, record: HistoryRecord, capacity: int) -> list[str]:
        raise StorageError("quota exceeded")


@dataclass
class FakeTokenVerifier(TokenVerifier):
    """Token verifier accepting a fixed set of tokens."""

    accepted: set[str] = field(default_factory=lambda: {"r8_valid"})
    checked: list[str] = field(default_factory=list)

    async def verify_token(self, api_token: str) -> bool:
        self.checked.append(api_token)
        return api_token in self.accepted


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        replicate_api_token="r8_default",
        history_db_path=str(tmp_path / "history.db"),
        poll_interval_seconds=0,
    )


@pytest.fixture
def compute_client() -> FakeComputeClient:
    return FakeComputeClient()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def history_repository() -> InMemoryHistoryRepository:
    return InMemoryHistoryRepository()


@pytest.fixture
def orchestrator(
    compute_client: FakeComputeClient, sleep: RecordingSleep
) -> JobOrchestrator:
    return JobOrchestrator(
        client=compute_client,
        default_api_token="r8_default",
        policy=PollPolicy(interval_seconds=5.0, max_attempts=60, status_retries=0),
        sleep=sleep,
    )


@pytest.fixture
def container(
    settings: Settings,
    orchestrator: JobOrchestrator,
    history_repository: InMemoryHistoryRepository,
) -> AppContainer:
    history_service = HistoryService(history_repository)
    conversion_service = ConversionService(
        orchestrator=orchestrator,
        history_service=history_service,
        clock=lambda: BASE_TIME,
    )
    credential_service = CredentialService(verifier=FakeTokenVerifier())

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        history_service=history_service,
        conversion_service=conversion_service,
        credential_service=credential_service,
        close_resources=close_resources,
    )
