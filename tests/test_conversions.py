"""Tests for the batch conversion driver."""

import asyncio
import base64
import threading
from dataclasses import dataclass, field

import pytest

from line_sketcher.domain.conversions import ConversionInput
from line_sketcher.domain.history import HistoryRecord
from line_sketcher.domain.requests import ProcessingParams
from line_sketcher.errors import InputValidationError
from line_sketcher.services.conversions import (
    ConversionService,
    normalize_image_payload,
    to_data_url,
)
from line_sketcher.services.history import HistoryService
from line_sketcher.services.orchestrator import JobOrchestrator
from tests.conftest import (
    BASE_TIME,
    IMAGE_DATA_URL,
    RESULT_URL,
    FakeComputeClient,
    InMemoryHistoryRepository,
    UnavailableHistoryRepository,
    failed,
    succeeded,
)

PARAMS = ProcessingParams(style="modern", line_thickness="thick")


def _items(count: int) -> list[ConversionInput]:
    return [
        ConversionInput(
            id=f"upload-{index}",
            filename=f"photo-{index}.png",
            image_data_url=IMAGE_DATA_URL,
        )
        for index in range(count)
    ]


def _service(
    orchestrator: JobOrchestrator,
    repository: InMemoryHistoryRepository,
    max_concurrency: int = 1,
) -> ConversionService:
    return ConversionService(
        orchestrator=orchestrator,
        history_service=HistoryService(repository),
        max_concurrency=max_concurrency,
        clock=lambda: BASE_TIME,
    )


def test_batch_saves_successes_to_history(
    orchestrator: JobOrchestrator,
    history_repository: InMemoryHistoryRepository,
) -> None:
    service = _service(orchestrator, history_repository)

    results = asyncio.run(service.convert_batch(_items(3), PARAMS))

    assert [result.status for result in results] == ["completed"] * 3
    assert all(result.output_url == RESULT_URL for result in results)
    stored = history_repository.get_record("upload-1")
    assert stored is not None
    assert stored.result_image_ref == RESULT_URL
    assert stored.filename == "photo-1.png"
    assert stored.params_snapshot == PARAMS
    assert history_repository.count() == 3


def test_batch_processes_images_in_order(
    orchestrator: JobOrchestrator,
    compute_client: FakeComputeClient,
    history_repository: InMemoryHistoryRepository,
) -> None:
    items = [
        ConversionInput(id=f"upload-{index}", filename="a.png", image_data_url=url)
        for index, url in enumerate(
            ["data:image/png;base64,AAAA", "data:image/png;base64,BBBB"]
        )
    ]

    asyncio.run(_service(orchestrator, history_repository).convert_batch(items, PARAMS))

    assert [payload["input"]["image"] for payload in compute_client.submitted] == [
        "data:image/png;base64,AAAA",
        "data:image/png;base64,BBBB",
    ]


def test_failed_job_is_reported_and_not_saved(
    orchestrator: JobOrchestrator,
    compute_client: FakeComputeClient,
    history_repository: InMemoryHistoryRepository,
) -> None:
    compute_client.statuses = [failed("nsfw content detected")]

    results = asyncio.run(
        _service(orchestrator, history_repository).convert_batch(_items(1), PARAMS)
    )

    result = results[0]
    assert result.status == "error"
    assert result.error_category == "remote_failure"
    assert "nsfw content detected" in (result.error_message or "")
    assert not result.retryable
    assert history_repository.count() == 0


def test_missing_image_is_a_validation_result(
    orchestrator: JobOrchestrator,
    history_repository: InMemoryHistoryRepository,
) -> None:
    item = ConversionInput(id="empty", filename="empty.png", image_data_url="")

    result = asyncio.run(
        _service(orchestrator, history_repository).convert(item, PARAMS)
    )

    assert result.status == "error"
    assert result.error_category == "validation"


def test_history_failure_does_not_fail_the_conversion(
    orchestrator: JobOrchestrator,
) -> None:
    service = _service(orchestrator, UnavailableHistoryRepository())

    result = asyncio.run(service.convert(_items(1)[0], PARAMS))

    assert result.status == "completed"
    assert result.output_url == RESULT_URL
    assert result.history_error == "quota exceeded"


def test_duplicate_history_id_is_reported(
    orchestrator: JobOrchestrator,
    history_repository: InMemoryHistoryRepository,
) -> None:
    service = _service(orchestrator, history_repository)
    item = _items(1)[0]

    asyncio.run(service.convert(item, PARAMS))
    second = asyncio.run(service.convert(item, PARAMS))

    assert second.status == "completed"
    assert second.history_error is not None
    assert history_repository.count() == 1


def test_concurrent_batch_keeps_input_order(
    orchestrator: JobOrchestrator,
    compute_client: FakeComputeClient,
    history_repository: InMemoryHistoryRepository,
) -> None:
    compute_client.statuses = [succeeded()]
    service = _service(orchestrator, history_repository, max_concurrency=3)

    results = asyncio.run(service.convert_batch(_items(5), PARAMS))

    assert [result.id for result in results] == [f"upload-{i}" for i in range(5)]
    assert history_repository.count() == 5


@dataclass
class ThreadRecordingRepository(InMemoryHistoryRepository):
    thread_ids: list[int] = field(default_factory=list)

    def insert_and_trim(self, record: HistoryRecord, capacity: int) -> list[str]:
        self.thread_ids.append(threading.get_ident())
        return super().insert_and_trim(record, capacity)


def test_history_write_runs_off_the_event_loop_thread(
    orchestrator: JobOrchestrator,
    compute_client: FakeComputeClient,
) -> None:
    compute_client.statuses = [succeeded()]
    repository = ThreadRecordingRepository()
    service = _service(orchestrator, repository, max_concurrency=2)

    results = asyncio.run(service.convert_batch(_items(2), PARAMS))

    assert [result.status for result in results] == ["completed", "completed"]
    assert repository.count() == 2
    assert threading.get_ident() not in repository.thread_ids


def test_generate_wraps_bare_base64(
    orchestrator: JobOrchestrator,
    compute_client: FakeComputeClient,
    history_repository: InMemoryHistoryRepository,
) -> None:
    raw = base64.b64encode(b"\x89PNG\r\n\x1a\nrest").decode()

    asyncio.run(_service(orchestrator, history_repository).generate(raw, PARAMS))

    image = compute_client.submitted[0]["input"]["image"]
    assert image == f"data:image/png;base64,{raw}"


def test_normalize_rejects_invalid_base64() -> None:
    with pytest.raises(InputValidationError):
        normalize_image_payload("not base64 at all!")


def test_normalize_keeps_data_urls() -> None:
    assert normalize_image_payload(f"  {IMAGE_DATA_URL} ") == IMAGE_DATA_URL


def test_to_data_url_uses_png_header() -> None:
    data = b"\x89PNG\r\n\x1a\n" + b"rest"
    url = to_data_url(data)

    assert url.startswith("data:image/png;base64,")


def test_to_data_url_detects_webp() -> None:
    data = b"RIFF\x00\x00\x00\x00WEBPVP8 "

    assert to_data_url(data).startswith("data:image/webp;base64,")


def test_to_data_url_defaults_to_jpeg() -> None:
    data = b"unknown"
    url = to_data_url(data)

    assert url.startswith("data:image/jpeg;base64,")
