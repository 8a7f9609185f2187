"""HTTP layer tests with the service context swapped for in-memory fakes."""

from __future__ import annotations

import io

import pytest
from fastapi.testclient import TestClient

from conftest import (
    FakeGenerator,
    FakeStorage,
    FakeStore,
    FakeTranscriber,
    RelationalStoreError,
    fixed_probe,
)
from voiceflow.config.settings import CostConfig, PipelineConfig
from voiceflow.context import ServiceContext
from voiceflow.controllers.dependencies import get_services
from voiceflow.main import app
from voiceflow.pipelines.recording import RecordingPipeline, RetryPolicy
from voiceflow.services.offline_queue import InMemoryQueueStore, OfflineQueue, store_executor
from voiceflow.services.relational_store import ConnectivityError

AUDIO_BYTES = b"\x00\x01" * 2048


async def _no_sleep(delay: float) -> None:
    return None


def _context(*, store=None, storage=None, generator=None, upload_max_bytes=None) -> ServiceContext:
    store = store or FakeStore()
    config = PipelineConfig()
    if upload_max_bytes is not None:
        config = PipelineConfig(upload_max_bytes=upload_max_bytes)
    pipeline = RecordingPipeline(
        storage or FakeStorage(),
        FakeTranscriber(),
        generator or FakeGenerator(),
        store,
        retry_policy=RetryPolicy(sleep=_no_sleep),
        probe=fixed_probe,
        pipeline_config=config,
        cost_config=CostConfig(),
    )
    queue = OfflineQueue(InMemoryQueueStore(), store_executor(store))
    return ServiceContext(pipeline=pipeline, store=store, offline_queue=queue)


@pytest.fixture
def services():
    context = _context()
    app.dependency_overrides[get_services] = lambda: context
    yield context
    app.dependency_overrides.clear()


def _upload(client, **data):
    form = {"user_id": "user-1", "recording_id": "rec-1"}
    form.update(data)
    return client.post(
        "/recordings/process",
        data=form,
        files={"audio_file": ("note.m4a", io.BytesIO(AUDIO_BYTES), "audio/m4a")},
    )


def test_process_returns_enhanced_recording(services):
    client = TestClient(app)

    response = _upload(client, style="summary", language="en")

    assert response.status_code == 200
    payload = response.json()
    assert payload["client_recording_id"] == "rec-1"
    assert payload["style"] == "summary"
    assert payload["duration_seconds"] == 30.0
    assert payload["enhancement_degraded"] is False
    assert payload["recording_id"] in services.store.rows


def test_process_rejects_custom_style_for_free_users(services):
    client = TestClient(app)

    response = _upload(client, style="custom", custom_prompt="Rhymes please")

    assert response.status_code == 403
    detail = response.json()["detail"]
    assert detail["kind"] == "validation"
    assert detail["category"] == "premium_required"
    assert services.store.inserts == []


def test_process_rejects_unknown_style(services):
    client = TestClient(app)

    response = _upload(client, style="sonnet")

    assert response.status_code == 400


def test_process_reports_oversized_upload():
    app.dependency_overrides[get_services] = lambda: _context(upload_max_bytes=1024)
    try:
        response = _upload(TestClient(app))
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 413
    assert response.json()["detail"]["category"] == "file_too_large"


def test_process_maps_fatal_failures_to_bad_gateway():
    storage = FakeStorage()
    context = _context(store=FakeStore(error=RelationalStoreError("insert failed")), storage=storage)
    app.dependency_overrides[get_services] = lambda: context
    try:
        response = _upload(TestClient(app))
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["stage"] == "saving"
    assert detail["compensated"] is True
    assert storage.objects == {}


def test_stages_endpoint_lists_bands(services):
    response = TestClient(app).get("/recordings/stages")

    assert response.status_code == 200
    stages = response.json()
    assert [s["stage"] for s in stages] == ["uploading", "transcribing", "enhancing", "saving"]
    assert stages[1]["progress_start"] == 25.0
    assert stages[1]["progress_end"] == 60.0


def test_styles_endpoint_depends_on_plan(services):
    client = TestClient(app)

    free = client.get("/recordings/styles").json()
    premium = client.get("/recordings/styles", params={"is_premium": "true"}).json()

    assert [s["style"] for s in free] == ["note", "email", "summary"]
    assert len(premium) == 6
    assert free[0]["instruction"].startswith("You are an expert note-taking assistant.")


def test_translate(services):
    response = TestClient(app).post(
        "/recordings/translate",
        json={"text": "Hello", "target_language": "Spanish"},
    )

    assert response.status_code == 200
    assert response.json()["target_language"] == "Spanish"


def test_regenerate_and_update_saved_recording(services):
    client = TestClient(app)
    recording_id = _upload(client).json()["recording_id"]

    regenerated = client.post(
        f"/recordings/{recording_id}/regenerate",
        json={"style": "email"},
    )
    updated = client.patch(f"/recordings/{recording_id}", json={"title": "Standup"})

    assert regenerated.status_code == 200
    assert regenerated.json()["record"]["style"] == "email"
    assert updated.status_code == 200
    assert updated.json()["status"] == "applied"
    assert services.store.rows[recording_id]["title"] == "Standup"


def test_regenerate_unknown_recording_is_404(services):
    response = TestClient(app).post("/recordings/nope/regenerate", json={"style": "note"})

    assert response.status_code == 404


def test_mutations_are_queued_while_offline_and_replayed(services):
    client = TestClient(app)
    recording_id = _upload(client).json()["recording_id"]

    offline = client.post("/queue/connectivity", json={"online": False})
    queued = client.delete(f"/recordings/{recording_id}")
    status_while_offline = client.get("/queue").json()
    online = client.post("/queue/connectivity", json={"online": True})

    assert offline.json() == {"online": False, "replay": None}
    assert queued.status_code == 202
    assert queued.json()["status"] == "queued"
    assert status_while_offline["pending"] == 1
    assert status_while_offline["operations"][0]["type"] == "delete"
    assert online.json()["replay"]["replayed"] == 1
    assert recording_id not in services.store.rows
    assert client.get("/queue").json()["pending"] == 0


def test_update_goes_to_queue_when_database_unreachable():
    store = FakeStore(error=ConnectivityError("connection refused"))
    context = _context(store=store)
    app.dependency_overrides[get_services] = lambda: context
    try:
        response = TestClient(app).patch("/recordings/abc", json={"title": "Later"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 202
    assert context.offline_queue.online is False


def test_update_requires_changes(services):
    response = TestClient(app).patch("/recordings/abc", json={})

    assert response.status_code == 400


def test_health_and_metrics(services):
    client = TestClient(app)

    assert client.get("/health").json()["status"] == "healthy"
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "http_requests_total" in metrics.text


def test_estimate_before_processing(services):
    client = TestClient(app)

    response = client.get("/recordings/estimate", params={"duration_seconds": 60})
    negative = client.get("/recordings/estimate", params={"duration_seconds": -1})

    assert response.status_code == 200
    payload = response.json()
    assert payload["processing_seconds"] == 28
    assert payload["cost_estimate"] > 0.006
    assert negative.status_code == 400


def test_request_id_is_echoed(services):
    client = TestClient(app)

    generated = client.get("/health")
    supplied = client.get("/health", headers={"X-Request-ID": "abc123"})

    assert generated.headers["X-Request-ID"]
    assert supplied.headers["X-Request-ID"] == "abc123"


def test_languages_endpoint(services):
    languages = TestClient(app).get("/recordings/languages").json()

    english = next(item for item in languages if item["code"] == "en")
    assert english == {"code": "en", "name": "English", "locale": "en-US"}


def test_delete_unknown_recording_is_404(services):
    response = TestClient(app).delete("/recordings/missing")

    assert response.status_code == 404
    assert services.offline_queue.online is True
