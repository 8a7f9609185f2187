"""Shared fakes and fixtures for the recording pipeline tests."""

from __future__ import annotations

from pathlib import Path
import sys
import uuid
from typing import Any, Mapping, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from voiceflow.config.settings import CostConfig, PipelineConfig  # noqa: E402
from voiceflow.pipelines.recording import RecordingPipeline, RetryPolicy  # noqa: E402
from voiceflow.services.llm_client import LlmCompletion, LlmInvocationError  # noqa: E402
from voiceflow.services.relational_store import (  # noqa: E402
    RecordNotFoundError,
    RelationalStoreError,
    RelationalStoreInterface,
)
from voiceflow.services.storage import StorageError, StoredObject  # noqa: E402
from voiceflow.services.transcribe import ProviderTranscript, TranscriptionError  # noqa: E402

SPOKEN_TEXT = "um so I think we should like move the meeting to friday afternoon"
ENHANCED_TEXT = "- Move the meeting to Friday afternoon."


class FakeStorage:
    def __init__(self, *, fail_times: int = 0, delete_error: Optional[Exception] = None) -> None:
        self.fail_times = fail_times
        self.delete_error = delete_error
        self.objects: dict[str, bytes] = {}
        self.upload_calls = 0
        self.deleted: list[str] = []

    async def upload(self, path, data, *, content_type="audio/m4a", on_progress=None):
        self.upload_calls += 1
        if self.upload_calls <= self.fail_times:
            raise StorageError("Network connection reset by peer")
        if on_progress is not None:
            on_progress(40.0)
            on_progress(100.0)
        self.objects[path] = data
        return StoredObject(path=path, url=f"https://bucket.example.com/{path}")

    async def delete(self, path):
        self.deleted.append(path)
        if self.delete_error is not None:
            raise self.delete_error
        self.objects.pop(path, None)


class FakeTranscriber:
    def __init__(
        self,
        text: str = SPOKEN_TEXT,
        *,
        language: Optional[str] = "en",
        duration: Optional[float] = 29.0,
        fail_times: int = 0,
    ) -> None:
        self.text = text
        self.language = language
        self.duration = duration
        self.fail_times = fail_times
        self.calls: list[Optional[str]] = []

    async def transcribe(self, audio_bytes, language_hint=None):
        self.calls.append(language_hint)
        if len(self.calls) <= self.fail_times:
            raise TranscriptionError("Request timed out")
        return ProviderTranscript(
            text=self.text,
            language=self.language,
            duration_seconds=self.duration,
        )


class FakeGenerator:
    def __init__(
        self,
        text: str = ENHANCED_TEXT,
        *,
        tokens_used: Optional[int] = 1000,
        error: Optional[Exception] = None,
    ) -> None:
        self.text = text
        self.tokens_used = tokens_used
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_instruction, user_text):
        self.calls.append((system_instruction, user_text))
        if self.error is not None:
            raise self.error
        return LlmCompletion(text=self.text, tokens_used=self.tokens_used)


class FakeStore(RelationalStoreInterface):
    def __init__(self, *, error: Optional[Exception] = None) -> None:
        self.error = error
        self.rows: dict[str, dict[str, Any]] = {}
        self.inserts: list[dict[str, Any]] = []

    async def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        self.inserts.append(dict(record))
        if self.error is not None:
            raise self.error
        row = {"id": str(uuid.uuid4()), **record}
        self.rows[row["id"]] = row
        return dict(row)

    async def get(self, table: str, record_id: str) -> Optional[dict[str, Any]]:
        if self.error is not None:
            raise self.error
        row = self.rows.get(record_id)
        return dict(row) if row else None

    async def update(self, table: str, record_id: str, changes: Mapping[str, Any]) -> dict[str, Any]:
        if self.error is not None:
            raise self.error
        if record_id not in self.rows:
            raise RecordNotFoundError(f"{table} record {record_id} not found")
        self.rows[record_id].update(changes)
        return dict(self.rows[record_id])

    async def delete(self, table: str, record_id: str) -> None:
        if self.error is not None:
            raise self.error
        if record_id not in self.rows:
            raise RecordNotFoundError(f"{table} record {record_id} not found")
        del self.rows[record_id]


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


async def fixed_probe(path) -> float:
    return 30.0


async def missing_probe(path) -> None:
    return None


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def retry_policy(sleeper: SleepRecorder) -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay_seconds=1.0, sleep=sleeper)


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    path = tmp_path / "note.m4a"
    path.write_bytes(b"\x00\x01" * 4096)
    return path


@pytest.fixture
def make_pipeline(retry_policy: RetryPolicy):
    """Build a pipeline around fakes; pass overrides for any collaborator."""

    def factory(
        *,
        storage: Optional[FakeStorage] = None,
        transcriber: Optional[FakeTranscriber] = None,
        generator: Optional[FakeGenerator] = None,
        store: Optional[FakeStore] = None,
        probe=fixed_probe,
        pipeline_config: Optional[PipelineConfig] = None,
    ):
        collaborators = {
            "storage": storage or FakeStorage(),
            "transcriber": transcriber or FakeTranscriber(),
            "generator": generator or FakeGenerator(),
            "store": store or FakeStore(),
        }
        pipeline = RecordingPipeline(
            collaborators["storage"],
            collaborators["transcriber"],
            collaborators["generator"],
            collaborators["store"],
            retry_policy=retry_policy,
            probe=probe,
            pipeline_config=pipeline_config or PipelineConfig(),
            cost_config=CostConfig(),
        )
        return pipeline, collaborators

    return factory


__all__ = [
    "ENHANCED_TEXT",
    "FakeGenerator",
    "FakeStorage",
    "FakeStore",
    "FakeTranscriber",
    "LlmInvocationError",
    "RelationalStoreError",
    "SPOKEN_TEXT",
    "SleepRecorder",
    "StorageError",
    "TranscriptionError",
    "fixed_probe",
    "missing_probe",
]
