"""Persistence stage: row shape and failure handling."""

from __future__ import annotations

import asyncio

from conftest import FakeStore
from voiceflow.pipelines.recording import EnhancementStyle, StageErrorKind, persist_recording
from voiceflow.pipelines.recording.persistence import build_recording_row, count_words
from voiceflow.pipelines.recording.types import ProcessingJob
from voiceflow.services.relational_store import ConnectivityError


def _job(**overrides) -> ProcessingJob:
    job = ProcessingJob(
        user_id="user-1",
        local_audio_uri="/tmp/note.m4a",
        recording_id="rec-1",
        style=EnhancementStyle.NOTE,
        is_premium=False,
        audio_url="https://bucket.example.com/user-1/rec-1.m4a",
        original_transcript="hello   world foo",
        enhanced_transcript="hello world foo",
        audio_duration_seconds=29.6,
    )
    for key, value in overrides.items():
        setattr(job, key, value)
    return job


def test_counts_come_from_the_final_transcript():
    row = build_recording_row(_job())

    assert row["word_count"] == 3
    assert row["character_count"] == 15
    assert row["duration"] == 30
    assert row["client_recording_id"] == "rec-1"
    assert row["title"].startswith("Recording ")


def test_word_count_ignores_repeated_whitespace():
    assert count_words("  one\ttwo\n\nthree  ") == 3
    assert count_words("") == 0


def test_language_prefers_detected_then_hint_then_english():
    assert build_recording_row(_job(detected_language="de"))["language"] == "de"
    assert build_recording_row(_job(language_hint="es"))["language"] == "es"
    assert build_recording_row(_job())["language"] == "en"


def test_single_insert_returns_stored_record():
    store = FakeStore()

    result = asyncio.run(persist_recording(store, _job()))

    assert result.ok
    assert len(store.inserts) == 1
    assert result.record["id"] in store.rows


def test_insert_failure_is_fatal():
    store = FakeStore(error=ConnectivityError("Database unreachable during insert"))

    result = asyncio.run(persist_recording(store, _job()))

    assert result.error.kind is StageErrorKind.FATAL
    assert result.record is None
