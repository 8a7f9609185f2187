"""End-to-end pipeline behaviour over in-memory fakes."""

from __future__ import annotations

import asyncio

import pytest

from conftest import (
    ENHANCED_TEXT,
    FakeGenerator,
    FakeStorage,
    FakeStore,
    FakeTranscriber,
    LlmInvocationError,
    RelationalStoreError,
    StorageError,
)
from voiceflow.pipelines.recording import (
    CancellationToken,
    EnhancementStyle,
    ErrorCategory,
    ProcessingRequest,
    ProcessingStage,
    StageErrorKind,
)

MIB = 1024 * 1024


def _request(audio_file, **overrides) -> ProcessingRequest:
    options = {
        "user_id": "user-1",
        "local_audio_uri": str(audio_file),
        "recording_id": "rec-1",
    }
    options.update(overrides)
    return ProcessingRequest(**options)


def test_successful_run_returns_enhanced_record(make_pipeline, audio_file):
    pipeline, fakes = make_pipeline()

    outcome = asyncio.run(pipeline.process(_request(audio_file, style="note")))

    assert outcome.ok
    record = outcome.record
    assert record.enhanced_transcript == ENHANCED_TEXT
    assert record.duration_seconds == pytest.approx(30.0)
    assert record.client_recording_id == "rec-1"
    assert record.recording_id in fakes["store"].rows
    assert record.audio_url.endswith("user-1/rec-1.m4a")
    assert record.language == "en"
    assert record.enhancement_degraded is False
    assert record.word_count == len(ENHANCED_TEXT.split())
    assert record.character_count == len(ENHANCED_TEXT)
    # 0.5 minutes of audio plus 1000 tokens
    assert record.cost_estimate == pytest.approx(0.003 + 0.018)
    assert fakes["storage"].deleted == []


def test_progress_is_non_decreasing_and_ends_at_100(make_pipeline, audio_file):
    pipeline, _ = make_pipeline()
    progress: list[float] = []
    completed: list[ProcessingStage] = []

    asyncio.run(
        pipeline.process(
            _request(audio_file),
            on_progress=lambda stage, pct: progress.append(pct),
            on_stage_complete=completed.append,
        )
    )

    assert progress == sorted(progress)
    assert progress[-1] == 100.0
    assert completed == [
        ProcessingStage.UPLOADING,
        ProcessingStage.TRANSCRIBING,
        ProcessingStage.ENHANCING,
        ProcessingStage.SAVING,
        ProcessingStage.COMPLETE,
    ]


def test_empty_transcription_fails_and_cleans_up(make_pipeline, audio_file):
    pipeline, fakes = make_pipeline(transcriber=FakeTranscriber(text=""))

    outcome = asyncio.run(pipeline.process(_request(audio_file)))

    assert not outcome.ok
    assert outcome.error.stage is ProcessingStage.TRANSCRIBING
    assert outcome.error.compensated is True
    assert fakes["store"].inserts == []
    assert fakes["storage"].deleted == ["user-1/rec-1.m4a"]


def test_enhancement_failure_keeps_original_transcript(make_pipeline, audio_file):
    generator = FakeGenerator(error=LlmInvocationError("model overloaded"))
    pipeline, fakes = make_pipeline(generator=generator)

    outcome = asyncio.run(pipeline.process(_request(audio_file)))

    assert outcome.ok
    record = outcome.record
    assert record.enhanced_transcript == record.original_transcript
    assert record.enhancement_degraded is True
    assert any(w.startswith("Enhancement unavailable") for w in record.warnings)
    assert record.word_count == len(record.original_transcript.split())
    assert fakes["store"].inserts[0]["enhanced_transcript"] == record.original_transcript
    assert fakes["storage"].deleted == []


def test_unexpected_enhancement_error_is_degraded(make_pipeline, audio_file):
    pipeline, fakes = make_pipeline(generator=FakeGenerator(error=KeyError("output")))

    outcome = asyncio.run(pipeline.process(_request(audio_file)))

    assert outcome.ok
    assert outcome.record.enhancement_degraded is True
    assert outcome.record.enhanced_transcript == outcome.record.original_transcript
    assert outcome.record.recording_id in fakes["store"].rows
    assert fakes["storage"].deleted == []


def test_oversized_file_fails_before_any_network_call(make_pipeline, tmp_path):
    big = tmp_path / "long.m4a"
    with big.open("wb") as handle:
        handle.truncate(60 * MIB)
    pipeline, fakes = make_pipeline()

    outcome = asyncio.run(pipeline.process(_request(big)))

    assert outcome.error.kind is StageErrorKind.VALIDATION
    assert outcome.error.category is ErrorCategory.FILE_TOO_LARGE
    assert outcome.error.stage is ProcessingStage.UPLOADING
    assert fakes["storage"].upload_calls == 0
    assert fakes["transcriber"].calls == []
    assert fakes["generator"].calls == []
    assert fakes["store"].inserts == []


def test_custom_style_without_premium_makes_no_provider_calls(make_pipeline, audio_file):
    pipeline, fakes = make_pipeline()

    outcome = asyncio.run(
        pipeline.process(
            _request(audio_file, style="custom", custom_prompt="Make it rhyme", is_premium=False)
        )
    )

    assert outcome.error.kind is StageErrorKind.VALIDATION
    assert outcome.error.category is ErrorCategory.PREMIUM_REQUIRED
    assert fakes["storage"].upload_calls == 0
    assert fakes["transcriber"].calls == []
    assert fakes["generator"].calls == []


def _style_options(style: EnhancementStyle) -> dict:
    options = {"style": style.value, "is_premium": True}
    if style is EnhancementStyle.CUSTOM:
        options["custom_prompt"] = "Bullet points only"
    return options


FATAL_STAGES = ("upload", "transcription", "persistence")


def _failing_fakes(stage: str) -> dict:
    if stage == "upload":
        return {"storage": FakeStorage(fail_times=10)}
    if stage == "transcription":
        return {"transcriber": FakeTranscriber(fail_times=10)}
    return {"store": FakeStore(error=RelationalStoreError("duplicate key value"))}


@pytest.mark.parametrize("style", list(EnhancementStyle))
@pytest.mark.parametrize("stage", FATAL_STAGES)
def test_fatal_failure_leaves_no_orphaned_audio(make_pipeline, audio_file, style, stage):
    overrides = _failing_fakes(stage)
    storage = overrides.setdefault("storage", FakeStorage(fail_times=0))
    pipeline, _ = make_pipeline(**overrides)

    outcome = asyncio.run(pipeline.process(_request(audio_file, **_style_options(style))))

    assert not outcome.ok
    assert storage.objects == {}
    if stage == "upload":
        assert storage.deleted == []
    else:
        assert storage.deleted == ["user-1/rec-1.m4a"]
        assert outcome.error.compensated is True


def test_cleanup_failure_does_not_mask_the_original_error(make_pipeline, audio_file):
    storage = FakeStorage(delete_error=StorageError("AccessDenied"))
    store = FakeStore(error=RelationalStoreError("insert violates constraint"))
    pipeline, _ = make_pipeline(storage=storage, store=store)

    outcome = asyncio.run(pipeline.process(_request(audio_file)))

    assert outcome.error.stage is ProcessingStage.SAVING
    assert outcome.error.message == "insert violates constraint"
    assert outcome.error.compensated is False
    assert storage.deleted == ["user-1/rec-1.m4a"]


def test_unexpected_store_error_still_removes_uploaded_audio(make_pipeline, audio_file):
    storage = FakeStorage()
    pipeline, _ = make_pipeline(storage=storage, store=FakeStore(error=TypeError("bad column")))

    outcome = asyncio.run(pipeline.process(_request(audio_file)))

    assert not outcome.ok
    assert outcome.error.stage is ProcessingStage.SAVING
    assert outcome.error.kind is StageErrorKind.FATAL
    assert outcome.error.message == "bad column"
    assert outcome.error.compensated is True
    assert storage.objects == {}
    assert storage.deleted == ["user-1/rec-1.m4a"]


def test_cancellation_stops_at_next_stage_boundary(make_pipeline, audio_file):
    pipeline, fakes = make_pipeline()
    token = CancellationToken()
    progress: list[float] = []

    def on_stage_complete(stage):
        if stage is ProcessingStage.UPLOADING:
            token.cancel()

    outcome = asyncio.run(
        pipeline.process(
            _request(audio_file),
            on_progress=lambda stage, pct: progress.append(pct),
            on_stage_complete=on_stage_complete,
            cancel_token=token,
        )
    )

    assert outcome.error.kind is StageErrorKind.CANCELLED
    assert outcome.error.stage is ProcessingStage.TRANSCRIBING
    assert outcome.error.compensated is True
    assert fakes["transcriber"].calls == []
    assert fakes["storage"].deleted == ["user-1/rec-1.m4a"]
    assert max(progress) == 25.0


def test_language_hint_is_used_when_provider_detects_nothing(make_pipeline, audio_file):
    pipeline, fakes = make_pipeline(transcriber=FakeTranscriber(language=None))

    outcome = asyncio.run(pipeline.process(_request(audio_file, language_hint="es")))

    assert outcome.record.language == "es"
    assert fakes["transcriber"].calls == ["es"]


def test_regenerate_updates_stored_record(make_pipeline, audio_file):
    generator = FakeGenerator()
    pipeline, fakes = make_pipeline(generator=generator)
    outcome = asyncio.run(pipeline.process(_request(audio_file)))
    generator.text = "Dear team, the meeting moves to Friday afternoon."

    result = asyncio.run(pipeline.regenerate(outcome.record.recording_id, "email"))

    assert result.ok
    assert result.record["style"] == "email"
    assert result.record["enhanced_transcript"] == generator.text
    assert result.record["word_count"] == 8
    assert fakes["storage"].upload_calls == 1


def test_regenerate_missing_record(make_pipeline):
    pipeline, _ = make_pipeline()

    result = asyncio.run(pipeline.regenerate("does-not-exist", "note"))

    assert result.error.category is ErrorCategory.NOT_FOUND


def test_regenerate_enforces_premium_gate(make_pipeline):
    pipeline, fakes = make_pipeline()

    result = asyncio.run(pipeline.regenerate("any", "custom", "Shorter", is_premium=False))

    assert result.error.category is ErrorCategory.PREMIUM_REQUIRED
    assert fakes["generator"].calls == []
