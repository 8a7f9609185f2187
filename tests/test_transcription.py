"""Transcription stage: ceilings, duration probing and plausibility scoring."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeTranscriber, fixed_probe, missing_probe
from voiceflow.config.settings import CostConfig
from voiceflow.pipelines.recording import StageErrorKind, assess_transcript_quality, transcribe_recording
from voiceflow.pipelines.recording.errors import ErrorCategory

MIB = 1024 * 1024


def _run(provider, audio_file, retry_policy, **kwargs):
    options = {
        "local_audio_uri": str(audio_file),
        "language_hint": None,
        "retry_policy": retry_policy,
        "max_bytes": 25 * MIB,
        "cost_config": CostConfig(),
        "probe": fixed_probe,
    }
    options.update(kwargs)
    return asyncio.run(transcribe_recording(provider, **options))


@pytest.mark.parametrize(
    ("text", "score"),
    [
        ("Let's move the meeting to Friday afternoon.", 100),
        ("hi", 25),
        ("12345678901", 45),
        ("aaaaaaaaaaaa is noise", 80),
    ],
)
def test_transcript_quality_heuristics(text, score):
    assert assess_transcript_quality(text).score == score


def test_quality_score_never_drops_below_zero():
    report = assess_transcript_quality("1111111111111"[:9])

    assert report.score == 0
    assert not report.acceptable


def test_successful_transcription_uses_probed_duration(audio_file, retry_policy):
    provider = FakeTranscriber(duration=12.0)

    result = _run(provider, audio_file, retry_policy, language_hint="fr")

    assert result.ok
    assert result.audio_length_seconds == 30.0
    assert result.cost_estimate == pytest.approx(0.003)
    assert result.language == "en"
    assert provider.calls == ["fr"]


def test_duration_falls_back_to_provider_then_zero(audio_file, retry_policy):
    with_provider = _run(FakeTranscriber(duration=12.5), audio_file, retry_policy, probe=missing_probe)
    without = _run(FakeTranscriber(duration=None), audio_file, retry_policy, probe=missing_probe)

    assert with_provider.audio_length_seconds == 12.5
    assert without.audio_length_seconds == 0.0
    assert without.cost_estimate == 0.0


def test_files_over_the_request_ceiling_are_refused(audio_file, retry_policy):
    provider = FakeTranscriber()

    result = _run(provider, audio_file, retry_policy, max_bytes=1024)

    assert result.error.kind is StageErrorKind.VALIDATION
    assert result.error.category is ErrorCategory.FILE_TOO_LARGE
    assert "not yet supported" in result.error.message
    assert provider.calls == []


def test_empty_text_is_a_transcription_error(audio_file, retry_policy):
    result = _run(FakeTranscriber(text="   "), audio_file, retry_policy)

    assert not result.ok
    assert result.error.message == "Transcription produced empty result. Please try speaking louder."


def test_provider_failures_are_retried_then_fatal(audio_file, retry_policy, sleeper):
    provider = FakeTranscriber(fail_times=5)

    result = _run(provider, audio_file, retry_policy)

    assert result.error.kind is StageErrorKind.FATAL
    assert result.error.category is ErrorCategory.TIMEOUT
    assert len(provider.calls) == 3
    assert sleeper.delays == [2.0, 4.0]


def test_recovered_provider_failure_succeeds(audio_file, retry_policy, sleeper):
    provider = FakeTranscriber(fail_times=1)

    result = _run(provider, audio_file, retry_policy)

    assert result.ok
    assert sleeper.delays == [2.0]


def test_low_quality_transcripts_are_advisory(audio_file, retry_policy):
    result = _run(FakeTranscriber(text="ok"), audio_file, retry_policy)

    assert result.ok
    assert result.quality.score == 25
    assert "Very few words detected" in result.quality.issues
