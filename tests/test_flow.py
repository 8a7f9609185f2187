"""Progress band remapping and stage reporting."""

from __future__ import annotations

import pytest

from voiceflow.pipelines.recording import (
    ProcessingStage,
    ProgressReporter,
    RecordingPipelineMap,
    estimate_processing_time,
    overall_progress,
    stage_display_name,
)


@pytest.mark.parametrize(
    ("stage", "local", "expected"),
    [
        (ProcessingStage.UPLOADING, 0, 0.0),
        (ProcessingStage.UPLOADING, 100, 25.0),
        (ProcessingStage.TRANSCRIBING, 0, 25.0),
        (ProcessingStage.TRANSCRIBING, 50, 42.5),
        (ProcessingStage.ENHANCING, 100, 90.0),
        (ProcessingStage.SAVING, 50, 95.0),
        (ProcessingStage.COMPLETE, 0, 100.0),
    ],
)
def test_overall_progress_maps_into_stage_band(stage, local, expected):
    assert overall_progress(stage, local) == pytest.approx(expected)


def test_overall_progress_clamps_out_of_range_values():
    assert overall_progress(ProcessingStage.ENHANCING, -20) == 60.0
    assert overall_progress(ProcessingStage.ENHANCING, 250) == 90.0


def test_reporter_never_goes_backwards():
    seen: list[float] = []
    reporter = ProgressReporter(lambda stage, pct: seen.append(pct))

    reporter.report(ProcessingStage.TRANSCRIBING, 80)
    reporter.report(ProcessingStage.UPLOADING, 100)
    reporter.report(ProcessingStage.TRANSCRIBING, 20)
    reporter.report(ProcessingStage.COMPLETE, 100)

    assert seen == [53.0, 53.0, 53.0, 100.0]
    assert reporter.last_percent == 100.0


def test_reporter_suppresses_callbacks_once_cancelled():
    seen: list[float] = []
    completed: list[ProcessingStage] = []
    cancelled = {"value": False}
    reporter = ProgressReporter(
        lambda stage, pct: seen.append(pct),
        completed.append,
        lambda: cancelled["value"],
    )

    reporter.report(ProcessingStage.UPLOADING, 50)
    cancelled["value"] = True
    reporter.report(ProcessingStage.UPLOADING, 100)
    reporter.stage_complete(ProcessingStage.UPLOADING)
    reporter.stage_complete(ProcessingStage.ERROR, force=True)

    assert seen == [12.5]
    assert completed == [ProcessingStage.ERROR]


def test_reporter_logs_callback_failures(caplog):
    def broken(stage, pct):
        raise RuntimeError("ui gone")

    reporter = ProgressReporter(broken)
    reporter.report(ProcessingStage.SAVING, 10)

    assert "Progress callback raised" in caplog.text


def test_stage_map_lists_stages_in_execution_order():
    stages = list(RecordingPipelineMap.describe())

    assert [s.stage for s in stages] == [
        ProcessingStage.UPLOADING,
        ProcessingStage.TRANSCRIBING,
        ProcessingStage.ENHANCING,
        ProcessingStage.SAVING,
    ]
    assert stages[-1].band.end == 100.0


def test_display_names_and_estimate():
    assert stage_display_name(ProcessingStage.ENHANCING) == "Enhancing with AI..."
    assert estimate_processing_time(30) == 24
