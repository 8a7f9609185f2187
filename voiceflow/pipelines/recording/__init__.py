"""Recording-processing pipeline package.

Modules follow the order in which ``RecordingPipeline.process`` runs them:

1. `upload` - validate the local file and push it to object storage.
2. `transcription` - speech-to-text, duration probe, plausibility score.
3. `enhancement` - restyle the transcript; failure keeps the raw text.
4. `persistence` - insert the final row into the relational store.

`orchestrator` owns progress bands, cancellation and compensation; `flow`
describes the stages for the API and maps stage-local progress.
"""

from .costs import estimate_recording_cost, generation_cost, transcription_cost
from .enhancement import (
    batch_enhance,
    enhance_transcript,
    translate_text,
    validate_enhancement_quality,
)
from .errors import ErrorCategory, StageError, StageErrorKind, classify_error
from .flow import (
    ProcessingStage,
    ProgressReporter,
    RecordingPipelineMap,
    estimate_processing_time,
    overall_progress,
    stage_display_name,
)
from .orchestrator import RecordingPipeline
from .persistence import RECORDINGS_TABLE, count_words, persist_recording
from .retry import RetryPolicy
from .styles import (
    EnhancementStyle,
    StyleDirective,
    StyleValidationError,
    available_styles,
    prompt_preview,
    style_info,
)
from .transcription import assess_transcript_quality, transcribe_recording
from .types import (
    CancellationToken,
    PipelineFailure,
    PipelineOutcome,
    ProcessingRecord,
    ProcessingRequest,
    RegenerationResult,
    TranslationResult,
)
from .upload import object_path, upload_recording

__all__ = [
    "CancellationToken",
    "EnhancementStyle",
    "ErrorCategory",
    "PipelineFailure",
    "PipelineOutcome",
    "ProcessingRecord",
    "ProcessingRequest",
    "ProcessingStage",
    "ProgressReporter",
    "RECORDINGS_TABLE",
    "RecordingPipeline",
    "RecordingPipelineMap",
    "RegenerationResult",
    "RetryPolicy",
    "StageError",
    "StageErrorKind",
    "StyleDirective",
    "StyleValidationError",
    "TranslationResult",
    "assess_transcript_quality",
    "available_styles",
    "batch_enhance",
    "classify_error",
    "count_words",
    "enhance_transcript",
    "estimate_processing_time",
    "estimate_recording_cost",
    "generation_cost",
    "object_path",
    "overall_progress",
    "persist_recording",
    "prompt_preview",
    "stage_display_name",
    "style_info",
    "transcribe_recording",
    "transcription_cost",
    "translate_text",
    "upload_recording",
    "validate_enhancement_quality",
]
