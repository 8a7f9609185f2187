"""Drive a recording through Upload, Transcription, Enhancement and Saving."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from voiceflow.config.settings import CostConfig, PipelineConfig, settings
from voiceflow.services.audio_probe import probe_duration_seconds
from voiceflow.services.relational_store import (
    RecordNotFoundError,
    RelationalStoreError,
    RelationalStoreInterface,
)
from voiceflow.services.storage import StorageError
from voiceflow.telemetry import metrics

from .enhancement import GenerationProvider, enhance_transcript, translate_text
from .errors import ErrorCategory, StageError, StageErrorKind
from .flow import ProcessingStage, ProgressCallback, ProgressReporter, StageCompleteCallback
from .persistence import RECORDINGS_TABLE, count_words, persist_recording
from .retry import RetryPolicy
from .styles import StyleDirective, StyleValidationError
from .transcription import AudioProbe, TranscriptionProvider, transcribe_recording
from .types import (
    CancellationToken,
    PipelineFailure,
    PipelineOutcome,
    ProcessingJob,
    ProcessingRecord,
    ProcessingRequest,
    RegenerationResult,
    TranslationResult,
)
from .upload import ObjectStorage, upload_recording

logger = logging.getLogger("voiceflow.services.recording_pipeline")
transcript_logger = logging.getLogger("voiceflow.logs.transcript")


@contextmanager
def _timed(stage: ProcessingStage) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        metrics.observe_stage(stage.value, time.perf_counter() - started)


def _resolve_directive(
    style: "str | None",
    custom_prompt: Optional[str],
    is_premium: bool,
) -> tuple[Optional[StyleDirective], Optional[StageError]]:
    """Validate style and premium gate up front, before any provider call."""

    try:
        directive = StyleDirective.parse(style, custom_prompt)
    except StyleValidationError as exc:
        return None, StageError.from_exception(StageErrorKind.VALIDATION, exc)
    try:
        directive.ensure_allowed(is_premium)
    except StyleValidationError as exc:
        return None, StageError(
            kind=StageErrorKind.VALIDATION,
            message=str(exc),
            category=ErrorCategory.PREMIUM_REQUIRED,
        )
    return directive, None


class RecordingPipeline:
    """Sequential recording processor with compensation on fatal failures.

    Collaborators are passed in explicitly so each caller (HTTP layer, tests)
    decides which storage, providers and store a run talks to.
    """

    def __init__(
        self,
        storage: ObjectStorage,
        transcriber: TranscriptionProvider,
        generator: GenerationProvider,
        store: RelationalStoreInterface,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        probe: AudioProbe = probe_duration_seconds,
        pipeline_config: Optional[PipelineConfig] = None,
        cost_config: Optional[CostConfig] = None,
    ) -> None:
        self._storage = storage
        self._transcriber = transcriber
        self._generator = generator
        self._store = store
        self._config = pipeline_config or settings.pipeline
        self._costs = cost_config or settings.costs
        self._retry = retry_policy or RetryPolicy.from_config(self._config)
        self._probe = probe

    async def process(
        self,
        request: ProcessingRequest,
        *,
        on_progress: Optional[ProgressCallback] = None,
        on_stage_complete: Optional[StageCompleteCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> PipelineOutcome:
        token = cancel_token or CancellationToken()
        reporter = ProgressReporter(on_progress, on_stage_complete, lambda: token.cancelled)

        directive, rejection = _resolve_directive(
            request.style, request.custom_prompt, request.is_premium
        )
        if rejection is not None:
            return self._reject(rejection)

        job = ProcessingJob(
            user_id=request.user_id,
            local_audio_uri=request.local_audio_uri,
            recording_id=request.recording_id,
            style=directive.style,
            is_premium=request.is_premium,
            language_hint=request.language_hint,
        )
        logger.info(
            "Processing recording client_id=%s user=%s style=%s",
            job.recording_id,
            job.user_id,
            job.style.value,
        )

        stage = ProcessingStage.UPLOADING
        try:
            # Stage 1: upload
            if token.cancelled:
                return await self._cancel(job, ProcessingStage.UPLOADING, reporter)
            reporter.report(ProcessingStage.UPLOADING, 0)
            with _timed(ProcessingStage.UPLOADING):
                upload = await upload_recording(
                    self._storage,
                    local_audio_uri=job.local_audio_uri,
                    user_id=job.user_id,
                    recording_id=job.recording_id,
                    retry_policy=self._retry,
                    max_bytes=self._config.upload_max_bytes,
                    on_progress=reporter.stage_callback(ProcessingStage.UPLOADING),
                )
            if not upload.ok:
                return await self._fail(job, ProcessingStage.UPLOADING, upload.error, reporter)
            job.audio_path = upload.path
            job.audio_url = upload.url
            reporter.report(ProcessingStage.UPLOADING, 100)
            reporter.stage_complete(ProcessingStage.UPLOADING)

            # Stage 2: transcription
            stage = ProcessingStage.TRANSCRIBING
            if token.cancelled:
                return await self._cancel(job, ProcessingStage.TRANSCRIBING, reporter)
            reporter.report(ProcessingStage.TRANSCRIBING, 0)
            with _timed(ProcessingStage.TRANSCRIBING):
                transcription = await transcribe_recording(
                    self._transcriber,
                    local_audio_uri=job.local_audio_uri,
                    language_hint=job.language_hint,
                    retry_policy=self._retry,
                    max_bytes=self._config.transcription_max_bytes,
                    cost_config=self._costs,
                    probe=self._probe,
                    quality_threshold=self._config.quality_warning_threshold,
                    on_progress=reporter.stage_callback(ProcessingStage.TRANSCRIBING),
                )
            if not transcription.ok:
                return await self._fail(
                    job, ProcessingStage.TRANSCRIBING, transcription.error, reporter
                )
            job.original_transcript = transcription.text
            job.detected_language = transcription.language
            job.audio_duration_seconds = transcription.audio_length_seconds
            job.cost_estimate += transcription.cost_estimate
            if transcription.quality is not None:
                job.warnings.extend(transcription.quality.issues)
            reporter.report(ProcessingStage.TRANSCRIBING, 100)
            reporter.stage_complete(ProcessingStage.TRANSCRIBING)

            # Stage 3: enhancement, degradable
            stage = ProcessingStage.ENHANCING
            if token.cancelled:
                return await self._cancel(job, ProcessingStage.ENHANCING, reporter)
            reporter.report(ProcessingStage.ENHANCING, 0)
            with _timed(ProcessingStage.ENHANCING):
                enhancement = await enhance_transcript(
                    self._generator,
                    job.original_transcript,
                    directive,
                    is_premium=job.is_premium,
                    cost_config=self._costs,
                    quality_threshold=self._config.quality_warning_threshold,
                )
            if enhancement.ok:
                job.enhanced_transcript = enhancement.enhanced_text
                job.cost_estimate += enhancement.cost_estimate
                if enhancement.quality is not None and not enhancement.quality.acceptable:
                    job.warnings.extend(enhancement.quality.issues)
            elif enhancement.error.kind is StageErrorKind.DEGRADED:
                logger.warning(
                    "Enhancement failed, keeping original transcript client_id=%s: %s",
                    job.recording_id,
                    enhancement.error.message,
                )
                metrics.record_enhancement_fallback()
                job.enhanced_transcript = job.original_transcript
                job.enhancement_degraded = True
                job.warnings.append(f"Enhancement unavailable: {enhancement.error.user_message}")
            else:
                return await self._fail(job, ProcessingStage.ENHANCING, enhancement.error, reporter)
            reporter.report(ProcessingStage.ENHANCING, 100)
            reporter.stage_complete(ProcessingStage.ENHANCING)

            # Stage 4: saving
            stage = ProcessingStage.SAVING
            if token.cancelled:
                return await self._cancel(job, ProcessingStage.SAVING, reporter)
            reporter.report(ProcessingStage.SAVING, 0)
            with _timed(ProcessingStage.SAVING):
                persisted = await persist_recording(self._store, job)
            if not persisted.ok:
                return await self._fail(job, ProcessingStage.SAVING, persisted.error, reporter)
            reporter.report(ProcessingStage.SAVING, 100)
            reporter.stage_complete(ProcessingStage.SAVING)

            reporter.report(ProcessingStage.COMPLETE, 100)
            reporter.stage_complete(ProcessingStage.COMPLETE)

            record = ProcessingRecord(
                recording_id=str(persisted.record.get("id")),
                client_recording_id=job.recording_id,
                audio_url=job.audio_url or "",
                original_transcript=job.original_transcript,
                enhanced_transcript=job.enhanced_transcript,
                language=job.detected_language or job.language_hint or self._config.default_language,
                style=job.style,
                duration_seconds=job.audio_duration_seconds,
                word_count=count_words(job.enhanced_transcript),
                character_count=len(job.enhanced_transcript),
                cost_estimate=job.cost_estimate,
                enhancement_degraded=job.enhancement_degraded,
                warnings=tuple(job.warnings),
            )
            metrics.record_pipeline_outcome("degraded" if job.enhancement_degraded else "success")
            logger.info(
                "Recording processed id=%s client_id=%s duration=%.1fs cost=$%.4f",
                record.recording_id,
                record.client_recording_id,
                record.duration_seconds,
                record.cost_estimate,
            )
            transcript_logger.info(
                "recording=%s language=%s style=%s\noriginal: %s\nenhanced: %s",
                record.recording_id,
                record.language,
                record.style.value,
                record.original_transcript,
                record.enhanced_transcript,
            )
            return PipelineOutcome(record=record)
        except Exception as exc:
            logger.exception(
                "Unexpected failure client_id=%s stage=%s", job.recording_id, stage.value
            )
            return await self._fail(
                job, stage, StageError.from_exception(StageErrorKind.FATAL, exc), reporter
            )

    async def regenerate(
        self,
        record_id: str,
        style: "str | None",
        custom_prompt: Optional[str] = None,
        *,
        is_premium: bool = False,
    ) -> RegenerationResult:
        """Re-run enhancement of a saved recording with another style."""

        directive, rejection = _resolve_directive(style, custom_prompt, is_premium)
        if rejection is not None:
            return RegenerationResult(error=rejection)

        try:
            existing = await self._store.get(RECORDINGS_TABLE, record_id)
        except RecordNotFoundError:
            existing = None
        except RelationalStoreError as exc:
            return RegenerationResult(error=StageError.from_exception(StageErrorKind.FATAL, exc))
        if existing is None:
            return RegenerationResult(
                error=StageError(
                    kind=StageErrorKind.VALIDATION,
                    message=f"Recording {record_id} not found",
                    category=ErrorCategory.NOT_FOUND,
                )
            )

        source = existing.get("original_transcript") or ""
        enhancement = await enhance_transcript(
            self._generator,
            source,
            directive,
            is_premium=is_premium,
            cost_config=self._costs,
            quality_threshold=self._config.quality_warning_threshold,
        )
        if not enhancement.ok:
            # No fallback here: the stored text is already the fallback.
            return RegenerationResult(error=enhancement.error)

        changes = {
            "enhanced_transcript": enhancement.enhanced_text,
            "style": directive.style.value,
            "word_count": count_words(enhancement.enhanced_text),
            "character_count": len(enhancement.enhanced_text),
        }
        try:
            updated = await self._store.update(RECORDINGS_TABLE, record_id, changes)
        except RelationalStoreError as exc:
            return RegenerationResult(error=StageError.from_exception(StageErrorKind.FATAL, exc))

        logger.info("Regenerated recording id=%s style=%s", record_id, directive.style.value)
        return RegenerationResult(
            record=updated,
            quality=enhancement.quality,
            cost_estimate=enhancement.cost_estimate,
        )

    async def translate(self, text: str, target_language: str) -> TranslationResult:
        return await translate_text(
            self._generator, text, target_language, cost_config=self._costs
        )

    def _reject(self, error: StageError) -> PipelineOutcome:
        logger.warning("Rejected recording request before processing: %s", error.message)
        metrics.record_pipeline_outcome("rejected")
        return PipelineOutcome(
            error=PipelineFailure.from_stage_error(ProcessingStage.UPLOADING, error)
        )

    async def _cancel(
        self,
        job: ProcessingJob,
        stage: ProcessingStage,
        reporter: ProgressReporter,
    ) -> PipelineOutcome:
        error = StageError(
            kind=StageErrorKind.CANCELLED,
            message="Processing was cancelled",
            category=ErrorCategory.UNKNOWN,
        )
        return await self._fail(job, stage, error, reporter, outcome="cancelled")

    async def _fail(
        self,
        job: ProcessingJob,
        stage: ProcessingStage,
        error: StageError,
        reporter: ProgressReporter,
        *,
        outcome: str = "failed",
    ) -> PipelineOutcome:
        logger.error(
            "Recording pipeline failed client_id=%s stage=%s kind=%s: %s",
            job.recording_id,
            stage.value,
            error.kind.value,
            error.message,
        )
        await self._compensate(job)
        reporter.stage_complete(ProcessingStage.ERROR, force=True)
        metrics.record_pipeline_outcome(outcome)
        return PipelineOutcome(
            error=PipelineFailure.from_stage_error(stage, error, compensated=job.compensated)
        )

    async def _compensate(self, job: ProcessingJob) -> None:
        """Delete the uploaded object once; a failed delete never masks the cause."""

        if not job.audio_path or job.compensated:
            return
        try:
            await self._storage.delete(job.audio_path)
        except StorageError as exc:
            metrics.record_compensation(False)
            logger.error("Failed to clean up uploaded audio path=%s: %s", job.audio_path, exc)
            return
        except Exception:
            metrics.record_compensation(False)
            logger.exception("Unexpected error cleaning up uploaded audio path=%s", job.audio_path)
            return
        job.compensated = True
        metrics.record_compensation(True)
        logger.info("Deleted uploaded audio after failure path=%s", job.audio_path)


__all__ = ["RecordingPipeline"]
