"""Recording processing endpoints.

`POST /recordings/process` stores the uploaded audio in a temporary file and
hands it to `RecordingPipeline.process`, which runs upload, transcription,
enhancement and saving (see `voiceflow.pipelines.recording.flow`). The other
routes regenerate or translate existing text and apply edits through the
offline queue so they survive a database outage.
"""

import logging
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, File, Form, HTTPException, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from voiceflow.controllers.dependencies import ServicesDep
from voiceflow.pipelines.recording import (
    EnhancementStyle,
    ErrorCategory,
    PipelineFailure,
    ProcessingRequest,
    RECORDINGS_TABLE,
    RecordingPipelineMap,
    StageError,
    StageErrorKind,
    available_styles,
    estimate_processing_time,
    estimate_recording_cost,
    prompt_preview,
    stage_display_name,
    style_info,
)
from voiceflow.pipelines.recording.ingestion import audio_extension
from voiceflow.services.offline_queue import ExecutionResult, OperationType
from voiceflow.services.relational_store import RecordNotFoundError, RelationalStoreError
from voiceflow.services.transcribe import SUPPORTED_LANGUAGES, language_name
from voiceflow.views import (
    ErrorResponse,
    FailureDetail,
    LanguageDescription,
    MutationResponse,
    ProcessedRecording,
    ProcessingEstimate,
    QualitySummary,
    RecordingUpdate,
    RegenerateRequest,
    RegeneratedRecording,
    StageDescription,
    StyleDescription,
    TranslateRequest,
    TranslateResponse,
)

router = APIRouter(prefix="/recordings", tags=["recordings"])

logger = logging.getLogger(__name__)

_AUDIO_FILE_UPLOAD = File(...)
_USER_ID_FORM = Form(...)


def _status_for(kind: StageErrorKind, category: ErrorCategory) -> int:
    if category is ErrorCategory.PREMIUM_REQUIRED:
        return status.HTTP_403_FORBIDDEN
    if category is ErrorCategory.NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    if kind is StageErrorKind.VALIDATION:
        if category is ErrorCategory.FILE_TOO_LARGE:
            return status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        return status.HTTP_400_BAD_REQUEST
    if kind is StageErrorKind.CANCELLED:
        return status.HTTP_409_CONFLICT
    return status.HTTP_502_BAD_GATEWAY


def _failure_exception(failure: PipelineFailure) -> HTTPException:
    detail = FailureDetail(
        stage=failure.stage.value,
        kind=failure.kind.value,
        category=failure.category.value,
        message=failure.message,
        user_message=failure.user_message,
        compensated=failure.compensated,
    )
    return HTTPException(
        status_code=_status_for(failure.kind, failure.category),
        detail=detail.model_dump(),
    )


def _stage_error_exception(error: StageError) -> HTTPException:
    detail = FailureDetail(
        kind=error.kind.value,
        category=error.category.value,
        message=error.message,
        user_message=error.user_message,
    )
    return HTTPException(
        status_code=_status_for(error.kind, error.category),
        detail=detail.model_dump(),
    )


_FAILURE_RESPONSES: dict[int | str, dict[str, Any]] = {
    code: {"model": ErrorResponse}
    for code in (400, 403, 404, 409, 413, 502)
}


def _save_upload(upload: UploadFile) -> str:
    suffix = f".{audio_extension(upload.filename or '')}"
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix, prefix="voiceflow-") as handle:
        shutil.copyfileobj(upload.file, handle)
        return handle.name


def _remove_quietly(path: str) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove temporary upload %s: %s", path, exc)


def _mutation_response(outcome: ExecutionResult, response: Response) -> MutationResponse:
    if outcome.applied:
        return MutationResponse(status="applied", record=outcome.result)
    response.status_code = status.HTTP_202_ACCEPTED
    return MutationResponse(status="queued", operation_id=outcome.operation.id)


@router.get("/stages", response_model=list[StageDescription])
async def list_stages() -> list[StageDescription]:
    """Describe the pipeline stages and their progress bands."""

    return [
        StageDescription(
            order=stage.order,
            stage=stage.stage.value,
            name=stage_display_name(stage.stage),
            module=stage.module,
            summary=stage.summary,
            progress_start=stage.band.start,
            progress_end=stage.band.end,
        )
        for stage in RecordingPipelineMap.describe()
    ]


@router.get("/styles", response_model=list[StyleDescription])
async def list_styles(is_premium: bool = False) -> list[StyleDescription]:
    return [
        StyleDescription(
            style=style.value,
            premium=style is EnhancementStyle.CUSTOM,
            instruction=prompt_preview(style),
            **style_info(style),
        )
        for style in available_styles(is_premium)
    ]


@router.get("/languages", response_model=list[LanguageDescription])
async def list_languages() -> list[LanguageDescription]:
    return [
        LanguageDescription(code=code, name=language_name(code), locale=locale)
        for code, (_, locale) in SUPPORTED_LANGUAGES.items()
    ]


@router.get("/estimate", response_model=ProcessingEstimate)
async def estimate(duration_seconds: float) -> ProcessingEstimate:
    """Up-front time and cost estimate for a recording of the given length."""

    if duration_seconds < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="duration_seconds must not be negative",
        )
    return ProcessingEstimate(
        duration_seconds=duration_seconds,
        processing_seconds=estimate_processing_time(duration_seconds),
        cost_estimate=estimate_recording_cost(duration_seconds),
    )


@router.post("/process", response_model=ProcessedRecording, responses=_FAILURE_RESPONSES)
async def process_recording(
    services: ServicesDep,
    user_id: str = _USER_ID_FORM,
    recording_id: Optional[str] = Form(None),
    style: str = Form(EnhancementStyle.NOTE.value),
    custom_prompt: Optional[str] = Form(None),
    language: Optional[str] = Form(None),
    is_premium: bool = Form(False),
    audio_file: UploadFile = _AUDIO_FILE_UPLOAD,
) -> ProcessedRecording:
    """Run the full pipeline over an uploaded recording."""

    local_path = await run_in_threadpool(_save_upload, audio_file)
    try:
        outcome = await services.pipeline.process(
            ProcessingRequest(
                user_id=user_id,
                local_audio_uri=local_path,
                recording_id=recording_id or str(uuid.uuid4()),
                style=style,
                custom_prompt=custom_prompt,
                language_hint=language or None,
                is_premium=is_premium,
            )
        )
    finally:
        await run_in_threadpool(_remove_quietly, local_path)

    if not outcome.ok:
        raise _failure_exception(outcome.error)

    record = outcome.record
    return ProcessedRecording(
        recording_id=record.recording_id,
        client_recording_id=record.client_recording_id,
        audio_url=record.audio_url,
        original_transcript=record.original_transcript,
        enhanced_transcript=record.enhanced_transcript,
        language=record.language,
        style=record.style.value,
        duration_seconds=record.duration_seconds,
        word_count=record.word_count,
        character_count=record.character_count,
        cost_estimate=record.cost_estimate,
        enhancement_degraded=record.enhancement_degraded,
        warnings=list(record.warnings),
    )


@router.post("/translate", response_model=TranslateResponse, responses=_FAILURE_RESPONSES)
async def translate(payload: TranslateRequest, services: ServicesDep) -> TranslateResponse:
    result = await services.pipeline.translate(payload.text, payload.target_language)
    if not result.ok:
        raise _stage_error_exception(result.error)
    return TranslateResponse(
        translated_text=result.translated_text,
        target_language=result.target_language,
        tokens_used=result.tokens_used,
        cost_estimate=result.cost_estimate,
    )


@router.post(
    "/{record_id}/regenerate",
    response_model=RegeneratedRecording,
    responses=_FAILURE_RESPONSES,
)
async def regenerate(
    record_id: str,
    payload: RegenerateRequest,
    services: ServicesDep,
) -> RegeneratedRecording:
    """Re-run enhancement of a saved recording with a different style."""

    result = await services.pipeline.regenerate(
        record_id,
        payload.style,
        payload.custom_prompt,
        is_premium=payload.is_premium,
    )
    if not result.ok:
        raise _stage_error_exception(result.error)

    quality = None
    if result.quality is not None:
        quality = QualitySummary(
            score=result.quality.score,
            issues=list(result.quality.issues),
            acceptable=result.quality.acceptable,
        )
    return RegeneratedRecording(
        record=result.record,
        quality=quality,
        cost_estimate=result.cost_estimate,
    )


@router.patch("/{record_id}", response_model=MutationResponse)
async def update_recording(
    record_id: str,
    payload: RecordingUpdate,
    response: Response,
    services: ServicesDep,
) -> MutationResponse:
    changes: dict[str, Any] = payload.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No changes supplied")
    if "style" in changes and changes["style"] not in {s.value for s in EnhancementStyle}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown style '{changes['style']}'",
        )
    if "enhanced_transcript" in changes:
        text = changes["enhanced_transcript"]
        changes["word_count"] = len(text.split())
        changes["character_count"] = len(text)

    try:
        outcome = await services.offline_queue.execute_or_enqueue(
            OperationType.UPDATE,
            RECORDINGS_TABLE,
            {"id": record_id, "changes": changes},
        )
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RelationalStoreError as exc:
        logger.error("Update of recording %s failed: %s", record_id, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return _mutation_response(outcome, response)


@router.delete("/{record_id}", response_model=MutationResponse)
async def delete_recording(
    record_id: str,
    response: Response,
    services: ServicesDep,
) -> MutationResponse:
    try:
        outcome = await services.offline_queue.execute_or_enqueue(
            OperationType.DELETE,
            RECORDINGS_TABLE,
            {"id": record_id},
        )
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RelationalStoreError as exc:
        logger.error("Delete of recording %s failed: %s", record_id, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return _mutation_response(outcome, response)
